"""Multiple Sequence Alignment (MSA) data structures.

This module provides the row and container types consumed by the HSSP
pipeline. The first row of an alignment is always the query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, Tuple

import numpy as np

from hsspgen.constants.residues import GAP_SYMBOLS, is_gap, ungapped
from hsspgen.exceptions import AlignmentError


def count_identity(query: str, residues: str) -> Tuple[int, int]:
    """Identical and aligned column counts of ``residues`` against ``query``.

    A column is identical when the query has a residue there and the row
    carries the same letter; it is aligned unless both sides are gaps.
    """
    identical = length = 0
    for q, s in zip(query, residues):
        if not is_gap(q) and q == s:
            identical += 1
        if not is_gap(q) or not is_gap(s):
            length += 1
    return identical, length


@dataclass(frozen=True)
class AlignedSequence:
    """A single named row of an MSA.

    Attributes:
        id: Identifier as it appears in the alignment
        residues: Aligned residues, gap encoded
        identical_count: Columns where this row matches a non-gap query residue
        aligned_length: Columns that are not a common gap with the query
        description: Free text from a ``#=GS <id> DE`` line, if present
        cut_left: Residues of this row removed before the first column
        cut_right: Residues of this row removed after the last column
    """
    id: str
    residues: str
    identical_count: int = 0
    aligned_length: int = 0
    description: str = ""
    cut_left: int = 0
    cut_right: int = 0

    @property
    def length(self) -> int:
        """Length of the aligned row."""
        return len(self.residues)

    @property
    def identity(self) -> float:
        """Identity to the query accumulated while parsing."""
        if self.aligned_length == 0:
            return 0.0
        return self.identical_count / self.aligned_length

    @property
    def sequence(self) -> str:
        """The row with all gaps removed."""
        return ungapped(self.residues)


@dataclass
class Alignment:
    """An ordered list of equally long aligned rows.

    Attributes:
        sequences: Rows; index 0 is the query
    """
    sequences: List[AlignedSequence] = field(default_factory=list)

    def __post_init__(self):
        if self.sequences:
            width = self.sequences[0].length
            for row in self.sequences[1:]:
                if row.length != width:
                    raise AlignmentError(
                        f"Row {row.id} has length {row.length}, expected {width}"
                    )

    def __len__(self) -> int:
        return len(self.sequences)

    def __getitem__(self, index: int) -> AlignedSequence:
        return self.sequences[index]

    def __iter__(self) -> Iterator[AlignedSequence]:
        return iter(self.sequences)

    @property
    def query(self) -> AlignedSequence:
        """The query row."""
        return self.sequences[0]

    @property
    def hits(self) -> List[AlignedSequence]:
        """All rows except the query."""
        return self.sequences[1:]

    @property
    def depth(self) -> int:
        """Number of rows, query included."""
        return len(self.sequences)

    @property
    def width(self) -> int:
        """Number of columns."""
        if self.sequences:
            return self.sequences[0].length
        return 0

    def get_array(self) -> np.ndarray:
        """Upper-cased rows as a ``(depth, width)`` array of byte codes."""
        if not self.sequences:
            return np.zeros((0, 0), dtype=np.uint8)

        array = np.empty((self.depth, self.width), dtype=np.uint8)
        for i, row in enumerate(self.sequences):
            array[i] = np.frombuffer(row.residues.upper().encode("ascii", "replace"), dtype=np.uint8)
        return array

    def get_gap_mask(self) -> np.ndarray:
        """Boolean ``(depth, width)`` mask, True where a row has a gap."""
        codes = np.frombuffer("".join(sorted(GAP_SYMBOLS)).encode("ascii"), dtype=np.uint8)
        return np.isin(self.get_array(), codes)

    def select(self, indices: Sequence[int]) -> "Alignment":
        """New alignment with the given rows, in the given order."""
        return Alignment(sequences=[self.sequences[i] for i in indices])

    def fit_to_chain(self, chain_sequence: str) -> "Alignment":
        """Cut columns so that the query row spells exactly ``chain_sequence``.

        Cached alignments may have been built for a query a few residues
        longer than the chain at hand.

        Args:
            chain_sequence: Ungapped chain sequence

        Returns:
            This alignment if it already fits, otherwise a trimmed copy

        Raises:
            AlignmentError: If the query does not contain the chain sequence
        """
        query = self.query.sequence
        if query == chain_sequence:
            return self

        if len(query) < len(chain_sequence):
            raise AlignmentError("Query used for the alignment is too short for the chain")

        offset = query.find(chain_sequence)
        if offset == -1:
            raise AlignmentError("Alignment query does not contain the chain sequence")

        # column index of every query residue
        columns = [i for i, c in enumerate(self.query.residues) if not is_gap(c)]
        first = columns[offset]
        last = columns[offset + len(chain_sequence) - 1]

        query_residues = self.query.residues[first:last + 1]
        sequences = []
        for row in self.sequences:
            residues = row.residues[first:last + 1]
            identical, length = count_identity(query_residues, residues)
            sequences.append(AlignedSequence(
                id=row.id,
                residues=residues,
                identical_count=identical,
                aligned_length=length,
                description=row.description,
                cut_left=row.cut_left + len(ungapped(row.residues[:first])),
                cut_right=row.cut_right + len(ungapped(row.residues[last + 1:])),
            ))

        return Alignment(sequences=sequences)
