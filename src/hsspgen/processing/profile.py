"""Per-residue profile: distribution, entropy, conservation, indels.

One :class:`ResidueHInfo` is produced for every query residue. A chain
break (a gap in the residue numbering) is marked by a sentinel entry
without a letter, placed before the next real residue.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.special import entr

from hsspgen.alignment.msa import Alignment
from hsspgen.constants.residues import NUM_PROFILE_SYMBOLS, PROFILE_ALPHABET, PROFILE_INDEX, is_gap
from hsspgen.exceptions import AlignmentError
from hsspgen.processing.conservation import ConservationScorer
from hsspgen.processing.hits import Hit

logger = logging.getLogger(__name__)

DSSP_FRAGMENT_WIDTH = 34

MAX_ENTROPY = math.log(NUM_PROFILE_SYMBOLS)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def default_dssp_fragment(pdb_nr: int, chain_id: str, letter: str) -> str:
    """DSSP columns for a residue without secondary structure assignment."""
    return f"{pdb_nr:5d} {chain_id} {letter}  {'':9}{0:4d}{0:4d} {0:4d} "


@dataclass(frozen=True)
class ChainResidue:
    """A residue of the chain the query sequence was taken from.

    Attributes:
        number: Author (PDB) residue number
        letter: One-letter residue code
        dssp: Pre-formatted DSSP columns (residue number to accessibility)
    """
    number: int
    letter: str
    dssp: str = ""


@dataclass
class ResidueHInfo:
    """Profile information for one query residue or one chain break.

    Attributes:
        seq_nr: Sequential number in the report, breaks included
        letter: One-letter code, None for a chain break
        chain_id: Chain the residue belongs to
        dssp: DSSP columns shown in the alignment blocks
        pdb_nr: Author residue number
        column: Alignment column of the residue
        nocc: Sequences with a profile residue here, query included
        ndel: Hits with a deletion here
        nins: Hits with an insertion after this residue
        entropy: Shannon entropy of the residue distribution
        cons_weight: Dayhoff conservation of the column
        distribution: Percentage per profile residue
    """
    seq_nr: int
    letter: Optional[str] = None
    chain_id: str = ""
    dssp: str = ""
    pdb_nr: int = 0
    column: int = -1
    nocc: int = 0
    ndel: int = 0
    nins: int = 0
    entropy: float = 0.0
    cons_weight: float = 0.0
    distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def is_break(self) -> bool:
        """True for a chain-break sentinel."""
        return self.letter is None

    @property
    def variability(self) -> int:
        """Variability in percent, the complement of conservation."""
        return max(0, round_half_up(100 * (1 - self.cons_weight)))

    @property
    def relative_entropy(self) -> int:
        """Entropy as a percentage of the 20-symbol maximum."""
        return max(0, round_half_up(100 * self.entropy / MAX_ENTROPY))

    @classmethod
    def chain_break(cls, seq_nr: int) -> "ResidueHInfo":
        """Sentinel marking a break in the residue numbering."""
        return cls(seq_nr=seq_nr)


class ResidueProfileBuilder:
    """Assemble the residue profile of one chain.

    Args:
        scorer: Conservation scorer for the chain's alignment
    """

    def __init__(self, scorer: ConservationScorer):
        self.scorer = scorer

    @property
    def alignment(self) -> Alignment:
        return self.scorer.alignment

    def build(
        self,
        hits: Sequence[Hit],
        residues: Sequence[ChainResidue],
        chain_id: str = "A",
        first_seq_nr: int = 1,
    ) -> List[ResidueHInfo]:
        """Build one entry per query residue plus chain-break sentinels.

        Args:
            hits: Kept hits of this chain
            residues: Chain residues, in the order of the query row
            chain_id: Chain identifier
            first_seq_nr: Sequential number of the first entry

        Raises:
            AlignmentError: If the query row and ``residues`` disagree in length
        """
        query = self.alignment.query.residues
        result: List[ResidueHInfo] = []
        previous: Optional[ChainResidue] = None
        k = 0

        for column, letter in enumerate(query):
            if is_gap(letter):
                continue

            if k >= len(residues):
                raise AlignmentError("Alignment query is longer than the chain")
            residue = residues[k]
            k += 1

            if previous is not None and residue.number > previous.number + 1:
                result.append(ResidueHInfo.chain_break(first_seq_nr + len(result)))

            result.append(self._residue(
                letter,
                column,
                hits,
                residue,
                chain_id,
                first_seq_nr + len(result),
            ))
            previous = residue

        if k != len(residues):
            raise AlignmentError(
                f"Alignment query has {k} residues, chain {chain_id} has {len(residues)}"
            )

        logger.debug("Built profile of %d residues for chain %s", k, chain_id)
        return result

    def _residue(
        self,
        letter: str,
        column: int,
        hits: Sequence[Hit],
        residue: ChainResidue,
        chain_id: str,
        seq_nr: int,
    ) -> ResidueHInfo:
        counts = np.zeros(NUM_PROFILE_SYMBOLS, dtype=np.int64)
        nocc = 1

        ix = PROFILE_INDEX.get(letter)
        if ix is not None:
            counts[ix] += 1

        for hit in hits:
            if not hit.covers(column):
                continue
            ix = PROFILE_INDEX.get(hit.letter_at(column))
            if ix is not None:
                nocc += 1
                counts[ix] += 1

        freq = counts / nocc
        entropy = float(entr(freq).sum())
        distribution = {
            aa: round_half_up(100.0 * f) for aa, f in zip(PROFILE_ALPHABET, freq)
        }

        query = self.alignment.query.residues
        insertion_follows = column + 1 < len(query) and is_gap(query[column + 1])

        ndel = nins = 0
        for hit in hits:
            c = hit.letter_at(column)
            if is_gap(c):
                ndel += 1
            if insertion_follows and c.islower():
                nins += 1

        dssp = residue.dssp or default_dssp_fragment(residue.number, chain_id, letter)

        return ResidueHInfo(
            seq_nr=seq_nr,
            letter=letter,
            chain_id=chain_id,
            dssp=dssp[:DSSP_FRAGMENT_WIDTH].ljust(DSSP_FRAGMENT_WIDTH),
            pdb_nr=residue.number,
            column=column,
            nocc=nocc,
            ndel=ndel,
            nins=nins,
            entropy=entropy,
            cons_weight=self.scorer.score(column),
            distribution=distribution,
        )


def residues_from_sequence(sequence: str, first_number: int = 1) -> List[ChainResidue]:
    """Consecutively numbered residues for a bare sequence."""
    return [
        ChainResidue(number=first_number + i, letter=letter)
        for i, letter in enumerate(sequence)
    ]
