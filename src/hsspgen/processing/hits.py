"""Hit construction from aligned query/hit row pairs.

A hit is one homologous sequence aligned against the query, reduced to
the HSSP statistics: aligned region boundaries in query and hit numbering,
identity and similarity, gap counts and the list of insertions.

Two trimming policies decide where the aligned region starts and ends:

- ``PROFILE``: for iterative profile search output (jackhmmer). The query
  has no end gaps; only gap columns at the ends of the hit row are
  stripped, and the hit numbering comes from an ``<id>/<start>-<end>``
  suffix on the row identifier.
- ``SCORE``: for progressive aligner output (clustal-omega). Columns are
  stripped from both ends while they are a gap on either side or score
  ``<= 0`` in the substitution matrix.

Both policies share the same column scan over the trimmed region.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from hsspgen.alignment.msa import AlignedSequence, Alignment
from hsspgen.constants.matrices import SubstitutionMatrix, homology_threshold, load_substitution_matrix
from hsspgen.constants.residues import UNALIGNED_SYMBOL, is_gap
from hsspgen.exceptions import AlignmentError, DivisionError, FormatError

logger = logging.getLogger(__name__)

MAX_HITS = 9999

# jackhmmer writes hit rows as <id>/<start>-<end>
_POSITION_SUFFIX = re.compile(r"(.+)/(\d+)-(\d+)$")


class TrimPolicy(str, Enum):
    """How the aligned region of a hit row is delimited."""

    SCORE = "score"
    PROFILE = "profile"


@dataclass
class Insertion:
    """Residues present in the hit but not in the query.

    Attributes:
        query_pos: Query residue number after which the insertion occurs
        hit_pos: Hit residue number of the left anchor
        sequence: Inserted residues flanked by lower-cased anchors
    """
    query_pos: int
    hit_pos: int
    sequence: str

    @property
    def length(self) -> int:
        """Number of inserted residues, anchors excluded."""
        return len(self.sequence) - 2


@dataclass
class Hit:
    """One aligned homologue and its statistics.

    Positions ``ifir/ilas`` are 1-based query residue numbers, ``jfir/jlas``
    1-based hit residue numbers. ``aligned`` is the working copy of the hit
    row: blank outside the aligned region, insertion anchors lower-cased.
    """
    source_index: int
    chain_id: str = "A"
    id: str = ""
    accession: str = ""
    description: str = ""
    pdb_code: str = ""
    ifir: int = 0
    ilas: int = 0
    jfir: int = 0
    jlas: int = 0
    lali: int = 0
    ngap: int = 0
    lgap: int = 0
    lseq2: int = 0
    identical: int = 0
    similar: int = 0
    ide: float = 0.0
    wsim: float = 0.0
    insertions: List[Insertion] = field(default_factory=list)
    aligned: str = ""
    first_column: int = 0
    last_column: int = -1
    rank: int = 0

    def covers(self, column: int) -> bool:
        """True if alignment ``column`` lies inside the aligned region."""
        return self.first_column <= column <= self.last_column

    def letter_at(self, column: int) -> str:
        """Residue shown for this hit at ``column``."""
        if 0 <= column < len(self.aligned):
            return self.aligned[column]
        return UNALIGNED_SYMBOL


def parse_position_suffix(identifier: str) -> Tuple[str, int, int]:
    """Split ``name/12-140`` into ``("name", 12, 140)``.

    Raises:
        FormatError: If the identifier carries no position suffix
    """
    match = _POSITION_SUFFIX.match(identifier)
    if not match:
        raise FormatError(f"Alignment ID should contain position: {identifier}")
    return match.group(1), int(match.group(2)), int(match.group(3))


class HitBuilder:
    """Build :class:`Hit` records from alignment rows.

    Args:
        policy: Trimming policy matching the aligner that produced the rows
        matrix: Substitution matrix for similarity and score trimming
        apply_threshold: Keep only hits above the homology threshold in
            :meth:`build_all`
    """

    def __init__(
        self,
        policy: Union[TrimPolicy, str] = TrimPolicy.PROFILE,
        matrix: Optional[SubstitutionMatrix] = None,
        apply_threshold: bool = True,
    ):
        self.policy = TrimPolicy(policy)
        self.matrix = matrix or load_substitution_matrix("BLOSUM62")
        self.apply_threshold = apply_threshold

    def build(
        self,
        query: str,
        row: Union[AlignedSequence, str],
        source_index: int = 1,
        chain_id: str = "A",
    ) -> Hit:
        """Build a hit for one aligned row.

        Args:
            query: Aligned query row
            row: Aligned hit row, or its raw residues
            source_index: Row index of the hit in its alignment
            chain_id: Chain the query belongs to

        Raises:
            AlignmentError: Unequal or empty rows, or query end gaps under
                the profile policy
            FormatError: Missing ``/start-end`` suffix under the profile policy
            DivisionError: No aligned residue pairs remain
        """
        if isinstance(row, str):
            row = AlignedSequence(id=f"seq{source_index}", residues=row)
        subject = row.residues

        if not query or not subject:
            raise AlignmentError("Invalid (empty) sequence")
        if len(query) != len(subject):
            raise AlignmentError(
                f"Query and hit {row.id} differ in length: {len(query)} vs {len(subject)}"
            )

        hit = Hit(source_index=source_index, chain_id=chain_id, description=row.description)

        if self.policy is TrimPolicy.PROFILE:
            if is_gap(query[0]) or is_gap(query[-1]):
                raise AlignmentError("Leading (or trailing) gaps found in query sequence")
            hit.id, jfir, jlas = parse_position_suffix(row.id)
            start, end, skipped_left, skipped_right = self._profile_region(query, subject)
            hit.jfir = jfir + row.cut_left + skipped_left
            hit.jlas = jlas - row.cut_right - skipped_right
            hit_offset = hit.jfir - 1
        else:
            hit.id = row.id
            start, end = self._score_region(query, subject)
            hit_offset = row.cut_left + self._residues(subject[:start])
            hit.jfir = hit_offset + 1

        if start >= end:
            raise DivisionError(f"No aligned residues for {row.id}")

        hit.ifir = self._residues(query[:start]) + 1
        working = [UNALIGNED_SYMBOL] * len(subject)
        working[start:end] = subject[start:end]

        self._scan(hit, query, working, start, end, hit_offset)

        hit.first_column = start
        hit.last_column = end - 1
        hit.aligned = "".join(working)

        residue_count = row.cut_left + self._residues(subject) + row.cut_right
        if self.policy is TrimPolicy.SCORE:
            hit.lseq2 = residue_count
        else:
            hit.lseq2 = max(jlas, residue_count)

        if hit.lali == 0:
            raise DivisionError(f"No aligned residue pairs for {row.id}")
        hit.ide = hit.identical / hit.lali
        hit.wsim = hit.similar / hit.lali

        return hit

    def build_all(self, alignment: Alignment, chain_id: str = "A") -> List[Hit]:
        """Build hits for every non-query row of ``alignment``.

        Rows without aligned pairs and, when enabled, rows below the
        homology threshold are left out.
        """
        query = alignment.query.residues
        hits: List[Hit] = []

        for index in range(1, alignment.depth):
            row = alignment[index]
            try:
                hit = self.build(query, row, source_index=index, chain_id=chain_id)
            except DivisionError as e:
                logger.debug("Dropping %s: %s", row.id, e)
                continue

            if self.apply_threshold and not self.is_significant(hit):
                logger.debug(
                    "Dropping %s because identity %.3f is below threshold %.3f",
                    hit.id,
                    hit.ide,
                    homology_threshold(hit.lali),
                )
                continue

            hits.append(hit)

        logger.debug("Built %d of %d hits for chain %s", len(hits), alignment.depth - 1, chain_id)
        return hits

    @staticmethod
    def is_significant(hit: Hit) -> bool:
        """True if the hit's identity exceeds the threshold for its length."""
        return hit.ide > homology_threshold(hit.lali)

    # -----------------------------------------------------------------
    # Region selection
    # -----------------------------------------------------------------

    @staticmethod
    def _residues(text: Union[str, Sequence[str]]) -> int:
        return sum(1 for c in text if not is_gap(c))

    @staticmethod
    def _profile_region(query: str, subject: str) -> Tuple[int, int, int, int]:
        """Strip hit gap columns, then any overhanging hit residues.

        Returns start, end and the number of hit residues skipped on
        either side.
        """
        start, end = 0, len(subject)
        skipped_left = skipped_right = 0

        while start < end and (is_gap(subject[start]) or is_gap(query[start])):
            if not is_gap(subject[start]):
                skipped_left += 1
            start += 1

        while end > start and (is_gap(subject[end - 1]) or is_gap(query[end - 1])):
            if not is_gap(subject[end - 1]):
                skipped_right += 1
            end -= 1

        return start, end, skipped_left, skipped_right

    def _score_region(self, query: str, subject: str) -> Tuple[int, int]:
        """Strip columns with a gap on either side or a non-positive score."""
        start, end = 0, len(subject)

        while start < end and self._trimmable(query[start], subject[start]):
            start += 1

        while end > start and self._trimmable(query[end - 1], subject[end - 1]):
            end -= 1

        return start, end

    def _trimmable(self, q: str, s: str) -> bool:
        return is_gap(q) or is_gap(s) or self.matrix(q, s) <= 0

    # -----------------------------------------------------------------
    # Column scan
    # -----------------------------------------------------------------

    def _scan(
        self,
        hit: Hit,
        query: str,
        working: List[str],
        start: int,
        end: int,
        hit_offset: int,
    ) -> None:
        """Accumulate statistics and insertions over ``[start, end)``."""
        qpos = hit.ifir - 1
        hpos = hit_offset
        lali = end - start
        query_gap = hit_gap = False
        insertion: Optional[Insertion] = None

        for col in range(start, end):
            q, s = query[col], working[col]

            if is_gap(q) and is_gap(s):
                lali -= 1

            elif is_gap(s):
                if not (hit_gap or query_gap):
                    hit.ngap += 1
                hit_gap = True
                hit.lgap += 1
                lali -= 1
                qpos += 1

            elif is_gap(q):
                if not query_gap:
                    anchor = col - 1
                    while anchor > start and is_gap(working[anchor]):
                        anchor -= 1
                    working[anchor] = working[anchor].lower()
                    insertion = Insertion(query_pos=qpos, hit_pos=hpos, sequence=working[anchor] + s)
                else:
                    insertion.sequence += s

                if not (hit_gap or query_gap):
                    hit.ngap += 1
                query_gap = True
                hit.lgap += 1
                lali -= 1
                hpos += 1

            else:
                if query_gap:
                    working[col] = s = s.lower()
                    insertion.sequence += s
                    hit.insertions.append(insertion)
                    insertion = None

                hit_gap = query_gap = False

                if q.upper() == s.upper():
                    hit.identical += 1
                    hit.similar += 1
                elif self.matrix(q, s) > 0:
                    hit.similar += 1

                qpos += 1
                hpos += 1

        hit.lali = lali
        hit.ilas = qpos
        if self.policy is TrimPolicy.SCORE:
            hit.jlas = hpos
        elif hpos != hit.jlas:
            logger.debug(
                "Position suffix of %s ends at %d, alignment at %d",
                hit.id,
                hit.jlas,
                hpos,
            )


def rank_hits(hits: Sequence[Hit], max_hits: int = MAX_HITS) -> List[Hit]:
    """Sort by identity, then aligned length, cap the list and number it.

    The sort is stable, so hits that tie keep their chain-processing order.
    """
    ranked = sorted(hits, key=lambda h: (-h.ide, -h.lali))[:max_hits]
    for nr, hit in enumerate(ranked, start=1):
        hit.rank = nr
    return ranked
