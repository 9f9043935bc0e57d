"""Pairwise sequence weights and per-column conservation.

The weight of a pair of rows is their dissimilarity over the columns where
the query has a residue. Conservation of a column is the weighted mean
Dayhoff similarity of all residue pairs in it, normalised by the Dayhoff
self score, so a fully conserved column scores 1.0.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np
from scipy.spatial.distance import pdist, squareform

from hsspgen.alignment.msa import Alignment
from hsspgen.constants.matrices import DAYHOFF, DAYHOFF_MAX
from hsspgen.constants.residues import NUM_PROFILE_SYMBOLS, PROFILE_INDEX
from hsspgen.exceptions import AlignmentError

logger = logging.getLogger(__name__)


class WeightMatrix:
    """Symmetric pair weights for all rows of an alignment, query included.

    ``weight(i, j) = 1 - identical(i, j) / L`` where ``L`` counts the
    columns with a query residue and ``identical`` counts those columns in
    which rows ``i`` and ``j`` hold the same residue. The diagonal is unused
    and left at zero.
    """

    def __init__(self, values: np.ndarray):
        self.values = values

    @classmethod
    def from_alignment(cls, alignment: Alignment) -> "WeightMatrix":
        """Compute weights for every pair of rows in ``alignment``."""
        if alignment.depth < 2:
            return cls(np.zeros((alignment.depth, alignment.depth), dtype=np.float64))

        codes = alignment.get_array().astype(np.int32)
        gaps = alignment.get_gap_mask()

        query_columns = ~gaps[0]
        if not query_columns.any():
            raise AlignmentError("Query row contains no residues")

        codes = codes[:, query_columns]
        gaps = gaps[:, query_columns]

        # a distinct negative code per row keeps gap/gap columns from matching
        row_codes = -np.arange(1, alignment.depth + 1, dtype=np.int32)[:, None]
        codes = np.where(gaps, row_codes, codes)

        # the Hamming distance is the fraction of non-identical columns
        values = squareform(pdist(codes, metric="hamming"))

        logger.debug("Computed weights for %d sequences", alignment.depth)
        return cls(values)

    def __getitem__(self, pair: Tuple[int, int]) -> float:
        i, j = pair
        return float(self.values[i, j])

    def __len__(self) -> int:
        return self.values.shape[0]

    def is_symmetric(self) -> bool:
        """True if ``weight(i, j) == weight(j, i)`` for all pairs."""
        return bool(np.allclose(self.values, self.values.T))


class ConservationScorer:
    """Dayhoff based conservation for the columns of one alignment.

    Args:
        alignment: Alignment whose rows the weights refer to
        weights: Pair weights for the same rows
    """

    def __init__(self, alignment: Alignment, weights: WeightMatrix):
        if len(weights) != alignment.depth:
            raise AlignmentError(
                f"Weight matrix covers {len(weights)} rows, alignment has {alignment.depth}"
            )
        self.alignment = alignment
        self.weights = weights
        self._columns = list(zip(*(row.residues for row in alignment)))

    def profile_indices(self, column: int) -> np.ndarray:
        """Profile index of every row at ``column``; -1 for non-canonical."""
        return np.array(
            [PROFILE_INDEX.get(c, -1) for c in self._columns[column]],
            dtype=np.int64,
        )

    def score(self, column: int) -> float:
        """Conservation of ``column``, 1.0 when no pair contributes.

        Only pairs where both rows hold one of the 20 profile residues
        contribute to numerator and denominator.
        """
        indices = self.profile_indices(column)
        rows = np.flatnonzero(indices >= 0)
        if len(rows) < 2:
            return 1.0

        w = self.weights.values[np.ix_(rows, rows)]
        one_hot = np.zeros((len(rows), NUM_PROFILE_SYMBOLS), dtype=np.float64)
        one_hot[np.arange(len(rows)), indices[rows]] = 1.0

        # sums over i != j count every pair twice on both sides of the ratio
        pair_weights = one_hot.T @ w @ one_hot
        weight = w.sum() * DAYHOFF_MAX
        if weight == 0:
            return 1.0

        return float((pair_weights * DAYHOFF).sum() / weight)

    def score_all(self) -> List[float]:
        """Conservation for every column."""
        return [self.score(column) for column in range(self.alignment.width)]
