"""
Scoring tables: Dayhoff similarity, homology threshold and substitution matrices.

The Dayhoff matrix is the MaxHom variant used for conservation weights,
indexed by :data:`~hsspgen.constants.residues.PROFILE_ALPHABET`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Final, Tuple

import numpy as np
from Bio.Align import substitution_matrices

from hsspgen.constants.residues import NUM_PROFILE_SYMBOLS

# =============================================================================
# Dayhoff Matrix (MaxHom)
# =============================================================================

# Lower triangle, rows in V L I M F W Y G A P S T C H R K Q E N D order
_DAYHOFF_LOWER: Final[Tuple[Tuple[float, ...], ...]] = (
    (1.5,),
    (0.8, 1.5),
    (1.1, 0.8, 1.5),
    (0.6, 1.3, 0.6, 1.5),
    (0.2, 1.2, 0.7, 0.5, 1.5),
    (-0.8, 0.5, -0.5, -0.3, 1.3, 1.5),
    (-0.1, 0.3, 0.1, -0.1, 1.4, 1.1, 1.5),
    (0.2, -0.5, -0.3, -0.3, -0.6, -1.0, -0.7, 1.5),
    (0.2, -0.1, 0.0, 0.0, -0.5, -0.8, -0.3, 0.7, 1.5),
    (0.1, -0.3, -0.2, -0.2, -0.7, -0.8, -0.8, 0.3, 0.5, 1.5),
    (-0.1, -0.4, -0.1, -0.3, -0.3, 0.3, -0.4, 0.6, 0.4, 0.4, 1.5),
    (0.2, -0.1, 0.2, 0.0, -0.3, -0.6, -0.3, 0.4, 0.4, 0.3, 0.3, 1.5),
    (0.2, -0.8, 0.2, -0.6, -0.1, -1.2, 1.0, 0.2, 0.3, 0.1, 0.7, 0.2, 1.5),
    (-0.3, -0.2, -0.3, -0.3, -0.1, -0.1, 0.3, -0.2, -0.1, 0.2, -0.2, -0.1, -0.1, 1.5),
    (-0.3, -0.4, -0.3, 0.2, -0.5, 1.4, -0.6, -0.3, -0.3, 0.3, 0.1, -0.1, -0.3, 0.5, 1.5),
    (-0.2, -0.3, -0.2, 0.2, -0.7, 0.1, -0.6, -0.1, 0.0, 0.1, 0.2, 0.2, -0.6, 0.1, 0.8, 1.5),
    (-0.2, -0.1, -0.3, 0.0, -0.8, -0.5, -0.6, 0.2, 0.2, 0.3, -0.1, -0.1, -0.6, 0.7, 0.4, 0.4, 1.5),
    (-0.2, -0.3, -0.2, -0.2, -0.7, -1.1, -0.5, 0.5, 0.3, 0.1, 0.2, 0.2, -0.6, 0.4, 0.0, 0.3, 0.7, 1.5),
    (-0.3, -0.4, -0.3, -0.3, -0.5, -0.3, -0.1, 0.4, 0.2, 0.0, 0.3, 0.2, -0.3, 0.5, 0.1, 0.4, 0.4, 0.5, 1.5),
    (-0.2, -0.5, -0.2, -0.4, -1.0, -1.1, -0.5, 0.7, 0.3, 0.1, 0.2, 0.2, -0.5, 0.4, 0.0, 0.3, 0.7, 1.0, 0.7, 1.5),
)

# Score of a residue against itself; used as the normalisation weight
DAYHOFF_MAX: Final[float] = 1.5


def _symmetric_from_lower(rows: Tuple[Tuple[float, ...], ...], n: int) -> np.ndarray:
    matrix = np.zeros((n, n), dtype=np.float64)
    for i, row in enumerate(rows):
        for j, value in enumerate(row):
            matrix[i, j] = value
            matrix[j, i] = value
    matrix.setflags(write=False)
    return matrix


DAYHOFF: Final[np.ndarray] = _symmetric_from_lower(_DAYHOFF_LOWER, NUM_PROFILE_SYMBOLS)

# =============================================================================
# Homology Threshold
# =============================================================================

# t(L) = 290.15 * L ** -0.562 + 5 (in percent), for L = 10..80
THRESHOLD_MIN_LENGTH: Final[int] = 10
THRESHOLD_MAX_LENGTH: Final[int] = 80
THRESHOLD_FORMULA: Final[str] = "t(L)=(290.15 * L ** -0.562) + 5"


def homology_threshold_formula(length: float) -> float:
    """Closed form of the HSSP homology threshold as a fraction."""
    return 2.9015 * length ** -0.562 + 0.05


HOMOLOGY_THRESHOLD: Final[Tuple[float, ...]] = tuple(
    homology_threshold_formula(length)
    for length in range(THRESHOLD_MIN_LENGTH, THRESHOLD_MAX_LENGTH + 1)
)


def homology_threshold(lali: int) -> float:
    """Minimum identity for a hit with ``lali`` aligned residues.

    Lengths outside 10..80 are clamped to the nearest table entry.
    """
    length = max(THRESHOLD_MIN_LENGTH, min(lali, THRESHOLD_MAX_LENGTH))
    return HOMOLOGY_THRESHOLD[length - THRESHOLD_MIN_LENGTH]


# =============================================================================
# Substitution Matrices
# =============================================================================


class SubstitutionMatrix:
    """Case-insensitive residue pair scoring on top of a Biopython matrix.

    Symbols outside the matrix alphabet score as ``X``.
    """

    def __init__(self, name: str = "BLOSUM62"):
        self.name = name
        self._matrix = substitution_matrices.load(name)
        self._alphabet = frozenset(self._matrix.alphabet)

    def _symbol(self, residue: str) -> str:
        residue = residue.upper()
        return residue if residue in self._alphabet else "X"

    def score(self, a: str, b: str) -> float:
        """Score the aligned pair ``(a, b)``."""
        return float(self._matrix[self._symbol(a), self._symbol(b)])

    def __call__(self, a: str, b: str) -> float:
        return self.score(a, b)


@lru_cache(maxsize=None)
def load_substitution_matrix(name: str = "BLOSUM62") -> SubstitutionMatrix:
    """Load a named matrix once per process."""
    return SubstitutionMatrix(name)
