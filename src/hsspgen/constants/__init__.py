"""Static alphabets and scoring tables."""

from hsspgen.constants.matrices import (
    DAYHOFF,
    DAYHOFF_MAX,
    HOMOLOGY_THRESHOLD,
    THRESHOLD_FORMULA,
    SubstitutionMatrix,
    homology_threshold,
    homology_threshold_formula,
    load_substitution_matrix,
)
from hsspgen.constants.residues import (
    GAP_SYMBOLS,
    PROFILE_ALPHABET,
    PROFILE_INDEX,
    is_gap,
    profile_index,
    ungapped,
)

__all__ = [
    "DAYHOFF",
    "DAYHOFF_MAX",
    "GAP_SYMBOLS",
    "HOMOLOGY_THRESHOLD",
    "PROFILE_ALPHABET",
    "PROFILE_INDEX",
    "THRESHOLD_FORMULA",
    "SubstitutionMatrix",
    "homology_threshold",
    "homology_threshold_formula",
    "is_gap",
    "load_substitution_matrix",
    "profile_index",
    "ungapped",
]
