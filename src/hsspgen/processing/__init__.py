"""Processing modules for hits, conservation weights and residue profiles.

Per-chain processing order:
- HitBuilder: one Hit per alignment row (score-trim or profile-trim)
- WeightMatrix: pairwise sequence distances over the query columns
- ConservationScorer: weighted Dayhoff similarity per column
- ResidueProfileBuilder: one ResidueHInfo per query residue
"""

from hsspgen.processing.conservation import ConservationScorer, WeightMatrix
from hsspgen.processing.hits import (
    MAX_HITS,
    Hit,
    HitBuilder,
    Insertion,
    TrimPolicy,
    parse_position_suffix,
    rank_hits,
)
from hsspgen.processing.profile import (
    ChainResidue,
    ResidueHInfo,
    ResidueProfileBuilder,
    default_dssp_fragment,
    residues_from_sequence,
    round_half_up,
)

__all__ = [
    # Hits
    "MAX_HITS",
    "Hit",
    "HitBuilder",
    "Insertion",
    "TrimPolicy",
    "parse_position_suffix",
    "rank_hits",
    # Conservation
    "ConservationScorer",
    "WeightMatrix",
    # Profile
    "ChainResidue",
    "ResidueHInfo",
    "ResidueProfileBuilder",
    "default_dssp_fragment",
    "residues_from_sequence",
    "round_half_up",
]
