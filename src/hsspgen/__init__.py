"""hsspgen: HSSP reports from multiple sequence alignments.

This package provides tools for:
- Parsing Stockholm alignments from jackhmmer and clustal-omega
- Building hit statistics with score-based or profile-based trimming
- Sequence weighting and per-column conservation
- Residue profiles with entropy and variability
- Writing the fixed-width HSSP report
"""

from hsspgen.config import HSSPConfig
from hsspgen.pipeline.pipeline import ChainInput, HSSPPipeline, create_pipeline

__version__ = "0.1.0"
__all__ = ["ChainInput", "HSSPConfig", "HSSPPipeline", "create_pipeline", "__version__"]
