"""Pipeline module for hsspgen.

Provides orchestration from chain alignments to the merged HSSP report.
"""

from hsspgen.pipeline.pipeline import (
    ChainInput,
    ChainResult,
    HSSPPipeline,
    HSSPReport,
    PipelineStats,
    create_pipeline,
)

__all__ = [
    "ChainInput",
    "ChainResult",
    "HSSPPipeline",
    "HSSPReport",
    "PipelineStats",
    "create_pipeline",
]
