"""Configuration management for hsspgen.

This module defines the configuration options for report generation:
hit construction, report layout and the external search collaborator.
Values are resolved here and handed to the core as plain arguments.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from hsspgen.processing.hits import MAX_HITS, TrimPolicy


class HitConfig(BaseModel):
    """Configuration for hit construction and filtering."""

    trim_policy: TrimPolicy = Field(
        default=TrimPolicy.PROFILE,
        description="Trimming policy: 'profile' for jackhmmer, 'score' for clustal-omega"
    )
    substitution_matrix: str = Field(
        default="BLOSUM62", description="Matrix used for similarity and score trimming"
    )
    max_hits: int = Field(default=MAX_HITS, description="Maximum hits in the report")
    apply_threshold: bool = Field(
        default=True, description="Drop hits below the homology threshold"
    )

    @field_validator("max_hits")
    @classmethod
    def _check_max_hits(cls, value: int) -> int:
        if not 0 < value <= MAX_HITS:
            raise ValueError(f"max_hits must be between 1 and {MAX_HITS}")
        return value


class ReportConfig(BaseModel):
    """Configuration for the HSSP report layout."""

    block_width: int = Field(default=70, description="Hits per ALIGNMENTS block")
    insertion_line_width: int = Field(
        default=100, description="Residues per INSERTION LIST line"
    )
    version: str = Field(default="2.0", description="Version in the HSSP line")
    contact: str = Field(default="hsspgen maintainers", description="CONTACT line")

    @field_validator("block_width")
    @classmethod
    def _check_block_width(cls, value: int) -> int:
        if value <= 0 or value % 10:
            raise ValueError("block_width must be a positive multiple of 10")
        return value


class SearchConfig(BaseModel):
    """Configuration for the external jackhmmer search."""

    jackhmmer_binary: str = Field(default="jackhmmer", description="Path to jackhmmer")
    fasta_dir: Optional[Path] = Field(
        default=None, description="Directory holding <databank>.fa"
    )
    databank: str = Field(default="uniprot", description="Databank name")
    iterations: int = Field(default=5, description="Number of iterations (-N)")
    max_run_time: int = Field(default=300, description="Seconds before the search is killed")
    n_cpu: int = Field(default=2, description="Number of CPU cores (--cpu)")
    stockholm_dir: Optional[Path] = Field(
        default=None, description="Directory with cached <name>.sto alignments"
    )


class HSSPConfig(BaseSettings):
    """Main configuration for hsspgen."""

    hits: HitConfig = Field(default_factory=HitConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    min_seq_length: int = Field(
        default=25, description="Chains shorter than this are not used"
    )
    skip_failed_chains: bool = Field(
        default=False, description="Report the remaining chains when one fails"
    )

    model_config = {"env_prefix": "HSSP_"}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "HSSPConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return self.model_dump()
