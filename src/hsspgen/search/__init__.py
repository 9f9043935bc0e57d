"""Collaborators that supply alignments and hit metadata."""

from hsspgen.search.databank import (
    Databank,
    DatabankEntry,
    FastaDatabank,
    InMemoryDatabank,
    accession_from_id,
)
from hsspgen.search.sources import (
    AlignmentSource,
    JackhmmerRunner,
    StockholmDirectorySource,
    parse_chain_pairs,
    write_fasta,
)

__all__ = [
    # Databank
    "Databank",
    "DatabankEntry",
    "FastaDatabank",
    "InMemoryDatabank",
    "accession_from_id",
    # Alignment sources
    "AlignmentSource",
    "JackhmmerRunner",
    "StockholmDirectorySource",
    "parse_chain_pairs",
    "write_fasta",
]
