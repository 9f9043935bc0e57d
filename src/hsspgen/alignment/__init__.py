"""Alignment data structures, Stockholm reader and chain clustering."""

from hsspgen.alignment.clustering import ClusterResult, SequenceClusterer, cluster_sequences
from hsspgen.alignment.msa import AlignedSequence, Alignment, count_identity
from hsspgen.alignment.stockholm import StockholmParser, read_stockholm, strip_iteration_suffix

__all__ = [
    "AlignedSequence",
    "Alignment",
    "ClusterResult",
    "SequenceClusterer",
    "StockholmParser",
    "cluster_sequences",
    "count_identity",
    "read_stockholm",
    "strip_iteration_suffix",
]
