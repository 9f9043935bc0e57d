"""Chain sequence clustering.

Chains whose sequence is fully contained in another chain's sequence do
not need an alignment of their own; they are mapped onto the chain that
contains them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    """Result of chain sequence clustering.

    Attributes:
        representatives: Distinct indices that remain, in input order
        mapping: For every input index, the index of its representative
    """
    representatives: List[int]
    mapping: List[int]

    def members(self, representative: int) -> List[int]:
        """All input indices collapsed onto ``representative``."""
        return [i for i, rep in enumerate(self.mapping) if rep == representative]


class SequenceClusterer:
    """Collapse chain sequences that are substrings of other chains.

    Overlaps where both sequences have a tail of their own are not merged.
    """

    def cluster(
        self,
        sequences: Sequence[str],
        index: Optional[Sequence[int]] = None,
    ) -> ClusterResult:
        """Cluster ``sequences`` by containment.

        Args:
            sequences: Plain amino-acid sequences, one per chain
            index: Initial index map; defaults to identity

        Returns:
            ClusterResult with representatives and the full mapping
        """
        remaining = list(sequences)
        mapping = list(index) if index is not None else list(range(len(remaining)))

        while self._merge_first(remaining, mapping):
            pass

        # a representative may itself have been merged later on
        resolved = [self._root(mapping, i) for i in range(len(mapping))]

        representatives: List[int] = []
        for rep in resolved:
            if rep not in representatives:
                representatives.append(rep)

        if len(representatives) < len(sequences):
            logger.debug(
                "Clustered %d chain sequences into %d",
                len(sequences),
                len(representatives),
            )

        return ClusterResult(representatives=representatives, mapping=resolved)

    @staticmethod
    def _merge_first(remaining: List[str], mapping: List[int]) -> bool:
        """Merge the first contained pair in nested-loop order."""
        for i in range(len(remaining) - 1):
            for j in range(i + 1, len(remaining)):
                a, b = remaining[i], remaining[j]
                if not a or not b:
                    continue

                if b in a:
                    remaining[j] = ""
                    mapping[j] = i
                    return True
                if a in b:
                    remaining[i] = ""
                    mapping[i] = j
                    return True
        return False

    @staticmethod
    def _root(mapping: List[int], i: int) -> int:
        seen = set()
        while mapping[i] != i and i not in seen:
            seen.add(i)
            i = mapping[i]
        return i


def cluster_sequences(sequences: Sequence[str]) -> ClusterResult:
    """Cluster chain sequences with the default clusterer."""
    return SequenceClusterer().cluster(sequences)
