"""
Residue alphabets used by the HSSP profile.

Contains the 20-letter profile alphabet, its dense index and the gap
symbols accepted in aligned rows.
"""

from __future__ import annotations

from typing import Final, FrozenSet, Optional

# =============================================================================
# Profile Alphabet
# =============================================================================

# Column order of the SEQUENCE PROFILE table and of the Dayhoff matrix
PROFILE_ALPHABET: Final[str] = "VLIMFWYGAPSTCHRKQEND"

NUM_PROFILE_SYMBOLS: Final[int] = len(PROFILE_ALPHABET)

# Dense index for both cases; lower case marks insertion anchors in hit rows
PROFILE_INDEX: Final[dict[str, int]] = {
    **{aa: i for i, aa in enumerate(PROFILE_ALPHABET)},
    **{aa.lower(): i for i, aa in enumerate(PROFILE_ALPHABET)},
}

# =============================================================================
# Gaps
# =============================================================================

GAP_SYMBOLS: Final[FrozenSet[str]] = frozenset("-~._")

# Written into working copies of hit rows outside the aligned region
UNALIGNED_SYMBOL: Final[str] = " "


def is_gap(symbol: str) -> bool:
    """Return True if ``symbol`` is one of the alignment gap characters."""
    return symbol in GAP_SYMBOLS


def profile_index(symbol: str) -> Optional[int]:
    """Index of ``symbol`` in :data:`PROFILE_ALPHABET`, or None if not canonical."""
    return PROFILE_INDEX.get(symbol)


def ungapped(sequence: str) -> str:
    """Strip all gap symbols from an aligned row."""
    return "".join(c for c in sequence if c not in GAP_SYMBOLS)
