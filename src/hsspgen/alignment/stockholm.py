"""Stockholm alignment reader.

Reads the restricted Stockholm dialect written by jackhmmer ``-A``:

- line 1 is exactly ``# STOCKHOLM 1.0``
- line 2 is ``#=GF ID <query-id>``, optionally with an ``-i<n>`` iteration suffix
- ``#=GS <id> DE <text>`` lines announce rows and their descriptions
- data lines are ``<id> <residues>``; rows may be split over several blocks
- ``//`` terminates the alignment

Per-row identity against the query is accumulated block by block while
reading, and rows below the homology threshold are dropped before the
alignment is returned.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, TextIO, Union

from hsspgen.alignment.msa import AlignedSequence, Alignment, count_identity
from hsspgen.constants.matrices import homology_threshold
from hsspgen.exceptions import FormatError

logger = logging.getLogger(__name__)

STOCKHOLM_MARKER = "# STOCKHOLM 1.0"
ID_HEADER = "#=GF ID "
SEQUENCE_HEADER = "#=GS "
TERMINATOR = "//"

# jackhmmer appends the iteration number to the query id
_ITERATION_SUFFIX = re.compile(r"(.+?)-i\d+$")


@dataclass
class _RowBuilder:
    """Mutable accumulator for one row while blocks are being read."""
    id: str
    chunks: List[str] = field(default_factory=list)
    identical: int = 0
    length: int = 0
    description: str = ""

    def build(self) -> AlignedSequence:
        return AlignedSequence(
            id=self.id,
            residues="".join(self.chunks),
            identical_count=self.identical,
            aligned_length=self.length,
            description=self.description,
        )


def strip_iteration_suffix(identifier: str) -> str:
    """Turn ``query-i3`` into ``query``; other ids are returned unchanged."""
    match = _ITERATION_SUFFIX.match(identifier)
    if match:
        return match.group(1)
    return identifier


class StockholmParser:
    """Parse Stockholm text into an :class:`Alignment`.

    Args:
        apply_threshold: Drop rows whose identity to the query is below the
            homology threshold for their aligned length.
    """

    def __init__(self, apply_threshold: bool = True):
        self.apply_threshold = apply_threshold

    def parse(self, stream: Union[BinaryIO, TextIO, Iterable]) -> Alignment:
        """Read an alignment from a byte or text stream.

        Raises:
            FormatError: On a missing marker or ID header, a malformed data
                line, or when fewer than two rows remain.
        """
        lines = (self._decode(line) for line in stream)

        if next(lines, "").rstrip() != STOCKHOLM_MARKER:
            raise FormatError("Not a stockholm file")

        header = next(lines, "")
        if not header.startswith(ID_HEADER):
            raise FormatError("Not a valid stockholm file, missing #=GF ID line")

        query_id = strip_iteration_suffix(header[len(ID_HEADER):].strip())
        query = _RowBuilder(query_id)
        rows: Dict[str, _RowBuilder] = {query_id: query}
        query_block = ""

        for line in lines:
            line = line.rstrip()
            if not line:
                continue
            if line == TERMINATOR:
                break

            if line.startswith(SEQUENCE_HEADER):
                self._register(line[len(SEQUENCE_HEADER):], rows)
                continue

            if line.startswith("#"):
                continue

            parts = line.split()
            if len(parts) < 2:
                raise FormatError(f"Invalid stockholm data line: {line!r}")

            row_id, block = parts[0], "".join(parts[1:])

            if row_id == query_id:
                query.chunks.append(block)
                query_block = block
                continue

            row = rows.get(row_id)
            if row is None:
                row = rows[row_id] = _RowBuilder(row_id)
            row.chunks.append(block)
            self._accumulate(row, query_block, block)

        return self._finish(query, rows)

    def parse_string(self, content: str) -> Alignment:
        """Parse Stockholm content held in memory."""
        return self.parse(io.StringIO(content))

    def parse_file(self, path: Union[str, Path]) -> Alignment:
        """Parse a Stockholm file from disk."""
        with open(path, "rb") as f:
            return self.parse(f)

    @staticmethod
    def _decode(line: Union[bytes, str]) -> str:
        if isinstance(line, bytes):
            line = line.decode("ascii", errors="replace")
        return line.rstrip("\r\n")

    @staticmethod
    def _register(text: str, rows: Dict[str, _RowBuilder]) -> None:
        """Handle ``#=GS <id> <tag> <value>``; only DE values are kept."""
        parts = text.split(None, 2)
        if not parts:
            return

        row = rows.get(parts[0])
        if row is None:
            row = rows[parts[0]] = _RowBuilder(parts[0])

        if len(parts) == 3 and parts[1] == "DE":
            row.description = parts[2].strip()

    @staticmethod
    def _accumulate(row: _RowBuilder, query_block: str, block: str) -> None:
        """Count identity against the query block read just before this one."""
        if len(block) != len(query_block):
            raise FormatError(
                f"Block for {row.id} has length {len(block)}, "
                f"query block has length {len(query_block)}"
            )

        identical, length = count_identity(query_block, block)
        row.identical += identical
        row.length += length

    def _finish(self, query: _RowBuilder, rows: Dict[str, _RowBuilder]) -> Alignment:
        if not query.chunks:
            raise FormatError(f"Query sequence {query.id} missing from stockholm file")

        sequences = [query.build()]
        for row_id, row in rows.items():
            if row is query:
                continue
            if not row.chunks:
                logger.debug("Ignoring %s: announced but without residues", row_id)
                continue
            sequences.append(row.build())

        if len(sequences) < 2:
            raise FormatError("Insufficient sequences in Stockholm MSA")

        if self.apply_threshold:
            sequences = [sequences[0]] + [
                row for row in sequences[1:] if self._above_threshold(row)
            ]

        logger.debug("Read stockholm alignment with %d rows", len(sequences))
        return Alignment(sequences=sequences)

    @staticmethod
    def _above_threshold(row: AlignedSequence) -> bool:
        if row.aligned_length == 0:
            logger.debug("Dropping %s: no aligned columns", row.id)
            return False

        threshold = homology_threshold(row.aligned_length)
        if row.identity < threshold:
            logger.debug(
                "Dropping %s because identity %.3f is below threshold %.3f",
                row.id,
                row.identity,
                threshold,
            )
            return False
        return True


def read_stockholm(
    source: Union[str, Path, BinaryIO, TextIO],
    apply_threshold: bool = True,
) -> Alignment:
    """Convenience wrapper: parse a path or an open stream."""
    parser = StockholmParser(apply_threshold=apply_threshold)
    if isinstance(source, (str, Path)):
        return parser.parse_file(source)
    return parser.parse(source)
