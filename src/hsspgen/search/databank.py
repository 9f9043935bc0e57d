"""Sequence databank lookups.

The pipeline resolves hit identifiers to a title, an accession number and
the full sequence length through a :class:`Databank`. Lookups that fail
raise ``KeyError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Union

from Bio import SeqIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabankEntry:
    """Metadata of one databank sequence."""
    title: str = ""
    accession: str = ""
    length: int = 0


class Databank(Protocol):
    """Protocol for the databank collaborator."""

    @property
    def version(self) -> str:
        """Version string written to the SEQBASE line."""
        ...

    def lookup(self, identifier: str) -> DatabankEntry:
        """Resolve ``identifier``; raises ``KeyError`` when unknown."""
        ...


def accession_from_id(identifier: str) -> str:
    """Accession part of a UniProt style ``db|ACC|NAME`` identifier."""
    parts = identifier.split("|")
    if len(parts) >= 3:
        return parts[1]
    return identifier


class InMemoryDatabank:
    """Databank backed by a mapping of identifier to entry."""

    def __init__(self, entries: Optional[Mapping[str, DatabankEntry]] = None, version: str = ""):
        self._entries: Dict[str, DatabankEntry] = dict(entries or {})
        self._version = version

    @property
    def version(self) -> str:
        return self._version

    def add(self, identifier: str, entry: DatabankEntry) -> None:
        self._entries[identifier] = entry

    def lookup(self, identifier: str) -> DatabankEntry:
        return self._entries[identifier]


class FastaDatabank:
    """Databank over a FASTA file, indexed with Biopython.

    The index is built lazily on the first lookup and keyed by record id.

    Args:
        path: FASTA file
        version: Version string; defaults to the file name
    """

    def __init__(self, path: Union[str, Path], version: Optional[str] = None):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Databank not found: {self.path}")
        self._version = version or self.path.name
        self._index = None

    @property
    def version(self) -> str:
        return self._version

    def lookup(self, identifier: str) -> DatabankEntry:
        if self._index is None:
            self._index = SeqIO.index(str(self.path), "fasta")
            logger.info("Indexed %d sequences in %s", len(self._index), self.path)

        record = self._index[identifier]
        title = record.description
        if title.startswith(record.id):
            title = title[len(record.id):].strip()

        return DatabankEntry(
            title=title,
            accession=accession_from_id(record.id),
            length=len(record.seq),
        )

    def close(self) -> None:
        if self._index is not None:
            self._index.close()
            self._index = None
