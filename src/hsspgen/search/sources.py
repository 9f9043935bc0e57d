"""Alignment sources: where a chain's multiple sequence alignment comes from.

The core consumes completed alignments only. A source either runs
jackhmmer for the chain sequence or reads an alignment cached on disk.
Retry and backoff are left to the caller.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from hsspgen.alignment.msa import Alignment
from hsspgen.alignment.stockholm import StockholmParser
from hsspgen.config import SearchConfig
from hsspgen.exceptions import FormatError, ProcessError, SearchTimeoutError

logger = logging.getLogger(__name__)

FASTA_LINE_WIDTH = 72
LOG_TAIL_LINES = 10


class AlignmentSource(Protocol):
    """Protocol for the external aligner collaborator."""

    def submit(self, sequence: str, chain_id: str = "A") -> Alignment:
        """Return the alignment for ``sequence``."""
        ...


def write_fasta(path: Path, sequence: str, name: str = "input") -> None:
    """Write a single sequence wrapped at 72 columns."""
    with open(path, "w") as f:
        f.write(f">{name}\n")
        for offset in range(0, len(sequence), FASTA_LINE_WIDTH):
            f.write(sequence[offset:offset + FASTA_LINE_WIDTH] + "\n")


def _tail(text: str, n: int = LOG_TAIL_LINES) -> str:
    return "\n".join(text.splitlines()[-n:])


class JackhmmerRunner:
    """Run jackhmmer against ``<fasta_dir>/<databank>.fa``.

    Args:
        config: Search configuration
        parser: Stockholm parser for the ``-A`` output
        verify: Check the binary with ``-h`` on construction
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        parser: Optional[StockholmParser] = None,
        verify: bool = True,
    ):
        self.config = config or SearchConfig()
        self.parser = parser or StockholmParser()
        if verify:
            self._verify_binary()

    @property
    def database_path(self) -> Path:
        if self.config.fasta_dir is None:
            raise FileNotFoundError("No fasta_dir configured for jackhmmer")
        return Path(self.config.fasta_dir) / f"{self.config.databank}.fa"

    def _verify_binary(self) -> None:
        """Verify that the jackhmmer binary is available."""
        try:
            result = subprocess.run(
                [self.config.jackhmmer_binary, "-h"],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except FileNotFoundError:
            raise ProcessError(
                f"Jackhmmer binary not found at: {self.config.jackhmmer_binary}. "
                "Please install HMMER: conda install -c bioconda hmmer"
            )
        except subprocess.TimeoutExpired:
            raise SearchTimeoutError("Jackhmmer binary timed out during verification")

        if result.returncode != 0:
            raise ProcessError(
                f"Jackhmmer binary not functional: {result.stderr}",
                returncode=result.returncode,
                log_tail=_tail(result.stderr),
            )

    def build_command(self, query_file: Path, output_file: Path) -> List[str]:
        """Build the jackhmmer command line."""
        return [
            self.config.jackhmmer_binary,
            "-N", str(self.config.iterations),
            "--noali",
            "--cpu", str(self.config.n_cpu),
            "-A", str(output_file),
            str(query_file),
            str(self.database_path),
        ]

    def submit(self, sequence: str, chain_id: str = "A") -> Alignment:
        """Search with ``sequence`` and parse the resulting alignment.

        Raises:
            SearchTimeoutError: The run exceeded ``max_run_time``
            ProcessError: Non-zero exit, or no alignment was written
        """
        if not sequence:
            raise ValueError("Empty sequence in jackhmmer search")

        database_path = self.database_path
        if not database_path.exists():
            raise FileNotFoundError(f"Database not found: {database_path}")

        logger.info("Running jackhmmer for chain %s (%d residues)", chain_id, len(sequence))

        with tempfile.TemporaryDirectory() as tmpdir:
            query_file = Path(tmpdir) / "input.fa"
            output_file = Path(tmpdir) / "output.sto"
            write_fasta(query_file, sequence)

            try:
                result = subprocess.run(
                    self.build_command(query_file, output_file),
                    capture_output=True,
                    text=True,
                    timeout=self.config.max_run_time,
                    cwd=tmpdir,
                )
            except subprocess.TimeoutExpired:
                raise SearchTimeoutError(
                    f"jackhmmer was killed since its runtime exceeded the limit "
                    f"of {self.config.max_run_time} seconds"
                )

            if result.returncode != 0:
                log_tail = _tail(result.stdout + result.stderr)
                raise ProcessError(
                    f"jackhmmer exited with status {result.returncode}",
                    returncode=result.returncode,
                    log_tail=log_tail,
                )

            if not output_file.exists():
                raise ProcessError("Output Stockholm file is missing")

            return self.parser.parse_file(output_file)


def parse_chain_pairs(pairs: Iterable[str]) -> Dict[str, str]:
    """Turn ``["A=1abc_A", "B=1abc_B"]`` into a chain to name mapping.

    Raises:
        FormatError: For an entry that is not ``<chain>=<name>``
    """
    mapping: Dict[str, str] = {}
    for pair in pairs:
        if len(pair) < 3 or pair[1] != "=":
            raise FormatError(f"Invalid chain/stockholm pair specified: '{pair}'")
        mapping[pair[0]] = pair[2:]
    return mapping


class StockholmDirectorySource:
    """Read cached ``<name>.sto`` alignments from a directory.

    Args:
        directory: Directory holding the alignments
        chains: Chain id to file name mapping, or ``"A=name"`` pairs
        parser: Stockholm parser
    """

    def __init__(
        self,
        directory: Union[str, Path],
        chains: Union[Dict[str, str], Iterable[str]],
        parser: Optional[StockholmParser] = None,
    ):
        self.directory = Path(directory)
        self.chains = dict(chains) if isinstance(chains, dict) else parse_chain_pairs(chains)
        self.parser = parser or StockholmParser()

    def path_for(self, chain_id: str) -> Path:
        if chain_id not in self.chains:
            raise KeyError(f"No stockholm file configured for chain {chain_id}")
        return self.directory / f"{self.chains[chain_id]}.sto"

    def submit(self, sequence: str, chain_id: str = "A") -> Alignment:
        """Read the alignment of ``chain_id`` and fit it to ``sequence``."""
        path = self.path_for(chain_id)
        if not path.exists():
            raise FileNotFoundError(f"Stockholm file '{path}' not found")

        logger.debug("Reading %s for chain %s", path, chain_id)
        return self.parser.parse_file(path).fit_to_chain(sequence)
