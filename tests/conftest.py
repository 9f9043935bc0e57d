"""Pytest configuration and fixtures for hsspgen tests."""

from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path
from typing import Dict, Generator

import numpy as np
import pytest


# =============================================================================
# Test Data Fixtures
# =============================================================================

QUERY_SEQUENCE = "MKVLAAGIVGLLLAHSPAEAKTWEDCRGNP"

# Three jackhmmer style hits split over two blocks of 16 columns:
# - hit1 has a deletion at query residue 6
# - UniRef100_P12345 has a two-residue insertion after query residue 20
# - hit3 starts at query residue 7 and has four mismatches
SAMPLE_STOCKHOLM = """# STOCKHOLM 1.0
#=GF ID query-i1
#=GS hit1/1-29 DE First homologue
#=GS UniRef100_P12345/3-34 DE Second homologue
#=GS hit3/5-28 DE Third homologue

query                 MKVLAAGIVGLLLAHS
hit1/1-29             MKVLA-GIVGLLLAHS
UniRef100_P12345/3-34 MKVLAAGIVGLLLAHS
hit3/5-28             ------GIVGLLIAHS

query                 PAEA--KTWEDCRGNP
hit1/1-29             PAEA--KTWEDCRGNP
UniRef100_P12345/3-34 PAEAGGKTWEDCRGNP
hit3/5-28             PSEA--KTWEDCKGNA
//
"""


@pytest.fixture
def query_sequence() -> str:
    """Ungapped query of the sample alignment."""
    return QUERY_SEQUENCE


@pytest.fixture
def sample_stockholm() -> str:
    """A small Stockholm alignment in jackhmmer layout."""
    return SAMPLE_STOCKHOLM


@pytest.fixture
def sample_alignment(sample_stockholm: str):
    """The sample alignment, parsed."""
    from hsspgen.alignment.stockholm import StockholmParser

    return StockholmParser().parse_string(sample_stockholm)


@pytest.fixture
def sample_hits(sample_alignment):
    """Hits of the sample alignment under the profile policy."""
    from hsspgen.processing.hits import HitBuilder

    return HitBuilder().build_all(sample_alignment)


@pytest.fixture
def sample_residues(sample_alignment, sample_hits, query_sequence):
    """Residue profile of the sample alignment."""
    from hsspgen.processing.conservation import ConservationScorer, WeightMatrix
    from hsspgen.processing.profile import ResidueProfileBuilder, residues_from_sequence

    scorer = ConservationScorer(sample_alignment, WeightMatrix.from_alignment(sample_alignment))
    return ResidueProfileBuilder(scorer).build(sample_hits, residues_from_sequence(query_sequence))


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def stockholm_file(temp_dir: Path, sample_stockholm: str) -> Path:
    """The sample alignment written to ``1abc_A.sto``."""
    path = temp_dir / "1abc_A.sto"
    path.write_text(sample_stockholm)
    return path


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config() -> Dict:
    """Minimal configuration for testing."""
    return {
        "hits": {
            "trim_policy": "score",
            "max_hits": 500,
        },
        "report": {
            "block_width": 40,
        },
        "min_seq_length": 10,
    }


@pytest.fixture
def test_date() -> date:
    """A fixed date for reproducible testing."""
    return date(2021, 9, 30)


# =============================================================================
# Skip Markers
# =============================================================================


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "requires_external: marks tests that require external tools"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def assert_arrays_equal():
    """Fixture providing array comparison helper."""
    def _assert_arrays_equal(a: np.ndarray, b: np.ndarray, rtol: float = 1e-5):
        np.testing.assert_allclose(a, b, rtol=rtol)
    return _assert_arrays_equal
