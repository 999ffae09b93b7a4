"""Test setup for changelog-lint."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for pytest.

    This allows running integration tests selectively:
        pytest -m integration       # run only integration tests
        pytest -m "not integration" # skip integration tests
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (run a real git binary)",
    )


@pytest.fixture
def git_binary() -> str:
    """Path of the git binary; skips the test when git is not installed."""
    binary = shutil.which("git")
    if binary is None:
        pytest.skip("git is not installed")
    return binary
