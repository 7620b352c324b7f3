"""Pytest configuration for the C4 interpreter suite."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from main import parse_source, run_source  # noqa: E402


@pytest.fixture
def run_vm():
    """Run a whole program and return the finished VM."""
    return run_source


@pytest.fixture
def run():
    """Run a whole program and return its integer result."""

    def _run(code: str) -> int:
        return run_source(code).get_result()

    return _run


@pytest.fixture
def parse():
    """Parse a program and return its top-level statements."""

    def _parse(code: str):
        program, _ = parse_source(code)
        return program

    return _parse
