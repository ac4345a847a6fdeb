"""Shared fixtures."""

from pathlib import Path
from typing import Dict

import pytest

from tests.helpers import build_archive


@pytest.fixture
def make_wheel(tmp_path: Path):
    """Writes an archive under tmp_path and returns its path."""

    def _make(name: str, entries: Dict[str, bytes], padding: int = 0) -> Path:
        path = tmp_path / name
        path.write_bytes(build_archive(entries, padding))
        return path

    return _make
