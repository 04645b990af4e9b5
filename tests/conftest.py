from pathlib import Path

import pytest

from tests.helpers import dedent


@pytest.fixture
def write_ledger(tmp_path: Path):
    """Write dedented ledger text to a file and return its path."""

    def _write(text: str, name: str = "ledger.txt") -> Path:
        path = tmp_path / name
        path.write_text(dedent(text), encoding="utf-8")
        return path

    return _write
