"""Pytest configuration for workspace-mentions tests."""

from pathlib import Path

import pytest


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty workspace root with a sibling directory sharing its name prefix."""
    root = tmp_path / "work"
    root.mkdir()
    (tmp_path / "work2").mkdir()
    return root


@pytest.fixture
def write_file(workspace: Path):
    """Write a file under the workspace, creating parent directories."""

    def _write(relative: str, content: str | bytes) -> Path:
        path = workspace / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return _write
