"""Shared pytest fixtures."""

import pytest

from bkptool.diff import UnifiedDiffer
from bkptool.snapshot.local import LocalSnapshotStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.config/bkptool and BKPTOOL_ROOT."""
    config_file = tmp_path / "config" / "bkptool.json"
    monkeypatch.setenv("BKPTOOL_CONFIG", str(config_file))
    monkeypatch.delenv("BKPTOOL_ROOT", raising=False)
    return config_file


@pytest.fixture
def root(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def store(root):
    return LocalSnapshotStore(root, differ=UnifiedDiffer())


@pytest.fixture
def target(tmp_path):
    path = tmp_path / "work" / "a.txt"
    path.parent.mkdir()
    path.write_text("v1\n")
    return path
