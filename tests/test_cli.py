"""Tests for the click command surface."""

import json
import re

import pytest
from click.testing import CliRunner

from bkptool import __version__
from bkptool.cli import main


@pytest.fixture
def runner(isolated_config):
    isolated_config.parent.mkdir(parents=True, exist_ok=True)
    isolated_config.write_text(json.dumps({"diff_backend": "difflib"}))
    return CliRunner()


@pytest.fixture
def invoke(runner, root):
    def _invoke(*args):
        return runner.invoke(main, ["--root", str(root), *[str(a) for a in args]])
    return _invoke


def test_backup_prints_entry(invoke, target):
    result = invoke("backup", target)
    assert result.exit_code == 0, result.output
    assert re.match(rf"backup created: id=\d+ path={re.escape(str(target))} at=\S+Z$", result.output.strip())


def test_list_latest_first(invoke, target):
    invoke("backup", target)
    target.write_text("v2\n")
    invoke("backup", target)

    result = invoke("list", target)
    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert [line[:3] for line in lines] == ["[0]", "[1]"]
    assert "size=3" in lines[0]
    assert "snapshot=" in lines[1]


def test_list_without_backups_is_not_an_error(invoke, target):
    result = invoke("list", target)
    assert result.exit_code == 0
    assert "no backups found" in result.output


def test_restore_pops_by_default(invoke, target):
    invoke("backup", target)
    target.write_text("broken\n")

    result = invoke("restore", target)
    assert result.exit_code == 0, result.output
    assert "(index=0, pop=true)" in result.output
    assert target.read_text() == "v1\n"
    assert "no backups found" in invoke("list", target).output


def test_restore_keep_and_index(invoke, target):
    invoke("backup", target)
    target.write_text("v2\n")
    invoke("backup", target)

    result = invoke("restore", target, "-i", "1", "--keep")
    assert result.exit_code == 0, result.output
    assert "(index=1, pop=false)" in result.output
    assert target.read_text() == "v1\n"
    assert len(invoke("list", target).output.strip().splitlines()) == 2


def test_restore_out_of_range_fails(invoke, target):
    invoke("backup", target)
    result = invoke("restore", target, "--index", "5")
    assert result.exit_code == 1
    assert "out of range" in result.output


def test_restore_without_backups_fails(invoke, target):
    result = invoke("restore", target)
    assert result.exit_code == 1
    assert "no backups found for target" in result.output


def test_diff_no_changes_then_change(invoke, target):
    invoke("backup", target)
    assert invoke("diff", target).output.strip() == "no changes"

    target.write_text("v2\n")
    result = invoke("diff", target)
    assert result.exit_code == 0, result.output
    assert "-v1" in result.output
    assert "+v2" in result.output


def test_diff_without_backups_fails(invoke, target):
    result = invoke("diff", target)
    assert result.exit_code == 1
    assert "no backups found for target" in result.output


def test_backup_directory_fails(invoke, tmp_path):
    result = invoke("backup", tmp_path)
    assert result.exit_code == 1
    assert "directory" in result.output


@pytest.mark.parametrize("command", ["backup", "list", "restore", "diff"])
def test_missing_path_is_usage_error(invoke, command):
    result = invoke(command)
    assert result.exit_code == 2
    assert "Missing argument" in result.output


def test_logs_shows_events(invoke, target, monkeypatch):
    monkeypatch.setenv("COLUMNS", "240")
    assert "no logs yet" in invoke("logs").output
    invoke("backup", target)
    invoke("restore", target, "--keep")

    result = invoke("logs", target)
    assert result.exit_code == 0, result.output
    assert "backup" in result.output
    assert "restore" in result.output


def test_logs_path_filter_ignores_case(invoke, tmp_path, monkeypatch):
    monkeypatch.setenv("COLUMNS", "240")
    lower = tmp_path / "work" / "notes.txt"
    lower.parent.mkdir(parents=True, exist_ok=True)
    lower.write_text("x\n")
    invoke("backup", lower)

    result = invoke("logs", tmp_path / "work" / "NOTES.TXT")
    assert result.exit_code == 0, result.output
    assert "backup" in result.output
    assert "no logs yet" not in result.output


@pytest.mark.parametrize("limit", ["0", "-1"])
def test_logs_limit_must_be_positive(invoke, limit):
    result = invoke("logs", "--limit", limit)
    assert result.exit_code == 2
    assert "Invalid value" in result.output


def test_diff_output_keeps_tabs(invoke, target):
    target.write_text("\tindented\n")
    invoke("backup", target)
    target.write_text("\tindented more\n")

    result = invoke("diff", target)
    assert result.exit_code == 0, result.output
    assert "-\tindented\n" in result.output
    assert "+\tindented more\n" in result.output


def test_root_env_is_used(runner, root, target, monkeypatch):
    monkeypatch.setenv("BKPTOOL_ROOT", str(root))
    result = runner.invoke(main, ["backup", str(target)])
    assert result.exit_code == 0, result.output
    assert (root / "index").is_dir()


def test_bad_config_fails_cleanly(runner, isolated_config, target):
    isolated_config.write_text("{oops")
    result = runner.invoke(main, ["backup", str(target)])
    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert __version__ in result.output
