import difflib
import subprocess
from abc import ABC, abstractmethod

import click
from rich.console import Console
from rich.text import Text

from bkptool.errors import ConfigError, DiffExecutionError

SNIFF_BYTES = 8000

NO_CHANGES = "no changes"
BINARY_FILE_NOTICE = "binary file detected; textual diff is not supported for this target"
BINARY_SNAPSHOT_NOTICE = "binary snapshot detected; textual diff is not supported for this target"


def is_binary(path):
    """Check if a file is binary (NUL byte in the first chunk).

    Unreadable files count as text; the diff engine reports the real error.
    """
    try:
        with open(path, "rb") as f:
            chunk = f.read(SNIFF_BYTES)
            return b"\x00" in chunk
    except OSError:
        return False


class Differ(ABC):
    """Line-oriented comparison of two files."""

    @abstractmethod
    def compare(self, old_path, new_path):
        """Return None when the files match, else unified diff text."""
        pass


class ExternalDiffer(Differ):
    """Runs `diff -u old new` and interprets its exit code."""

    def __init__(self, command="diff"):
        self.command = command

    def compare(self, old_path, new_path):
        try:
            result = subprocess.run(
                [self.command, "-u", str(old_path), str(new_path)],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise DiffExecutionError(f"run {self.command}: {e}") from e

        output = result.stdout.decode(errors="replace")
        if result.returncode == 0:
            return None
        if result.returncode == 1:
            return output
        raise DiffExecutionError(
            f"run {self.command}: exit status {result.returncode}: {output.strip()}"
        )


class UnifiedDiffer(Differ):
    """In-process unified diff built on difflib."""

    def __init__(self, context=3):
        self.context = context

    def compare(self, old_path, new_path):
        try:
            with open(old_path, "rb") as f:
                old_bytes = f.read()
            with open(new_path, "rb") as f:
                new_bytes = f.read()
        except OSError as e:
            raise DiffExecutionError(f"read for diff: {e}") from e

        if old_bytes == new_bytes:
            return None

        old_lines = old_bytes.decode(errors="replace").splitlines(keepends=True)
        new_lines = new_bytes.decode(errors="replace").splitlines(keepends=True)
        out = []
        for line in difflib.unified_diff(
            old_lines, new_lines, fromfile=str(old_path), tofile=str(new_path), n=self.context
        ):
            if not line.endswith("\n"):
                line += "\n\\ No newline at end of file\n"
            out.append(line)
        return "".join(out)


def create_differ(config=None):
    """Create a differ from config.

    Config keys:
        diff_backend: "external" (default) or "difflib"
        diff_command: executable used by the external backend
    """
    config = config or {}
    backend = config.get("diff_backend", "external")

    if backend == "external":
        return ExternalDiffer(config.get("diff_command") or "diff")

    if backend == "difflib":
        return UnifiedDiffer()

    raise ConfigError(f"Unknown diff backend: {backend!r}. Use 'external' or 'difflib'.")


def display_diff(report, console=None):
    """Render a diff report to the terminal with GitHub-style colors.

    When the console is not a terminal (a pipe or a file) the report is
    written verbatim instead, tabs included, so it can be fed to patch.
    """
    console = console or Console()

    if not console.is_terminal:
        click.echo(report.rstrip("\n"), file=console.file)
        return

    if report == NO_CHANGES:
        console.print(f"[dim]{NO_CHANGES}[/dim]")
        return
    if report in (BINARY_FILE_NOTICE, BINARY_SNAPSHOT_NOTICE):
        console.print(Text(report, style="yellow"))
        return

    for line in report.splitlines():
        if line.startswith(("+++", "---")):
            style = "bold"
        elif line.startswith("+"):
            style = "green"
        elif line.startswith("-"):
            style = "red"
        elif line.startswith("@@"):
            style = "cyan"
        else:
            style = ""
        console.print(Text(line, style=style), soft_wrap=True, highlight=False)
