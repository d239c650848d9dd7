from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from bkptool import __version__
from bkptool.config import load_config
from bkptool.diff import display_diff
from bkptool.errors import BkpError, NoBackupsError
from bkptool.log import read_logs
from bkptool.snapshot import create_snapshot_store
from bkptool.snapshot.entry import display_time
from bkptool.snapshot.local import resolve_path


@click.group()
@click.version_option(version=__version__)
@click.option("--root", type=click.Path(file_okay=False), default=None,
              help="Store root for this command (overrides config and BKPTOOL_ROOT).")
@click.pass_context
def main(ctx, root):
    """bkptool: ergonomic local backup stack for files."""
    ctx.obj = {"root": root}


def _store(ctx):
    try:
        config = load_config(ctx.obj.get("root"))
        return create_snapshot_store(config)
    except BkpError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("path")
@click.pass_context
def backup(ctx, path):
    """Push a snapshot of PATH onto its backup stack."""
    store = _store(ctx)
    try:
        entry = store.backup(path)
    except BkpError as e:
        raise click.ClickException(str(e))
    click.echo(f"backup created: id={entry.id} path={entry.source_path} at={display_time(entry.created_at)}")


@main.command("list")
@click.argument("path")
@click.pass_context
def list_cmd(ctx, path):
    """List backups of PATH, latest first."""
    store = _store(ctx)
    try:
        entries = store.list(path)
    except NoBackupsError:
        Console().print("[dim]no backups found[/dim]")
        return
    except BkpError as e:
        raise click.ClickException(str(e))

    for idx, entry in enumerate(entries):
        click.echo(
            f"[{idx}] id={entry.id} at={display_time(entry.created_at)} "
            f"size={entry.size_bytes} snapshot={entry.snapshot_path}"
        )


@main.command()
@click.argument("path")
@click.option("-i", "--index", default=0, type=int, show_default=True,
              help="Backup index from latest (0 = latest, 1 = previous).")
@click.option("--keep", is_flag=True, help="Restore without removing the backup from the stack.")
@click.pass_context
def restore(ctx, path, index, keep):
    """Restore PATH from its backup stack (pops the entry unless --keep)."""
    store = _store(ctx)
    pop = not keep
    try:
        entry = store.restore(path, index, pop)
    except NoBackupsError:
        raise click.ClickException("no backups found for target")
    except BkpError as e:
        raise click.ClickException(str(e))
    click.echo(f"restored: id={entry.id} -> {path} (index={index}, pop={str(pop).lower()})")


@main.command()
@click.argument("path")
@click.pass_context
def diff(ctx, path):
    """Diff PATH against its latest backup."""
    store = _store(ctx)
    try:
        report = store.diff(path)
    except NoBackupsError:
        raise click.ClickException("no backups found for target")
    except BkpError as e:
        raise click.ClickException(str(e))
    display_diff(report, Console())


@main.command()
@click.argument("path", required=False)
@click.option("-n", "--limit", default=20, type=click.IntRange(min=1), show_default=True,
              help="Number of log entries to show.")
@click.pass_context
def logs(ctx, path, limit):
    """Show the audit log, optionally only for PATH."""
    store = _store(ctx)
    console = Console()

    try:
        source = resolve_path(path) if path else None
        entries = read_logs(store.root, source)
    except BkpError as e:
        raise click.ClickException(str(e))

    if not entries:
        console.print("[dim]no logs yet[/dim]")
        return

    table = Table(title="Backup Log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Source")
    table.add_column("Detail", style="dim")

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M:%S")
            except ValueError:
                pass
        event = entry.get("event", "")
        if event == "restore":
            detail = f"index={entry.get('index', 0)} pop={str(entry.get('pop', False)).lower()}"
        else:
            detail = f"size={entry.get('size', '')}"
        table.add_row(ts, event, str(entry.get("id", "")), str(entry.get("source", "")), detail)

    console.print(table)
