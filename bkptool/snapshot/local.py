import json
import os
import shutil
import stat
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from bkptool.diff import (
    BINARY_FILE_NOTICE,
    BINARY_SNAPSHOT_NOTICE,
    NO_CHANGES,
    ExternalDiffer,
    is_binary,
)
from bkptool.errors import (
    IndexOutOfRangeError,
    NoBackupsError,
    PathResolutionError,
    StorageIOError,
    TargetNotFoundError,
    UnsupportedTargetError,
)
from bkptool.keys import source_key
from bkptool.log import write_log
from bkptool.snapshot.base import SnapshotStore
from bkptool.snapshot.entry import Entry

INDEX_DIR = "index"
SNAPSHOTS_DIR = "snapshots"
SNAPSHOT_SUFFIX = ".bak"
DEFAULT_RESTORE_MODE = 0o644


class LocalSnapshotStore(SnapshotStore):
    """Per-file backup stack on local disk.

    Layout under root:
        index/<key>.json          history for one source path, oldest first
        snapshots/<key>/<id>.bak  byte-for-byte copy taken at backup time

    There is no locking: two processes working on the same path can lose an
    index update. Index rewrites are atomic, so readers never see a torn file.
    """

    def __init__(self, root, differ=None, audit=True):
        self.root = Path(os.path.abspath(os.path.expanduser(str(root))))
        self.differ = differ or ExternalDiffer()
        self.audit = audit
        for name in (INDEX_DIR, SNAPSHOTS_DIR):
            try:
                (self.root / name).mkdir(mode=0o755, parents=True, exist_ok=True)
            except OSError as e:
                raise StorageIOError(f"create {name} dir: {e}") from e

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def backup(self, path):
        resolved = resolve_path(path)

        try:
            info = os.stat(resolved)
        except (OSError, ValueError) as e:
            raise TargetNotFoundError(f"stat target {resolved}: {e}") from e
        if stat.S_ISDIR(info.st_mode):
            raise UnsupportedTargetError(f"directory backup is not supported: {resolved}")
        try:
            source = open(resolved, "rb")
        except OSError as e:
            raise TargetNotFoundError(f"open target {resolved}: {e}") from e

        with source:
            key = source_key(resolved)
            history = self._load_history(key)

            snapshot_id = _next_id(history)
            snapshot_path = self.root / SNAPSHOTS_DIR / key / f"{snapshot_id}{SNAPSHOT_SUFFIX}"
            mode = stat.S_IMODE(info.st_mode)
            try:
                write_stream(source, snapshot_path, mode)
            except OSError as e:
                raise StorageIOError(f"create snapshot: {e}") from e

        entry = Entry(
            id=snapshot_id,
            source_path=resolved,
            snapshot_path=str(snapshot_path),
            created_at=datetime.now(timezone.utc),
            size_bytes=info.st_size,
            mode=mode,
        )
        history.append(entry)
        self._save_history(key, history)

        self._audit({
            "event": "backup",
            "id": entry.id,
            "source": resolved,
            "size": entry.size_bytes,
        })
        return entry

    def list(self, path):
        resolved = resolve_path(path)
        history = self._load_history(source_key(resolved))
        if not history:
            raise NoBackupsError(f"no backups found for {resolved}")
        return list(reversed(history))

    def restore(self, path, index=0, pop=True):
        resolved = resolve_path(path)
        key = source_key(resolved)
        history = self._load_history(key)
        if not history:
            raise NoBackupsError(f"no backups found for {resolved}")

        pos = position_from_latest(len(history), index)
        entry = history[pos]

        # A symlinked target keeps its link; the bytes land in the file it points at.
        mode = entry.mode or DEFAULT_RESTORE_MODE
        try:
            copy_file(entry.snapshot_path, os.path.realpath(resolved), mode)
        except OSError as e:
            raise StorageIOError(f"restore file: {e}") from e

        if pop:
            del history[pos]
            self._save_history(key, history)

        self._audit({
            "event": "restore",
            "id": entry.id,
            "source": resolved,
            "index": index,
            "pop": pop,
        })
        return entry

    def diff(self, path):
        resolved = resolve_path(path)
        history = self._load_history(source_key(resolved))
        if not history:
            raise NoBackupsError(f"no backups found for {resolved}")

        latest = history[-1]
        if is_binary(resolved):
            return BINARY_FILE_NOTICE
        if is_binary(latest.snapshot_path):
            return BINARY_SNAPSHOT_NOTICE

        report = self.differ.compare(latest.snapshot_path, resolved)
        if report is None:
            return NO_CHANGES
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _audit(self, entry):
        """Append to the audit log. The store change is already on disk, so a failure only warns."""
        if not self.audit:
            return
        try:
            write_log(self.root, entry)
        except StorageIOError as e:
            Console(stderr=True).print(f"[yellow]warning:[/yellow] {escape(str(e))}", highlight=False)

    def _index_path(self, key):
        return self.root / INDEX_DIR / f"{key}.json"

    def _load_history(self, key):
        """Read a bucket history, oldest first. A missing index is an empty history."""
        index_path = self._index_path(key)
        try:
            raw = index_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageIOError(f"read index {index_path}: {e}") from e

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageIOError(f"decode index {index_path}: {e}") from e
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StorageIOError(f"decode index {index_path}: expected a JSON array")

        try:
            return [Entry.from_dict(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageIOError(f"decode index {index_path}: bad entry: {e}") from e

    def _save_history(self, key, history):
        index_path = self._index_path(key)
        data = json.dumps([entry.to_dict() for entry in history], indent=2, ensure_ascii=False)
        try:
            atomic_write_text(index_path, data)
        except OSError as e:
            raise StorageIOError(f"write index {index_path}: {e}") from e


def resolve_path(path):
    """Absolute, cleaned path. Symlinks are left alone."""
    try:
        return os.path.normpath(os.path.abspath(os.fspath(path)))
    except (OSError, TypeError, ValueError) as e:
        raise PathResolutionError(f"resolve path {path!r}: {e}") from e


def position_from_latest(length, index):
    """Map a backward offset (0 = latest) onto a history position."""
    if index < 0:
        raise IndexOutOfRangeError("index must be >= 0")
    latest = length - 1
    pos = latest - index
    if pos < 0 or pos > latest:
        raise IndexOutOfRangeError(
            f"backup index {index} out of range (available: 0..{latest})"
        )
    return pos


def _next_id(history):
    """Nanosecond timestamp, bumped past the newest id if the clock lags."""
    candidate = time.time_ns()
    if history:
        try:
            newest = int(history[-1].id)
        except ValueError:
            newest = None
        if newest is not None and candidate <= newest:
            candidate = newest + 1
    return str(candidate)


def copy_file(src, dst, mode):
    """Copy src's bytes over dst with the given permission bits.

    Writes a temp file beside dst and renames it into place, so dst is either
    the old file or the complete new one.
    """
    with open(src, "rb") as fin:
        write_stream(fin, dst, mode)


def write_stream(fin, dst, mode):
    """Write everything left in the binary file object fin to dst, atomically."""
    dst = Path(dst)
    dst.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dst.name}.", suffix=".tmp", dir=dst.parent)
    try:
        with os.fdopen(fd, "wb") as fout:
            shutil.copyfileobj(fin, fout)
            fout.flush()
            os.fsync(fout.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, dst)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def atomic_write_text(path, text):
    """Replace path's contents with text in one rename."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
