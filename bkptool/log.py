"""Audit logging.

Appends structured JSON entries to <root>/logs.jsonl.
Each entry records a store event (backup, restore) with timestamp,
snapshot ID, and source path.
"""

import json
from datetime import datetime
from pathlib import Path

from bkptool.errors import StorageIOError
from bkptool.keys import source_key

LOGS_FILE_NAME = "logs.jsonl"


def logs_file(root):
    return Path(root) / LOGS_FILE_NAME


def write_log(root, entry):
    """Append an audit log entry."""
    path = logs_file(root)
    entry = {**entry, "timestamp": datetime.now().isoformat()}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as e:
        raise StorageIOError(f"write audit log {path}: {e}") from e


def read_logs(root, source=None):
    """Read audit entries oldest-first, optionally only those for one source path.

    Source paths match the way history buckets do, ignoring case.
    """
    path = logs_file(root)
    if not path.exists():
        return []
    try:
        text = path.read_text()
    except OSError as e:
        raise StorageIOError(f"read audit log {path}: {e}") from e

    wanted = source_key(source) if source else None
    entries = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(entry, dict):
            continue
        if wanted and source_key(str(entry.get("source", ""))) != wanted:
            continue
        entries.append(entry)
    return entries
