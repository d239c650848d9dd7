from bkptool.diff import create_differ
from bkptool.errors import ConfigError
from bkptool.snapshot.entry import Entry
from bkptool.snapshot.local import LocalSnapshotStore


def create_snapshot_store(config=None):
    """Create a snapshot store from config.

    Config keys:
        root: store root directory (required)
        diff_backend / diff_command: see bkptool.diff.create_differ
        audit_log: append backup/restore events to <root>/logs.jsonl (default True)
    """
    config = config or {}
    root = config.get("root")
    if not root:
        raise ConfigError("root is required to create a snapshot store")
    return LocalSnapshotStore(
        root,
        differ=create_differ(config),
        audit=config.get("audit_log", True),
    )


__all__ = ["Entry", "LocalSnapshotStore", "create_snapshot_store"]
