"""Error taxonomy for bkptool.

Every failure the store can report has its own type so the CLI can tell a
friendly "nothing backed up yet" apart from a real problem.
"""


class BkpError(Exception):
    """Base class for all bkptool failures."""


class ConfigError(BkpError):
    """Invalid or unreadable configuration."""


class PathResolutionError(BkpError):
    """A path could not be made absolute."""


class TargetNotFoundError(BkpError):
    """The backup target could not be stat'ed."""


class UnsupportedTargetError(BkpError):
    """The target is a directory (only regular files are supported)."""


class NoBackupsError(BkpError):
    """The path has no backups in its history."""


class IndexOutOfRangeError(BkpError):
    """A restore index does not address an entry in the history."""


class StorageIOError(BkpError):
    """Reading or writing the store root failed."""


class DiffExecutionError(BkpError):
    """The diff engine failed for a reason other than finding differences."""
