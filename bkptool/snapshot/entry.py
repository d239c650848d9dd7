"""
Entry: metadata record for one snapshot in a bucket history.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

# Up to microseconds survive; finer fractions (nanosecond writers) are cut.
_FRACTION_RE = re.compile(r"\.(\d{1,6})\d*")


@dataclass
class Entry:
    """One snapshot of a file."""

    id: str                  # nanosecond creation timestamp
    source_path: str         # absolute, cleaned path at backup time
    snapshot_path: str       # immutable copy under snapshots/<key>/
    created_at: datetime     # UTC
    size_bytes: int
    mode: int                # permission bits of the source

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk JSON shape."""
        return {
            "id": self.id,
            "sourcePath": self.source_path,
            "snapshotPath": self.snapshot_path,
            "createdAt": format_timestamp(self.created_at),
            "sizeBytes": self.size_bytes,
            "mode": self.mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Entry':
        """Create from the on-disk JSON shape."""
        return cls(
            id=str(data["id"]),
            source_path=str(data["sourcePath"]),
            snapshot_path=str(data["snapshotPath"]),
            created_at=parse_timestamp(str(data["createdAt"])),
            size_bytes=int(data.get("sizeBytes", 0)),
            mode=int(data.get("mode", 0)),
        )


def format_timestamp(value: datetime) -> str:
    """RFC 3339 in UTC with a Z suffix and microsecond fraction."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    """Parse RFC 3339 with Z or a numeric offset and any fraction length."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1).ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def display_time(value: datetime) -> str:
    """Second-resolution RFC 3339 for CLI output."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
