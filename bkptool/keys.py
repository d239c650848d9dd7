import hashlib


def source_key(path):
    """Bucket key for an absolute path: sha256 hex of the lowercased path.

    Lowercasing keeps case-insensitive filesystems from splitting one file's
    history across buckets.
    """
    data = str(path).lower().encode("utf-8", "surrogateescape")
    return hashlib.sha256(data).hexdigest()
