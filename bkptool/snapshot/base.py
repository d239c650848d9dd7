from abc import ABC, abstractmethod


class SnapshotStore(ABC):
    """Base interface for snapshot backends.

    Implementations: LocalSnapshotStore.
    """

    @abstractmethod
    def backup(self, path):
        """Push a snapshot of the file at path. Returns the new Entry."""
        pass

    @abstractmethod
    def list(self, path):
        """Entries for path, latest first."""
        pass

    @abstractmethod
    def restore(self, path, index=0, pop=True):
        """Restore the entry `index` steps back from the latest. Returns it."""
        pass

    @abstractmethod
    def diff(self, path):
        """Diff the working file against its latest snapshot. Returns report text."""
        pass
