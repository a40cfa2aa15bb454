"""Errors raised by the sync engine."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for sync engine failures."""


class SyncInProgressError(SyncError):
    """Raised when a run is requested for a repository that is already syncing."""

    def __init__(self, repository_id: int) -> None:
        """Initialise with the repository that holds the single-flight slot."""
        self.repository_id = repository_id
        super().__init__(f"sync already in progress for repository {repository_id}")


class SyncPersistenceError(SyncError):
    """Raised when the aggregated document was built but could not be stored.

    The fetched content was valid; only the final write failed. Callers
    report this separately from a failed fetch.
    """

    def __init__(self, repository_id: int, reason: str) -> None:
        """Initialise with the repository id and the store failure reason."""
        self.repository_id = repository_id
        self.reason = reason
        super().__init__(
            f"failed to persist aggregated document for repository "
            f"{repository_id}: {reason}"
        )
