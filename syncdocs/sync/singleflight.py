"""Per-repository single-flight guard.

At most one run per repository id may be active within a process. The
registry is a lock-protected set so it can be shared between event loops
running on different worker threads.
"""

from __future__ import annotations

import contextlib
import threading
import typing as typ

from .errors import SyncInProgressError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class SingleFlightRegistry:
    """Track repository ids with an active run."""

    def __init__(self) -> None:
        """Create an empty registry."""
        self._lock = threading.Lock()
        self._active: set[int] = set()

    def try_acquire(self, repository_id: int) -> bool:
        """Mark ``repository_id`` active, returning ``False`` if it already was."""
        with self._lock:
            if repository_id in self._active:
                return False
            self._active.add(repository_id)
            return True

    def release(self, repository_id: int) -> None:
        """Clear ``repository_id``; releasing an inactive id is a no-op."""
        with self._lock:
            self._active.discard(repository_id)

    def is_active(self, repository_id: int) -> bool:
        """Return ``True`` while a run for ``repository_id`` holds the slot."""
        with self._lock:
            return repository_id in self._active

    def active_ids(self) -> frozenset[int]:
        """Return a snapshot of the ids currently held."""
        with self._lock:
            return frozenset(self._active)

    @contextlib.contextmanager
    def hold(self, repository_id: int) -> cabc.Iterator[None]:
        """Hold the slot for ``repository_id`` for the duration of the block.

        Raises
        ------
        SyncInProgressError
            If another run already holds the slot.

        """
        if not self.try_acquire(repository_id):
            raise SyncInProgressError(repository_id)
        try:
            yield
        finally:
            self.release(repository_id)
