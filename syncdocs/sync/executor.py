"""Owned background execution of single-repository runs.

The API submits runs here instead of spawning detached tasks, so shutdown
and tests can wait for every submitted run to reach a terminal state.
"""

from __future__ import annotations

import asyncio
import typing as typ

from syncdocs.logging import get_logger, log_exception, log_info

from .errors import SyncInProgressError

if typ.TYPE_CHECKING:
    from .engine import SyncEngine
    from .models import SyncOutcome

logger = get_logger(__name__)


class ExecutorClosedError(RuntimeError):
    """Raised when a run is submitted after :meth:`SyncTaskExecutor.aclose`."""

    def __init__(self) -> None:
        """Attach a fixed message."""
        super().__init__("sync task executor is closed")


class SyncTaskExecutor:
    """Submit ``run_one`` calls as tasks owned by this executor."""

    def __init__(self, engine: SyncEngine) -> None:
        """Bind the executor to the engine that performs runs."""
        self._engine = engine
        self._tasks: set[asyncio.Task[SyncOutcome | None]] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        """Return the number of submitted runs that have not finished."""
        return len(self._tasks)

    def is_syncing(self, repository_id: int) -> bool:
        """Return ``True`` while any run for ``repository_id`` is active."""
        return self._engine.is_syncing(repository_id)

    def submit(self, repository_id: int) -> asyncio.Task[SyncOutcome | None]:
        """Start a run for ``repository_id`` in the background.

        The task resolves to the run's outcome, or ``None`` when the run was
        skipped or raised; it never raises itself except on cancellation.
        """
        if self._closed:
            raise ExecutorClosedError
        task = asyncio.get_running_loop().create_task(
            self._run(repository_id), name=f"sync-repository-{repository_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, repository_id: int) -> SyncOutcome | None:
        try:
            outcome = await self._engine.run_one(repository_id)
        except SyncInProgressError:
            log_info(
                logger,
                "Background sync for repository %d skipped: already syncing",
                repository_id,
            )
            return None
        except Exception as exc:  # noqa: BLE001 - background task has no caller
            log_exception(
                logger,
                f"Background sync for repository {repository_id} raised",
                exc,
            )
            return None
        log_info(
            logger,
            "Background sync for repository %d finished with status %s",
            repository_id,
            outcome.state,
        )
        return outcome

    async def drain(self) -> None:
        """Wait until every submitted run, including late submissions, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self, *, cancel: bool = False) -> None:
        """Refuse new submissions and wait for, or cancel, in-flight runs."""
        self._closed = True
        if cancel:
            for task in list(self._tasks):
                task.cancel()
        await self.drain()
