"""Fleet driver: sync every tracked repository with bounded concurrency."""

from __future__ import annotations

import asyncio
import typing as typ

from syncdocs.logging import get_logger, log_error, log_exception, log_info
from syncdocs.registry.models import SyncState

from .errors import SyncInProgressError
from .models import FleetResult, SyncOutcome

if typ.TYPE_CHECKING:
    from .engine import RepositoryStore, SyncEngine

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 5


def _process_gathered_results(
    repository_ids: list[int],
    gathered: list[SyncOutcome | BaseException],
    result: FleetResult,
) -> None:
    """Tally gathered run results into ``result``.

    Raises
    ------
    BaseException
        Re-raised immediately for system-level exceptions such as
        ``KeyboardInterrupt`` or ``asyncio.CancelledError``.

    """
    for repository_id, item in zip(repository_ids, gathered, strict=True):
        if isinstance(item, SyncInProgressError):
            result.skipped += 1
        elif isinstance(item, Exception):
            result.errored += 1
            log_error(
                logger,
                "Sync for repository %d raised %s: %s",
                repository_id,
                type(item).__name__,
                item,
                exc_info=item,
            )
        elif isinstance(item, BaseException):
            raise item
        elif item.state is SyncState.SUCCESS:
            result.succeeded += 1
        else:
            result.failed += 1
            log_info(
                logger,
                "Sync for repository %d failed: %s",
                repository_id,
                item.error,
            )


class FleetDriver:
    """Run :meth:`SyncEngine.run_one` for every tracked repository.

    Parameters
    ----------
    engine:
        Engine used for each repository run.
    store:
        Store providing the tracked id list.
    concurrency:
        Maximum number of runs in flight at once.

    """

    def __init__(
        self,
        engine: SyncEngine,
        store: RepositoryStore,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        """Configure the driver with its engine, store and concurrency cap."""
        if concurrency < 1:
            msg = f"concurrency must be positive, got: {concurrency}"
            raise ValueError(msg)
        self._engine = engine
        self._store = store
        self._concurrency = concurrency

    @property
    def concurrency(self) -> int:
        """Return the maximum number of concurrent runs."""
        return self._concurrency

    async def run_all(self) -> FleetResult:
        """Sync every tracked repository and wait for all runs to finish.

        Per-repository failures are logged and counted, never raised.
        Repositories that are already syncing are skipped without taking a
        concurrency slot.

        Returns
        -------
        FleetResult
            Counters for the pass; empty if the id list could not be loaded.

        """
        result = FleetResult()
        try:
            repository_ids = await self._store.list_all_tracked_ids()
        except Exception as exc:  # noqa: BLE001 - a failed pass is retried next tick
            log_exception(logger, "Could not load tracked repositories", exc)
            return result

        result.dispatched = len(repository_ids)
        log_info(
            logger,
            "Starting sync for %d repositories (concurrency=%d)",
            len(repository_ids),
            self._concurrency,
        )

        runnable: list[int] = []
        for repository_id in repository_ids:
            if self._engine.is_syncing(repository_id):
                log_info(
                    logger,
                    "Repository %d is already syncing; skipping",
                    repository_id,
                )
                result.skipped += 1
                continue
            runnable.append(repository_id)

        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded_run(repository_id: int) -> SyncOutcome:
            async with semaphore:
                return await self._engine.run_one(repository_id)

        gathered = await asyncio.gather(
            *(bounded_run(repository_id) for repository_id in runnable),
            return_exceptions=True,
        )
        _process_gathered_results(runnable, gathered, result)

        log_info(
            logger,
            "Finished sync for %d repositories: succeeded=%d failed=%d "
            "skipped=%d errored=%d",
            result.dispatched,
            result.succeeded,
            result.failed,
            result.skipped,
            result.errored,
        )
        return result
