"""Interval trigger that runs the fleet driver in the background."""

from __future__ import annotations

import asyncio
import typing as typ

from syncdocs.logging import get_logger, log_exception, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from .fleet import FleetDriver

logger = get_logger(__name__)

DEFAULT_STOP_TIMEOUT_S = 10.0


class PeriodicSyncScheduler:
    """Run :meth:`FleetDriver.run_all` once per ``interval``.

    The first pass fires one full interval after :meth:`start`. A pass that
    overruns the interval delays the next one; passes never overlap.
    """

    def __init__(self, fleet: FleetDriver, interval: dt.timedelta) -> None:
        """Configure the scheduler with its fleet driver and interval."""
        if interval.total_seconds() <= 0:
            msg = f"interval must be positive, got: {interval}"
            raise ValueError(msg)
        self._fleet = fleet
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._stopping: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        """Return ``True`` between :meth:`start` and :meth:`stop`."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop; calling it again is a no-op."""
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._loop(self._stopping), name="periodic-sync"
        )
        log_info(
            logger,
            "Scheduled fleet sync every %.0f seconds",
            self._interval.total_seconds(),
        )

    async def stop(self, timeout: float = DEFAULT_STOP_TIMEOUT_S) -> bool:
        """Stop the loop, letting an in-flight pass finish within ``timeout``.

        Returns
        -------
        bool
            ``True`` if the loop stopped on its own, ``False`` if it had to
            be cancelled after the timeout.

        """
        task, stopping = self._task, self._stopping
        self._task = None
        self._stopping = None
        if task is None or stopping is None:
            return True

        stopping.set()
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if done:
            log_info(logger, "Periodic sync scheduler stopped")
            return True

        log_warning(
            logger,
            "Periodic sync scheduler did not stop within %.1f seconds; cancelling",
            timeout,
        )
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return False

    async def _loop(self, stopping: asyncio.Event) -> None:
        while await self._wait_for_tick(stopping):
            log_info(logger, "Running scheduled fleet sync")
            try:
                await self._fleet.run_all()
            except Exception as exc:  # noqa: BLE001 - keep the schedule alive
                log_exception(logger, "Scheduled fleet sync raised", exc)

    async def _wait_for_tick(self, stopping: asyncio.Event) -> bool:
        """Return ``True`` when the interval elapsed, ``False`` when stopping."""
        try:
            await asyncio.wait_for(
                stopping.wait(), timeout=self._interval.total_seconds()
            )
        except TimeoutError:
            return True
        return False
