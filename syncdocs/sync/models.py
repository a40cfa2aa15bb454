"""Result types returned by the sync engine and fleet driver."""

from __future__ import annotations

import dataclasses
import typing as typ

from syncdocs.registry.models import SyncState

if typ.TYPE_CHECKING:
    import datetime as dt


@dataclasses.dataclass(frozen=True, slots=True)
class SyncOutcome:
    """Terminal result of one run for one repository.

    ``state`` is either ``SyncState.SUCCESS`` or ``SyncState.FAILED``.
    ``document`` holds the aggregated text on success and is empty otherwise;
    ``error`` holds the recorded failure message.
    """

    repository_id: int
    state: SyncState
    started_at: dt.datetime
    finished_at: dt.datetime
    files_synced: int = 0
    document: str = ""
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the run reached ``success``."""
        return self.state is SyncState.SUCCESS

    @property
    def duration_seconds(self) -> float:
        """Return the wall-clock duration of the run."""
        return (self.finished_at - self.started_at).total_seconds()


@dataclasses.dataclass(slots=True)
class FleetResult:
    """Summary of one fleet pass over every tracked repository.

    ``skipped`` counts repositories that were already syncing; ``errored``
    counts runs that raised instead of returning an outcome.
    """

    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errored: int = 0

    @property
    def completed(self) -> int:
        """Return the number of runs that reached any terminal result."""
        return self.succeeded + self.failed + self.skipped + self.errored
