"""Per-repository sync engine.

One call to :meth:`SyncEngine.run_one` mirrors one repository: it claims the
single-flight slot, marks the record ``syncing``, lists the remote subtree,
filters and sorts it, fetches each file in path order, aggregates the
result and persists it. Listing and fetch failures end the run in
``failed`` and are returned as outcomes; the store is never left in
``syncing`` by a run that returns or raises.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

from syncdocs.common.time import seconds_since, utcnow
from syncdocs.logging import get_logger, log_debug, log_error, log_warning
from syncdocs.registry.errors import (
    RegistryError,
    RepositoryNotFoundError,
    RepositoryStoreError,
)
from syncdocs.registry.models import RepositoryConfig, SyncState

from .aggregate import aggregate_documents
from .errors import SyncInProgressError, SyncPersistenceError
from .filters import ExtensionFilter
from .models import SyncOutcome
from .observability import SyncEventLogger
from .singleflight import SingleFlightRegistry

if typ.TYPE_CHECKING:
    import datetime as dt

    from syncdocs.github.client import RemoteTreeClient

logger = get_logger(__name__)

CANCELLED_MESSAGE = "sync cancelled"


class RepositoryStore(typ.Protocol):
    """Store operations the engine and fleet driver depend on."""

    async def load_config(self, repository_id: int) -> RepositoryConfig:
        """Return the configuration or raise ``RepositoryNotFoundError``."""
        ...

    async def mark_syncing(self, repository_id: int) -> None:
        """Set the status to ``syncing``."""
        ...

    async def mark_failed(self, repository_id: int, message: str) -> None:
        """Set the status to ``failed`` with ``message``."""
        ...

    async def mark_success(self, repository_id: int, document: str) -> None:
        """Persist ``document`` and set the status to ``success``."""
        ...

    async def list_all_tracked_ids(self) -> list[int]:
        """Return every tracked repository id in ascending order."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class SyncEngineConfig:
    """Tuning knobs for a sync run."""

    file_timeout_s: float = 30.0


def _describe(exc: BaseException, timeout_s: float) -> str:
    if isinstance(exc, TimeoutError) and not str(exc):
        return f"timed out after {timeout_s:g}s"
    return str(exc) or type(exc).__name__


class SyncEngine:
    """Run the fetch-filter-sort-aggregate-persist pipeline for one repository.

    Parameters
    ----------
    store:
        Persistence for configuration and run state.
    client:
        Remote tree client used for listing and content fetches.
    config:
        Engine tuning; defaults to a 30 second per-file timeout.
    registry:
        Single-flight registry. Engines that must exclude each other share
        one instance; each engine gets its own when omitted.
    event_logger:
        Structured event sink; defaults to :class:`SyncEventLogger`.

    """

    def __init__(
        self,
        store: RepositoryStore,
        client: RemoteTreeClient,
        *,
        config: SyncEngineConfig | None = None,
        registry: SingleFlightRegistry | None = None,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Wire the engine to its store, client and single-flight registry."""
        self._store = store
        self._client = client
        self._config = config or SyncEngineConfig()
        self._registry = registry or SingleFlightRegistry()
        self._event_logger = event_logger or SyncEventLogger()

    @property
    def registry(self) -> SingleFlightRegistry:
        """Return the single-flight registry guarding this engine."""
        return self._registry

    def is_syncing(self, repository_id: int) -> bool:
        """Return ``True`` while a run for ``repository_id`` is active."""
        return self._registry.is_active(repository_id)

    async def run_one(self, repository_id: int) -> SyncOutcome:
        """Sync one repository and return its terminal outcome.

        Returns
        -------
        SyncOutcome
            ``success`` with the persisted document, or ``failed`` with the
            message recorded in the store.

        Raises
        ------
        SyncInProgressError
            If a run for the same id is already active. The store is not
            touched.
        RepositoryNotFoundError
            If the record was deleted before the run could start.
        SyncPersistenceError
            If the document was built but could not be stored.
        asyncio.CancelledError
            If the run was cancelled; ``failed`` is recorded first.

        """
        try:
            with self._registry.hold(repository_id):
                return await self._run_held(repository_id)
        except SyncInProgressError:
            self._event_logger.log_run_skipped(repository_id)
            raise

    async def _run_held(self, repository_id: int) -> SyncOutcome:
        started_at = utcnow()
        self._event_logger.log_run_started(repository_id, started_at)
        try:
            return await self._pipeline(repository_id, started_at)
        except asyncio.CancelledError as exc:
            await self._record_failure(repository_id, CANCELLED_MESSAGE)
            self._event_logger.log_run_failed(
                repository_id, exc, CANCELLED_MESSAGE, seconds_since(started_at)
            )
            raise
        except (RepositoryNotFoundError, SyncPersistenceError) as exc:
            self._event_logger.log_run_failed(
                repository_id, exc, str(exc), seconds_since(started_at)
            )
            raise
        except Exception as exc:
            message = f"unexpected sync error: {exc}"
            await self._record_failure(repository_id, message)
            self._event_logger.log_run_failed(
                repository_id, exc, message, seconds_since(started_at)
            )
            raise

    async def _pipeline(
        self, repository_id: int, started_at: dt.datetime
    ) -> SyncOutcome:
        try:
            await self._store.mark_syncing(repository_id)
        except RepositoryNotFoundError:
            raise
        except RepositoryStoreError as exc:
            log_warning(
                logger,
                "Could not mark repository %d as syncing; continuing: %s",
                repository_id,
                exc,
            )

        try:
            config = await self._store.load_config(repository_id)
        except Exception as exc:  # noqa: BLE001 - any load failure ends the run
            return await self._fail(
                repository_id,
                started_at,
                f"failed to fetch repository details: {exc}",
                exc,
            )

        log_debug(
            logger,
            "Fetching file list for %s (branch: %s) path %s",
            config.slug,
            config.branch,
            config.docs_path,
        )
        try:
            entries = await self._client.list_subtree(
                config.owner, config.name, config.docs_path, config.branch
            )
        except Exception as exc:  # noqa: BLE001 - recorded as the run's failure
            return await self._fail(
                repository_id,
                started_at,
                f"failed to list repository contents (branch: {config.branch}): "
                f"{exc}",
                exc,
            )

        eligible = sorted(
            ExtensionFilter.from_config(config.extensions).apply(entries),
            key=lambda entry: entry.path,
        )
        log_debug(
            logger,
            "Repository %s: %d of %d listed files match extensions %r",
            config.slug,
            len(eligible),
            len(entries),
            config.extensions,
        )

        contents: list[tuple[str, str]] = []
        for entry in eligible:
            try:
                async with asyncio.timeout(self._config.file_timeout_s):
                    content = await self._client.fetch_file_content(
                        config.owner, config.name, entry.path, config.branch
                    )
            except Exception as exc:  # noqa: BLE001 - first failure aborts the run
                reason = _describe(exc, self._config.file_timeout_s)
                return await self._fail(
                    repository_id,
                    started_at,
                    f"failed to get content for file '{entry.path}' "
                    f"(branch: {config.branch}): {reason}",
                    exc,
                )
            contents.append((entry.path, content))

        document = aggregate_documents(contents)
        await self._persist(repository_id, document)

        outcome = SyncOutcome(
            repository_id=repository_id,
            state=SyncState.SUCCESS,
            started_at=started_at,
            finished_at=utcnow(),
            files_synced=len(contents),
            document=document,
        )
        self._event_logger.log_run_completed(outcome)
        return outcome

    async def _persist(self, repository_id: int, document: str) -> None:
        try:
            await self._store.mark_success(repository_id, document)
        except RegistryError as exc:
            error = SyncPersistenceError(repository_id, str(exc))
            await self._record_failure(repository_id, str(error))
            raise error from exc

    async def _fail(
        self,
        repository_id: int,
        started_at: dt.datetime,
        message: str,
        error: BaseException,
    ) -> SyncOutcome:
        await self._record_failure(repository_id, message)
        self._event_logger.log_run_failed(
            repository_id, error, message, seconds_since(started_at)
        )
        return SyncOutcome(
            repository_id=repository_id,
            state=SyncState.FAILED,
            started_at=started_at,
            finished_at=utcnow(),
            error=message,
        )

    async def _record_failure(self, repository_id: int, message: str) -> None:
        try:
            await self._store.mark_failed(repository_id, message)
        except RegistryError as exc:
            log_error(
                logger,
                "Could not record failure for repository %d: %s",
                repository_id,
                exc,
                exc_info=exc,
            )
