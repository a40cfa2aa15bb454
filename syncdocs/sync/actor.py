"""Dramatiq actors for queue-driven repository syncs.

Usage
-----
Queue a single repository:

>>> sync_repository_job.send(
...     database_url="postgresql+asyncpg://...",
...     repository_id=7,
... )

Queue a pass over every tracked repository:

>>> sync_all_repositories_job.send(database_url="postgresql+asyncpg://...")

All actors in one worker process share a single-flight registry, so two
messages for the same repository never run concurrently within a process.
"""

from __future__ import annotations

import asyncio
import dataclasses
import threading
import typing as typ

import dramatiq
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from syncdocs.config import SyncConfig
from syncdocs.github.client import GitHubContentsClient, GitHubContentsConfig
from syncdocs.logging import get_logger, log_info
from syncdocs.registry.store import SQLAlchemyRepositoryStore
from syncdocs.sync._broker import ensure_broker_configured
from syncdocs.sync.engine import SyncEngine, SyncEngineConfig
from syncdocs.sync.errors import SyncInProgressError
from syncdocs.sync.fleet import FleetDriver
from syncdocs.sync.singleflight import SingleFlightRegistry

_T = typ.TypeVar("_T")
SessionFactory: typ.TypeAlias = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

# Process-wide caches shared by Dramatiq worker threads.
_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_SESSION_FACTORY_CACHE: dict[str, SessionFactory] = {}
_CACHE_LOCK = threading.Lock()

_SINGLE_FLIGHT = SingleFlightRegistry()


def _get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Return the cached session factory for *database_url*.

    Thread-safe: Dramatiq runs actors on several worker threads.
    """
    with _CACHE_LOCK:
        if database_url not in _SESSION_FACTORY_CACHE:
            engine = _ENGINE_CACHE.get(database_url)
            if engine is None:
                engine = create_async_engine(database_url)
                _ENGINE_CACHE[database_url] = engine
            _SESSION_FACTORY_CACHE[database_url] = async_sessionmaker(
                engine, expire_on_commit=False
            )
        return _SESSION_FACTORY_CACHE[database_url]


async def _with_sync_engine(
    database_url: str,
    async_fn: typ.Callable[
        [SyncEngine, SQLAlchemyRepositoryStore, SyncConfig], typ.Awaitable[_T]
    ],
) -> _T:
    """Build an engine for one actor invocation and close its HTTP client."""
    sync_config = SyncConfig.from_env()
    store = SQLAlchemyRepositoryStore(_get_or_create_session_factory(database_url))
    client = GitHubContentsClient(GitHubContentsConfig.from_env())
    try:
        engine = SyncEngine(
            store,
            client,
            config=SyncEngineConfig(file_timeout_s=sync_config.file_timeout_s),
            registry=_SINGLE_FLIGHT,
        )
        return await async_fn(engine, store, sync_config)
    finally:
        await client.aclose()


def _run_actor_async(
    database_url: str,
    async_fn: typ.Callable[
        [SyncEngine, SQLAlchemyRepositoryStore, SyncConfig], typ.Awaitable[_T]
    ],
) -> _T:
    """Configure the broker and run ``async_fn`` on a fresh event loop."""
    ensure_broker_configured()
    return asyncio.run(_with_sync_engine(database_url, async_fn))


@dramatiq.actor
def sync_repository_job(database_url: str, repository_id: int) -> str | None:
    """Dramatiq actor that syncs one repository.

    Parameters
    ----------
    database_url
        SQLAlchemy URL for the registry database.
    repository_id
        Id of the tracked repository.

    Returns
    -------
    str | None
        The terminal state (``"success"`` or ``"failed"``), or ``None`` when
        the repository was already syncing in this process.

    """

    async def execute(
        engine: SyncEngine,
        _store: SQLAlchemyRepositoryStore,
        _config: SyncConfig,
    ) -> str | None:
        try:
            outcome = await engine.run_one(repository_id)
        except SyncInProgressError:
            log_info(
                logger,
                "Repository %d is already syncing; dropping queued run",
                repository_id,
            )
            return None
        return outcome.state.value

    return _run_actor_async(database_url, execute)


@dramatiq.actor
def sync_all_repositories_job(database_url: str) -> dict[str, int]:
    """Dramatiq actor that runs one fleet pass over every tracked repository.

    Returns
    -------
    dict[str, int]
        The pass counters (``dispatched``, ``succeeded``, ``failed``,
        ``skipped``, ``errored``).

    """

    async def execute(
        engine: SyncEngine,
        store: SQLAlchemyRepositoryStore,
        config: SyncConfig,
    ) -> dict[str, int]:
        fleet = FleetDriver(engine, store, concurrency=config.concurrency)
        result = await fleet.run_all()
        return dataclasses.asdict(result)

    return _run_actor_async(database_url, execute)
