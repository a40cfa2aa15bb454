"""Assemble the runtime object graph behind the management API.

Usage
-----
Build dependencies from a database URL::

    from syncdocs.api.factory import build_app_dependencies

    deps = build_app_dependencies(
        "sqlite+aiosqlite:///syncdocs.db",
        sync_config=SyncConfig.from_env(),
        auth_config=AuthConfig.from_env(),
        github_config=GitHubContentsConfig.from_env(),
    )

"""

from __future__ import annotations

import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from syncdocs.api.app import AppDependencies
from syncdocs.api.health.resources import ReadinessState
from syncdocs.api.middleware import LifespanResources
from syncdocs.github.client import GitHubContentsClient
from syncdocs.registry.service import RepositoryRegistryService
from syncdocs.registry.store import SQLAlchemyRepositoryStore
from syncdocs.sync.engine import SyncEngine, SyncEngineConfig
from syncdocs.sync.executor import SyncTaskExecutor
from syncdocs.sync.fleet import FleetDriver
from syncdocs.sync.scheduler import PeriodicSyncScheduler

if typ.TYPE_CHECKING:
    from syncdocs.config import AuthConfig, SyncConfig
    from syncdocs.github.client import GitHubContentsConfig

__all__ = ["build_app_dependencies"]


def build_app_dependencies(
    database_url: str,
    *,
    sync_config: SyncConfig,
    auth_config: AuthConfig,
    github_config: GitHubContentsConfig,
) -> AppDependencies:
    """Build every long-lived collaborator for the API.

    Parameters
    ----------
    database_url
        SQLAlchemy async URL for the registry database.
    sync_config
        Interval, concurrency and per-file timeout for syncs.
    auth_config
        Basic auth credentials for ``/api`` routes.
    github_config
        GitHub client configuration.

    Returns
    -------
    AppDependencies
        Dependencies including lifespan resources; the scheduler and
        schema creation start with the ASGI lifespan.

    """
    db_engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    github_client = GitHubContentsClient(github_config)

    store = SQLAlchemyRepositoryStore(session_factory)
    engine = SyncEngine(
        store,
        github_client,
        config=SyncEngineConfig(file_timeout_s=sync_config.file_timeout_s),
    )
    executor = SyncTaskExecutor(engine)
    fleet = FleetDriver(engine, store, concurrency=sync_config.concurrency)
    scheduler = PeriodicSyncScheduler(fleet, sync_config.interval)

    return AppDependencies(
        registry=RepositoryRegistryService(session_factory, github_client),
        executor=executor,
        auth=auth_config,
        lifespan=LifespanResources(
            db_engine=db_engine,
            executor=executor,
            github_client=github_client,
            scheduler=scheduler,
            readiness=ReadinessState(ready=False),
        ),
    )
