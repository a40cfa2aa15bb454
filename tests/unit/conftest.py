"""Unit-test fixtures for the registry and sync engine."""

from __future__ import annotations

import typing as typ

import pytest

from syncdocs.registry.service import RepositoryRegistryService
from syncdocs.registry.store import SQLAlchemyRepositoryStore
from tests.unit.sync_test_helpers import FakeTreeClient

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@pytest.fixture
def tree_client() -> FakeTreeClient:
    """Return an empty fake GitHub tree client."""
    return FakeTreeClient()


@pytest.fixture
def registry_service(
    session_factory: async_sessionmaker[AsyncSession],
    tree_client: FakeTreeClient,
) -> RepositoryRegistryService:
    """Return a registry service bound to the sqlite test database."""
    return RepositoryRegistryService(session_factory, tree_client)


@pytest.fixture
def repository_store(
    session_factory: async_sessionmaker[AsyncSession],
) -> SQLAlchemyRepositoryStore:
    """Return the SQLAlchemy store bound to the sqlite test database."""
    return SQLAlchemyRepositoryStore(session_factory)


@pytest.fixture
def create_repository(
    registry_service: RepositoryRegistryService,
) -> cabc.Callable[..., cabc.Awaitable[int]]:
    """Return a helper that registers a repository and yields its id."""

    async def _create(
        url: str = "https://github.com/octo/reef",
        docs_path: str = "docs",
        extensions: str = "md",
        branch: str | None = "main",
    ) -> int:
        details = await registry_service.create_repository(
            url, docs_path, extensions, branch=branch
        )
        return details.id

    return _create
