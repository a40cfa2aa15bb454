"""SQLAlchemy implementation of the store consumed by the sync engine.

Every status or content write is a single UPDATE in its own transaction; the
engine sequences these writes and never needs multi-statement atomicity.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from syncdocs.common.time import utcnow
from syncdocs.registry.errors import RepositoryNotFoundError, RepositoryStoreError
from syncdocs.registry.models import RepositoryConfig, SyncState
from syncdocs.registry.storage import RepositoryRecord

SessionFactory: typ.TypeAlias = async_sessionmaker[AsyncSession]


class SQLAlchemyRepositoryStore:
    """Read configurations and record run state in the repositories table.

    Parameters
    ----------
    session_factory:
        Async session factory bound to the registry database.

    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Configure the store with a session factory."""
        self._session_factory = session_factory

    async def load_config(self, repository_id: int) -> RepositoryConfig:
        """Return the sync configuration for ``repository_id``.

        Raises
        ------
        RepositoryNotFoundError
            If no row has the given id.
        RepositoryStoreError
            If the database query fails.

        """
        try:
            async with self._session_factory() as session:
                record = await session.get(RepositoryRecord, repository_id)
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("load_config", exc) from exc

        if record is None:
            raise RepositoryNotFoundError(repository_id)
        return RepositoryConfig(
            id=record.id,
            owner=record.owner,
            name=record.name,
            branch=record.branch,
            docs_path=record.docs_path,
            extensions=record.extensions,
        )

    async def mark_syncing(self, repository_id: int) -> None:
        """Set the status to ``syncing``.

        Raises
        ------
        RepositoryNotFoundError
            If the row was deleted before the run started.

        """
        await self._update(
            repository_id,
            "mark_syncing",
            last_sync_status=SyncState.SYNCING.value,
        )

    async def mark_failed(self, repository_id: int, message: str) -> None:
        """Set the status to ``failed`` and record ``message``.

        Previously persisted content is left untouched.
        """
        await self._update(
            repository_id,
            "mark_failed",
            last_sync_status=SyncState.FAILED.value,
            last_sync_error=message,
        )

    async def mark_success(self, repository_id: int, document: str) -> None:
        """Persist ``document``, set ``success``, clear the error and stamp the time."""
        await self._update(
            repository_id,
            "mark_success",
            last_sync_status=SyncState.SUCCESS.value,
            aggregated_content=document,
            last_sync_error=None,
            last_sync_time=utcnow(),
        )

    async def list_all_tracked_ids(self) -> list[int]:
        """Return every tracked repository id in ascending order."""
        try:
            async with self._session_factory() as session:
                ids = await session.scalars(
                    select(RepositoryRecord.id).order_by(RepositoryRecord.id)
                )
                return list(ids)
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("list_all_tracked_ids", exc) from exc

    async def _update(
        self, repository_id: int, operation: str, **values: object
    ) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    update(RepositoryRecord)
                    .where(RepositoryRecord.id == repository_id)
                    .values(**values, updated_at=utcnow())
                )
                rowcount = result.rowcount
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database(operation, exc) from exc

        if rowcount == 0:
            raise RepositoryNotFoundError(repository_id)
