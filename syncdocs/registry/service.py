"""Repository registry service backing the management API.

The service validates create and update requests, resolves the default
branch once at creation, and converts rows into :class:`RepositoryDetails`.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import defer

from syncdocs.common.slug import parse_github_url
from syncdocs.common.time import utcnow
from syncdocs.github.errors import GitHubNotFoundError
from syncdocs.logging import get_logger, log_info
from syncdocs.registry.errors import (
    DuplicateRepositoryError,
    InvalidRepositoryInputError,
    RepositoryNotFoundError,
    RepositoryStoreError,
)
from syncdocs.registry.models import RepositoryDetails, SyncState
from syncdocs.registry.storage import RepositoryRecord
from syncdocs.sync.filters import clean_extension_list

if typ.TYPE_CHECKING:
    from syncdocs.github.client import RemoteTreeClient

SessionFactory: typ.TypeAlias = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


def _to_details(
    record: RepositoryRecord, *, include_content: bool
) -> RepositoryDetails:
    return RepositoryDetails(
        id=record.id,
        url=record.url,
        owner=record.owner,
        name=record.name,
        branch=record.branch,
        docs_path=record.docs_path,
        extensions=record.extensions,
        last_sync_status=SyncState(record.last_sync_status),
        last_sync_time=record.last_sync_time,
        last_sync_error=record.last_sync_error,
        created_at=record.created_at,
        updated_at=record.updated_at,
        aggregated_content=record.aggregated_content if include_content else None,
    )


def _clean_docs_path(docs_path: str) -> str:
    cleaned = docs_path.strip()
    if not cleaned:
        raise InvalidRepositoryInputError("docs_path", "must not be empty")
    return cleaned


def _clean_extensions(extensions: str) -> str:
    try:
        return clean_extension_list(extensions)
    except ValueError as exc:
        raise InvalidRepositoryInputError("extensions", str(exc)) from exc


class RepositoryRegistryService:
    """Create, list, update and delete tracked repositories.

    Parameters
    ----------
    session_factory:
        Async session factory bound to the registry database.
    github_client:
        Client used to resolve the default branch when a create request does
        not name one.

    """

    def __init__(
        self,
        session_factory: SessionFactory,
        github_client: RemoteTreeClient,
    ) -> None:
        """Configure the service with its database and GitHub dependencies."""
        self._session_factory = session_factory
        self._github = github_client

    async def create_repository(
        self,
        url: str,
        docs_path: str,
        extensions: str,
        branch: str | None = None,
    ) -> RepositoryDetails:
        """Register a repository and return its stored details.

        Parameters
        ----------
        url:
            ``github.com`` repository URL.
        docs_path:
            Directory (or file) within the repository to mirror.
        extensions:
            Comma-separated extension allow-list.
        branch:
            Branch to track. When omitted the repository's default branch is
            resolved once and stored.

        Returns
        -------
        RepositoryDetails
            The new record in ``pending`` state, without content.

        Raises
        ------
        InvalidRepositoryInputError
            If the URL, path or extensions are unusable, or the repository
            does not exist on GitHub.
        DuplicateRepositoryError
            If the URL is already tracked.

        """
        url = url.strip()
        try:
            owner, name = parse_github_url(url)
        except ValueError as exc:
            raise InvalidRepositoryInputError("url", str(exc)) from exc
        docs_path = _clean_docs_path(docs_path)
        extensions = _clean_extensions(extensions)

        resolved_branch = (branch or "").strip()
        if not resolved_branch:
            try:
                resolved_branch = await self._github.resolve_default_branch(
                    owner, name
                )
            except GitHubNotFoundError as exc:
                raise InvalidRepositoryInputError("url", str(exc)) from exc

        now = utcnow()
        record = RepositoryRecord(
            url=url,
            owner=owner,
            name=name,
            docs_path=docs_path,
            extensions=extensions,
            branch=resolved_branch,
            last_sync_status=SyncState.PENDING.value,
            last_sync_time=None,
            last_sync_error=None,
            aggregated_content=None,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(record)
                await session.flush()
                details = _to_details(record, include_content=False)
        except IntegrityError as exc:
            raise DuplicateRepositoryError(url) from exc
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("create_repository", exc) from exc

        log_info(
            logger,
            "Registered repository id=%d slug=%s branch=%s docs_path=%s",
            details.id,
            details.slug,
            details.branch,
            details.docs_path,
        )
        return details

    async def list_repositories(self) -> list[RepositoryDetails]:
        """Return every tracked repository, newest first, without content."""
        try:
            async with self._session_factory() as session:
                records = await session.scalars(
                    select(RepositoryRecord)
                    .options(defer(RepositoryRecord.aggregated_content))
                    .order_by(
                        RepositoryRecord.created_at.desc(), RepositoryRecord.id.desc()
                    )
                )
                return [
                    _to_details(record, include_content=False) for record in records
                ]
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("list_repositories", exc) from exc

    async def get_repository(self, repository_id: int) -> RepositoryDetails:
        """Return the full record for ``repository_id``, including content.

        Raises
        ------
        RepositoryNotFoundError
            If no repository has the given id.
        RepositoryStoreError
            If the database query fails.

        """
        try:
            async with self._session_factory() as session:
                record = await session.get(RepositoryRecord, repository_id)
                if record is None:
                    raise RepositoryNotFoundError(repository_id)
                return _to_details(record, include_content=True)
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("get_repository", exc) from exc

    async def update_repository(
        self, repository_id: int, docs_path: str, extensions: str
    ) -> RepositoryDetails:
        """Change the mirrored path and extension allow-list.

        The URL and branch are immutable; the next run picks up the change.
        """
        docs_path = _clean_docs_path(docs_path)
        extensions = _clean_extensions(extensions)
        try:
            async with self._session_factory() as session, session.begin():
                record = await session.get(RepositoryRecord, repository_id)
                if record is None:
                    raise RepositoryNotFoundError(repository_id)
                record.docs_path = docs_path
                record.extensions = extensions
                record.updated_at = utcnow()
                await session.flush()
                return _to_details(record, include_content=False)
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("update_repository", exc) from exc

    async def delete_repository(self, repository_id: int) -> None:
        """Stop tracking ``repository_id`` and drop its stored document."""
        try:
            async with self._session_factory() as session, session.begin():
                record = await session.get(RepositoryRecord, repository_id)
                if record is None:
                    raise RepositoryNotFoundError(repository_id)
                await session.delete(record)
        except SQLAlchemyError as exc:
            raise RepositoryStoreError.database("delete_repository", exc) from exc
        log_info(logger, "Deleted repository id=%d", repository_id)
