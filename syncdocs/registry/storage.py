"""SQLAlchemy persistence for tracked repositories."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from syncdocs.common.time import utcnow
from syncdocs.registry.errors import TimezoneAwareRequiredError
from syncdocs.registry.models import SyncState

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for registry models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that keeps UTC tzinfo on every backend, SQLite included."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Reject naive values and convert aware ones to UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError("datetime column value")
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Return loaded values as aware UTC datetimes."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class RepositoryRecord(Base):
    """A GitHub repository whose documentation subtree is mirrored."""

    __tablename__ = "repositories"
    __table_args__ = (Index("ix_repositories_owner_name", "owner", "name"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(255), unique=True)
    owner: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    docs_path: Mapped[str] = mapped_column(String(255))
    extensions: Mapped[str] = mapped_column(String(255))
    branch: Mapped[str] = mapped_column(String(255))
    aggregated_content: Mapped[str | None] = mapped_column(Text(), default=None)
    last_sync_status: Mapped[str] = mapped_column(
        String(16), default=SyncState.PENDING.value
    )
    last_sync_time: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    last_sync_error: Mapped[str | None] = mapped_column(Text(), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


async def init_registry_storage(engine: AsyncEngine) -> None:
    """Create the repositories table if it is absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
