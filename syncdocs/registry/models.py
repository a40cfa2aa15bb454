"""Value objects exchanged between the registry, the store and the engine."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from syncdocs.common.slug import repo_slug

if typ.TYPE_CHECKING:
    import datetime as dt


class SyncState(enum.StrEnum):
    """Lifecycle state of a tracked repository's last run."""

    PENDING = "pending"
    SYNCING = "syncing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclasses.dataclass(slots=True, frozen=True)
class RepositoryConfig:
    """Everything the sync engine needs to run one repository.

    ``branch`` is resolved at creation time and never empty.
    """

    id: int
    owner: str
    name: str
    branch: str
    docs_path: str
    extensions: str

    @property
    def slug(self) -> str:
        """Return ``owner/name``."""
        return repo_slug(self.owner, self.name)


@dataclasses.dataclass(slots=True, frozen=True)
class RepositoryDetails:
    """Full view of a tracked repository as exposed by the registry.

    ``aggregated_content`` is ``None`` in list views and before the first
    successful run.
    """

    id: int
    url: str
    owner: str
    name: str
    branch: str
    docs_path: str
    extensions: str
    last_sync_status: SyncState
    last_sync_time: dt.datetime | None
    last_sync_error: str | None
    created_at: dt.datetime
    updated_at: dt.datetime
    aggregated_content: str | None = None

    @property
    def slug(self) -> str:
        """Return ``owner/name``."""
        return repo_slug(self.owner, self.name)

    def download_filename(self) -> str:
        """Return the attachment filename used for the aggregated document."""
        return f"{self.name}_{self.docs_path.replace('/', '_')}_docs.md"
