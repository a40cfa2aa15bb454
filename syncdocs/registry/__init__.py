"""Repository registry: persisted configuration and run state.

Usage
-----
Register a repository and inspect it::

    from syncdocs.registry import RepositoryRegistryService

    service = RepositoryRegistryService(session_factory, github_client)
    details = await service.create_repository(
        "https://github.com/octo/reef", "docs", "md,mdx"
    )
    print(details.branch, details.last_sync_status)

The sync engine reads configuration and records run state through
:class:`SQLAlchemyRepositoryStore`.

"""

from syncdocs.registry.errors import (
    DuplicateRepositoryError,
    InvalidRepositoryInputError,
    RegistryError,
    RepositoryNotFoundError,
    RepositoryStoreError,
)
from syncdocs.registry.models import RepositoryConfig, RepositoryDetails, SyncState
from syncdocs.registry.service import RepositoryRegistryService
from syncdocs.registry.storage import RepositoryRecord, init_registry_storage
from syncdocs.registry.store import SQLAlchemyRepositoryStore

__all__ = [
    "DuplicateRepositoryError",
    "InvalidRepositoryInputError",
    "RegistryError",
    "RepositoryConfig",
    "RepositoryDetails",
    "RepositoryNotFoundError",
    "RepositoryRecord",
    "RepositoryRegistryService",
    "RepositoryStoreError",
    "SQLAlchemyRepositoryStore",
    "SyncState",
    "init_registry_storage",
]
