"""Falcon resources for the ``/api/repositories`` management endpoints.

Usage
-----
Register the resources on the Falcon app::

    deps = RepositoryResourceDependencies(registry=service, executor=executor)
    register_repository_routes(app, deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon

from syncdocs.api.repositories.schemas import (
    CreateRepositoryRequest,
    UpdateRepositoryRequest,
    decode_body,
    serialize_details,
    serialize_summary,
)
from syncdocs.sync.errors import SyncInProgressError

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

    from syncdocs.registry.service import RepositoryRegistryService
    from syncdocs.sync.executor import SyncTaskExecutor

__all__ = [
    "RepositoryCollectionResource",
    "RepositoryDownloadResource",
    "RepositoryItemResource",
    "RepositoryResourceDependencies",
    "RepositorySyncResource",
    "register_repository_routes",
]


@dc.dataclass(frozen=True, slots=True)
class RepositoryResourceDependencies:
    """Collaborators shared by the repository resources.

    Attributes
    ----------
    registry
        Service that owns repository records.
    executor
        Executor that runs background syncs.

    """

    registry: RepositoryRegistryService
    executor: SyncTaskExecutor


class RepositoryCollectionResource:
    """``GET`` lists tracked repositories; ``POST`` registers a new one."""

    def __init__(self, dependencies: RepositoryResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._registry = dependencies.registry
        self._executor = dependencies.executor

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Return every repository, newest first, without content."""
        repositories = await self._registry.list_repositories()
        resp.media = [serialize_summary(details) for details in repositories]
        resp.status = falcon.HTTP_200

    async def on_post(self, req: Request, resp: Response) -> None:
        """Register a repository and submit its initial sync."""
        body = decode_body(await req.stream.read(), CreateRepositoryRequest)
        details = await self._registry.create_repository(
            body.url, body.docs_path, body.extensions, branch=body.branch
        )
        self._executor.submit(details.id)
        resp.media = serialize_summary(details)
        resp.status = falcon.HTTP_201


class RepositoryItemResource:
    """Read, update and delete one repository."""

    def __init__(self, dependencies: RepositoryResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._registry = dependencies.registry

    async def on_get(
        self, _req: Request, resp: Response, *, repository_id: int
    ) -> None:
        """Return the full record, including the aggregated document."""
        details = await self._registry.get_repository(repository_id)
        resp.media = serialize_details(details)
        resp.status = falcon.HTTP_200

    async def on_put(
        self, req: Request, resp: Response, *, repository_id: int
    ) -> None:
        """Change the docs path and extension allow-list."""
        body = decode_body(await req.stream.read(), UpdateRepositoryRequest)
        details = await self._registry.update_repository(
            repository_id, body.docs_path, body.extensions
        )
        resp.media = serialize_summary(details)
        resp.status = falcon.HTTP_200

    async def on_delete(
        self, _req: Request, resp: Response, *, repository_id: int
    ) -> None:
        """Stop tracking the repository."""
        await self._registry.delete_repository(repository_id)
        resp.media = {"message": f"Repository {repository_id} deleted successfully"}
        resp.status = falcon.HTTP_200


class RepositorySyncResource:
    """``POST`` submits a background sync for one repository."""

    def __init__(self, dependencies: RepositoryResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._registry = dependencies.registry
        self._executor = dependencies.executor

    async def on_post(
        self, _req: Request, resp: Response, *, repository_id: int
    ) -> None:
        """Accept the sync request, or reject it when a run is active."""
        await self._registry.get_repository(repository_id)
        if self._executor.is_syncing(repository_id):
            raise SyncInProgressError(repository_id)
        self._executor.submit(repository_id)
        resp.media = {
            "message": f"Sync triggered for repository {repository_id}",
        }
        resp.status = falcon.HTTP_202


class RepositoryDownloadResource:
    """``GET`` returns the aggregated document as a Markdown attachment."""

    def __init__(self, dependencies: RepositoryResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._registry = dependencies.registry

    async def on_get(
        self, _req: Request, resp: Response, *, repository_id: int
    ) -> None:
        """Stream the stored document, or 404 when nothing has been synced."""
        details = await self._registry.get_repository(repository_id)
        if not details.aggregated_content:
            raise falcon.HTTPNotFound(
                title="No content",
                description=(
                    "No aggregated content available for this repository yet. "
                    "Please sync first."
                ),
            )
        resp.downloadable_as = details.download_filename()
        resp.content_type = "text/markdown; charset=utf-8"
        resp.text = details.aggregated_content
        resp.status = falcon.HTTP_200


def register_repository_routes(
    app: App, dependencies: RepositoryResourceDependencies
) -> None:
    """Add the repository routes to ``app``."""
    app.add_route("/api/repositories", RepositoryCollectionResource(dependencies))
    app.add_route(
        "/api/repositories/{repository_id:int}", RepositoryItemResource(dependencies)
    )
    app.add_route(
        "/api/repositories/{repository_id:int}/sync",
        RepositorySyncResource(dependencies),
    )
    app.add_route(
        "/api/repositories/{repository_id:int}/download",
        RepositoryDownloadResource(dependencies),
    )
