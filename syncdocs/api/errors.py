"""API exceptions and the Falcon handlers that map domain errors to HTTP.

Usage
-----
Register every handler on the Falcon app::

    from syncdocs.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from syncdocs.github.errors import GitHubAPIError
from syncdocs.logging import get_logger, log_error
from syncdocs.registry.errors import (
    DuplicateRepositoryError,
    InvalidRepositoryInputError,
    RepositoryNotFoundError,
)
from syncdocs.sync.errors import SyncInProgressError

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "InvalidInputError",
    "handle_duplicate_repository",
    "handle_github_error",
    "handle_invalid_input",
    "handle_invalid_repository_input",
    "handle_repository_not_found",
    "handle_sync_in_progress",
    "register_error_handlers",
]

logger = get_logger(__name__)


class InvalidInputError(Exception):
    """Raised for request validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


def _bad_request(resp: Response, reason: str, field: str | None) -> None:
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {"title": "Invalid input", "description": reason}
    if field is not None:
        media["field"] = field
    resp.media = media


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    _bad_request(resp, ex.reason, ex.field)


async def handle_invalid_repository_input(
    _req: Request,
    resp: Response,
    ex: InvalidRepositoryInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map registry validation failures to an HTTP 400 JSON response."""
    _bad_request(resp, ex.reason, ex.field)


async def handle_repository_not_found(
    _req: Request,
    resp: Response,
    ex: RepositoryNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RepositoryNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = {"title": "Repository not found", "description": str(ex)}


async def handle_duplicate_repository(
    _req: Request,
    resp: Response,
    ex: DuplicateRepositoryError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``DuplicateRepositoryError`` to an HTTP 409 JSON response."""
    resp.status = falcon.HTTP_409
    resp.media = {"title": "Repository already exists", "description": str(ex)}


async def handle_sync_in_progress(
    _req: Request,
    resp: Response,
    ex: SyncInProgressError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SyncInProgressError`` to an HTTP 409 JSON response."""
    resp.status = falcon.HTTP_409
    resp.media = {"title": "Sync in progress", "description": str(ex)}


async def handle_github_error(
    req: Request,
    resp: Response,
    ex: GitHubAPIError,
    _params: dict[str, typ.Any],
) -> None:
    """Map GitHub host failures during a request to an HTTP 502 response."""
    log_error(
        logger, "GitHub request failed during %s %s: %s", req.method, req.path, ex
    )
    resp.status = falcon.HTTP_502
    resp.media = {"title": "GitHub unavailable", "description": str(ex)}


def register_error_handlers(app: App) -> None:
    """Register every domain error handler on ``app``."""
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(InvalidRepositoryInputError, handle_invalid_repository_input)
    app.add_error_handler(RepositoryNotFoundError, handle_repository_not_found)
    app.add_error_handler(DuplicateRepositoryError, handle_duplicate_repository)
    app.add_error_handler(SyncInProgressError, handle_sync_in_progress)
    app.add_error_handler(GitHubAPIError, handle_github_error)
