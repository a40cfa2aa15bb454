"""Falcon middleware for basic auth and application lifespan.

Usage
-----
Register the middleware when creating the Falcon app::

    app = falcon.asgi.App(
        middleware=[
            LifespanManager(resources),
            BasicAuthMiddleware("admin", "secret"),
        ]
    )

"""

from __future__ import annotations

import base64
import binascii
import dataclasses as dc
import secrets
import typing as typ

import falcon

from syncdocs.logging import get_logger, log_info, log_warning
from syncdocs.registry.storage import init_registry_storage

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncEngine

    from syncdocs.api.health.resources import ReadinessState
    from syncdocs.github.client import GitHubContentsClient
    from syncdocs.sync.executor import SyncTaskExecutor
    from syncdocs.sync.scheduler import PeriodicSyncScheduler

__all__ = ["BasicAuthMiddleware", "LifespanManager", "LifespanResources"]

logger = get_logger(__name__)

_PROTECTED_PREFIX = "/api"
_BASIC_SCHEME = "basic"


def _decode_basic_credentials(header: str | None) -> tuple[str, str] | None:
    """Return ``(username, password)`` from a Basic header, or ``None``."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != _BASIC_SCHEME or not token:
        return None
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware:
    """Require HTTP basic credentials on every ``/api`` route.

    Health probes and any route outside ``/api`` are left open.

    Parameters
    ----------
    username
        Expected user name.
    password
        Expected password.
    realm
        Realm advertised in the ``WWW-Authenticate`` challenge.

    """

    def __init__(
        self, username: str, password: str, *, realm: str = "syncdocs"
    ) -> None:
        """Store the expected credentials."""
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")
        self._challenge = f'Basic realm="{realm}"'

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Reject unauthenticated requests to protected routes with 401."""
        if not req.path.startswith(_PROTECTED_PREFIX):
            return
        credentials = _decode_basic_credentials(req.get_header("Authorization"))
        if credentials is not None and self._matches(*credentials):
            return
        raise falcon.HTTPUnauthorized(
            title="Authentication required",
            description="Valid basic auth credentials are required.",
            challenges=[self._challenge],
        )

    def _matches(self, username: str, password: str) -> bool:
        # Both comparisons always run.
        user_ok = secrets.compare_digest(username.encode("utf-8"), self._username)
        pass_ok = secrets.compare_digest(password.encode("utf-8"), self._password)
        return user_ok and pass_ok


@dc.dataclass(frozen=True, slots=True)
class LifespanResources:
    """Long-lived objects started and stopped with the ASGI app.

    Attributes
    ----------
    db_engine
        Database engine; the schema is created at startup and the pool
        disposed at shutdown.
    executor
        Background sync executor drained at shutdown.
    github_client
        GitHub client closed at shutdown.
    scheduler
        Optional periodic scheduler started and stopped with the app.
    readiness
        Optional readiness flag set once startup completes.

    """

    db_engine: AsyncEngine
    executor: SyncTaskExecutor
    github_client: GitHubContentsClient
    scheduler: PeriodicSyncScheduler | None = None
    readiness: ReadinessState | None = None


class LifespanManager:
    """Run startup and shutdown hooks from ASGI lifespan events."""

    def __init__(self, resources: LifespanResources) -> None:
        """Bind the manager to the resources it owns."""
        self._resources = resources

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create the schema, start the scheduler and mark the app ready."""
        await init_registry_storage(self._resources.db_engine)
        if self._resources.scheduler is not None:
            self._resources.scheduler.start()
        if self._resources.readiness is not None:
            self._resources.readiness.ready = True
        log_info(logger, "syncdocs startup complete")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop the scheduler, drain runs and release connections."""
        if self._resources.readiness is not None:
            self._resources.readiness.ready = False
        if self._resources.scheduler is not None:
            stopped = await self._resources.scheduler.stop()
            if not stopped:
                log_warning(logger, "Scheduler was cancelled during shutdown")
        await self._resources.executor.aclose()
        await self._resources.github_client.aclose()
        await self._resources.db_engine.dispose()
        log_info(logger, "syncdocs shutdown complete")
