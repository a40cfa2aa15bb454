"""Health probe resources for container liveness and readiness checks.

Both probes are registered on every app and are exempt from basic auth.
The readiness probe reports ``starting`` until the lifespan startup hook
has created the schema and started the scheduler.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource", "ReadinessState"]


class ReadinessState:
    """Mutable flag flipped by the lifespan middleware once startup completes."""

    def __init__(self, *, ready: bool = True) -> None:
        """Create the flag, ready unless a startup hook will flip it."""
        self.ready = ready


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Responds 200 ``{"status": "ready"}`` once ready, otherwise 503
    ``{"status": "starting"}``.
    """

    def __init__(self, state: ReadinessState | None = None) -> None:
        """Bind the resource to a readiness flag; always ready when omitted."""
        self._state = state or ReadinessState()

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        if self._state.ready:
            resp.media = {"status": "ready"}
            resp.status = HTTPStatus.OK
            return
        resp.media = {"status": "starting"}
        resp.status = HTTPStatus.SERVICE_UNAVAILABLE
