"""Application factory for the syncdocs Falcon ASGI application.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create a full app with the repository management endpoints::

    from syncdocs.api.app import AppDependencies, create_app

    deps = AppDependencies(registry=registry_service, executor=executor)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from syncdocs.api.errors import register_error_handlers
from syncdocs.api.health.resources import (
    HealthResource,
    ReadinessState,
    ReadyResource,
)

if typ.TYPE_CHECKING:
    from syncdocs.api.middleware import LifespanResources
    from syncdocs.config import AuthConfig
    from syncdocs.registry.service import RepositoryRegistryService
    from syncdocs.sync.executor import SyncTaskExecutor

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    The repository endpoints are registered only when both ``registry`` and
    ``executor`` are provided.

    Attributes
    ----------
    registry
        Service that owns repository records.
    executor
        Executor for background syncs.
    auth
        Basic auth credentials; ``/api`` routes are open when omitted or
        empty.
    lifespan
        Resources started and stopped with the ASGI lifespan.

    """

    registry: RepositoryRegistryService | None = None
    executor: SyncTaskExecutor | None = None
    auth: AuthConfig | None = None
    lifespan: LifespanResources | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None``, only ``/health``
        and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []
    readiness = ReadinessState()

    if deps.lifespan is not None:
        from syncdocs.api.middleware import LifespanManager

        middleware.append(LifespanManager(deps.lifespan))
        if deps.lifespan.readiness is not None:
            readiness = deps.lifespan.readiness

    if deps.auth is not None and deps.auth.enabled:
        from syncdocs.api.middleware import BasicAuthMiddleware

        middleware.append(BasicAuthMiddleware(deps.auth.username, deps.auth.password))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(readiness))

    if deps.registry is not None and deps.executor is not None:
        from syncdocs.api.repositories.resources import (
            RepositoryResourceDependencies,
            register_repository_routes,
        )

        register_repository_routes(
            app,
            RepositoryResourceDependencies(
                registry=deps.registry, executor=deps.executor
            ),
        )

    register_error_handlers(app)
    return app
