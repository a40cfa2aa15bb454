"""syncdocs runtime entrypoint.

This module provides the ASGI application factory used by Granian and the
``syncdocs`` console script.

When ``SYNCDOCS_DATABASE_URL`` is set, the runtime builds the full object
graph (registry, sync engine, executor, scheduler) so the app serves the
repository management endpoints and syncs on a schedule. Otherwise it starts
in health-only mode.

Configuration is driven by environment variables:

- ``SYNCDOCS_HOST``: Bind address (default ``0.0.0.0``)
- ``SYNCDOCS_PORT``: Listen port (default ``8080``)
- ``SYNCDOCS_LOG_LEVEL``: Log level (default ``INFO``)
- ``SYNCDOCS_DATABASE_URL``: Database connection URL
- ``SYNCDOCS_GITHUB_TOKEN`` / ``SYNCDOCS_GITHUB_API_URL``: GitHub access
- ``SYNCDOCS_SYNC_INTERVAL``, ``SYNCDOCS_SYNC_CONCURRENCY``,
  ``SYNCDOCS_FILE_TIMEOUT_SECONDS``: sync tuning
- ``SYNCDOCS_AUTH_USER`` / ``SYNCDOCS_AUTH_PASS``: basic auth for ``/api``

Run the service directly with ``python -m syncdocs.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from syncdocs.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid SYNCDOCS_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        The full management app when ``SYNCDOCS_DATABASE_URL`` is set,
        otherwise a health-only app.

    """
    from syncdocs.api.app import create_app as _create_api_app

    database_url = os.environ.get("SYNCDOCS_DATABASE_URL", "").strip()
    if not database_url:
        log_warning(
            logger,
            "SYNCDOCS_DATABASE_URL is not set; serving health endpoints only",
        )
        return _create_api_app()

    from syncdocs.api.factory import build_app_dependencies
    from syncdocs.config import AuthConfig, SyncConfig
    from syncdocs.github.client import GitHubContentsConfig

    sync_config = SyncConfig.from_env()
    log_info(
        logger,
        "Sync interval %s, concurrency %d, per-file timeout %.1fs",
        sync_config.interval,
        sync_config.concurrency,
        sync_config.file_timeout_s,
    )
    deps = build_app_dependencies(
        database_url,
        sync_config=sync_config,
        auth_config=AuthConfig.from_env(),
        github_config=GitHubContentsConfig.from_env(),
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the syncdocs server using Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("SYNCDOCS_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("SYNCDOCS_PORT", "8080"))
    log_level_str = os.environ.get("SYNCDOCS_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid SYNCDOCS_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting syncdocs on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "syncdocs.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
