"""Environment configuration for sync scheduling and API authentication.

Usage
-----
Load the sync settings with defaults:

>>> config = SyncConfig()
>>> config.interval
datetime.timedelta(seconds=3600)

Or from the environment:

>>> import os
>>> os.environ["SYNCDOCS_SYNC_INTERVAL"] = "1h30m"
>>> SyncConfig.from_env().interval
datetime.timedelta(seconds=5400)

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os
import re

from syncdocs.logging import get_logger, log_warning

logger = get_logger(__name__)

DEFAULT_SYNC_INTERVAL = dt.timedelta(hours=1)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(raw: str) -> dt.timedelta:
    """Parse a duration such as ``"90s"``, ``"30m"`` or ``"1h30m"``.

    Each component is a decimal number followed by a unit (``ns``, ``us``,
    ``ms``, ``s``, ``m`` or ``h``); a bare ``"0"`` is also accepted.

    Raises
    ------
    ValueError
        If the string is empty or contains anything else.

    """
    text = raw.strip()
    if text == "0":
        return dt.timedelta(0)
    if not text:
        msg = "duration must not be empty"
        raise ValueError(msg)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            msg = f"invalid duration: {raw!r}"
            raise ValueError(msg)
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return dt.timedelta(seconds=total)


def _parse_positive_int(env_var: str, default: int) -> int:
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def _parse_positive_float(env_var: str, default: float) -> float:
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def _parse_interval(env_var: str) -> dt.timedelta:
    """Read a sync interval, warning and falling back to one hour when invalid."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return DEFAULT_SYNC_INTERVAL
    try:
        interval = parse_duration(raw)
    except ValueError as exc:
        log_warning(
            logger,
            "Invalid %s format %r; using default %s: %s",
            env_var,
            raw,
            DEFAULT_SYNC_INTERVAL,
            exc,
        )
        return DEFAULT_SYNC_INTERVAL
    if interval <= dt.timedelta(0):
        log_warning(
            logger,
            "%s must be positive, got %r; using default %s",
            env_var,
            raw,
            DEFAULT_SYNC_INTERVAL,
        )
        return DEFAULT_SYNC_INTERVAL
    return interval


@dc.dataclass(frozen=True, slots=True)
class SyncConfig:
    """Scheduling and run settings for the sync engine.

    Attributes
    ----------
    interval
        Delay between scheduled fleet passes. Default is one hour.
    concurrency
        Maximum repositories synced at once by the fleet driver.
    file_timeout_s
        Per-file fetch timeout in seconds.

    """

    interval: dt.timedelta = DEFAULT_SYNC_INTERVAL
    concurrency: int = 5
    file_timeout_s: float = 30.0

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Create configuration from environment variables.

        Reads ``SYNCDOCS_SYNC_INTERVAL``, ``SYNCDOCS_SYNC_CONCURRENCY`` and
        ``SYNCDOCS_FILE_TIMEOUT_SECONDS``.

        Raises
        ------
        ValueError
            If the concurrency or timeout is not a positive number. An
            invalid interval only logs a warning.

        """
        return cls(
            interval=_parse_interval("SYNCDOCS_SYNC_INTERVAL"),
            concurrency=_parse_positive_int("SYNCDOCS_SYNC_CONCURRENCY", 5),
            file_timeout_s=_parse_positive_float(
                "SYNCDOCS_FILE_TIMEOUT_SECONDS", 30.0
            ),
        )


@dc.dataclass(frozen=True, slots=True)
class AuthConfig:
    """HTTP basic auth credentials for the management API.

    Authentication is disabled when both fields are empty.
    """

    username: str = ""
    password: str = ""

    @property
    def enabled(self) -> bool:
        """Return ``True`` when credentials are configured."""
        return bool(self.username)

    @classmethod
    def from_env(cls) -> AuthConfig:
        """Read ``SYNCDOCS_AUTH_USER`` and ``SYNCDOCS_AUTH_PASS``.

        Raises
        ------
        ValueError
            If only one of the two variables is set.

        """
        username = os.environ.get("SYNCDOCS_AUTH_USER", "").strip()
        password = os.environ.get("SYNCDOCS_AUTH_PASS", "")
        if bool(username) != bool(password):
            msg = "SYNCDOCS_AUTH_USER and SYNCDOCS_AUTH_PASS must be set together"
            raise ValueError(msg)
        return cls(username=username, password=password)
