"""Dramatiq broker bootstrap for the sync actors.

Actors call :func:`ensure_broker_configured` when they execute rather than
at import time, so importing the actor module never mutates global broker
state.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()
_broker_configured = False

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_PYTEST_ENV_VARS = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS")


def _is_running_tests() -> bool:
    return "pytest" in sys.modules or any(key in os.environ for key in _PYTEST_ENV_VARS)


def _stub_broker_allowed() -> bool:
    """Return ``True`` under pytest or when ``SYNCDOCS_ALLOW_STUB_BROKER`` is truthy."""
    allow_stub = os.environ.get("SYNCDOCS_ALLOW_STUB_BROKER", "")
    return allow_stub.strip().lower() in _TRUTHY or _is_running_tests()


def ensure_broker_configured() -> None:
    """Install a broker once per process if none is configured.

    Raises
    ------
    RuntimeError
        If no broker is configured and a stub broker is not allowed.

    """
    global _broker_configured

    if _broker_configured:
        return

    with _BROKER_LOCK:
        if _broker_configured:
            return

        try:
            current_broker = dramatiq.get_broker()
        except (ImportError, LookupError):
            # ImportError: the default RabbitMQ broker's dependencies are absent.
            current_broker = None

        if current_broker is None:
            if not _stub_broker_allowed():
                message = (
                    "No Dramatiq broker configured. Set "
                    "SYNCDOCS_ALLOW_STUB_BROKER=1 for local runs or configure "
                    "a real broker."
                )
                raise RuntimeError(message)
            dramatiq.set_broker(StubBroker())

        _broker_configured = True
