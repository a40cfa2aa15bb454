"""Structured log events for sync runs.

Every event is a single femtologging line whose first token is the event
name in brackets, followed by ``key=value`` fields, so log aggregators can
parse run throughput and failures without a metrics backend.
"""

from __future__ import annotations

import asyncio
import enum
import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from syncdocs.github.errors import (
    ContentDecodeError,
    GitHubAPIError,
    GitHubNotFoundError,
    NotAFileError,
)
from syncdocs.logging import get_logger, log_error, log_info, log_warning
from syncdocs.registry.errors import RepositoryNotFoundError, RepositoryStoreError
from syncdocs.sync.errors import SyncPersistenceError

if typ.TYPE_CHECKING:
    import datetime as dt

    from syncdocs.sync.models import SyncOutcome

logger = get_logger(__name__)


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync runs."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    RUN_FAILED = "sync.run.failed"
    RUN_SKIPPED = "sync.run.skipped"


class ErrorCategory(enum.StrEnum):
    """Categories for failed-run classification in alerts."""

    NOT_FOUND = "not_found"
    HOST_ERROR = "host_error"
    DECODE_ERROR = "decode_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    PERSISTENCE = "persistence"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (GitHubNotFoundError, ErrorCategory.NOT_FOUND),
    (NotAFileError, ErrorCategory.NOT_FOUND),
    (RepositoryNotFoundError, ErrorCategory.NOT_FOUND),
    (ContentDecodeError, ErrorCategory.DECODE_ERROR),
    (GitHubAPIError, ErrorCategory.HOST_ERROR),
    (TimeoutError, ErrorCategory.TIMEOUT),
    (asyncio.CancelledError, ErrorCategory.CANCELLED),
    (SyncPersistenceError, ErrorCategory.PERSISTENCE),
    (RepositoryStoreError, ErrorCategory.PERSISTENCE),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Return the alerting category for an exception that ended a run."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class SyncEventLogger:
    """Emit structured sync run events via femtologging.

    Success is logged at INFO, skips at WARNING and failures at ERROR.
    """

    def log_run_started(self, repository_id: int, started_at: dt.datetime) -> None:
        """Log that a run acquired its single-flight slot."""
        log_info(
            logger,
            "[%s] repository_id=%d started_at=%s",
            SyncEventType.RUN_STARTED,
            repository_id,
            started_at.isoformat(),
        )

    def log_run_completed(self, outcome: SyncOutcome) -> None:
        """Log a successful run with its document size."""
        log_info(
            logger,
            "[%s] repository_id=%d duration_seconds=%.3f files_synced=%d "
            "document_chars=%d",
            SyncEventType.RUN_COMPLETED,
            outcome.repository_id,
            outcome.duration_seconds,
            outcome.files_synced,
            len(outcome.document),
        )

    def log_run_failed(
        self,
        repository_id: int,
        error: BaseException,
        message: str,
        duration_seconds: float,
    ) -> None:
        """Log a failed run with its category and recorded message."""
        log_error(
            logger,
            "[%s] repository_id=%d duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            SyncEventType.RUN_FAILED,
            repository_id,
            duration_seconds,
            type(error).__name__,
            categorize_error(error),
            message,
            exc_info=error,
        )

    def log_run_skipped(self, repository_id: int) -> None:
        """Log a run rejected because the repository is already syncing."""
        log_warning(
            logger,
            "[%s] repository_id=%d reason=already_syncing",
            SyncEventType.RUN_SKIPPED,
            repository_id,
        )
