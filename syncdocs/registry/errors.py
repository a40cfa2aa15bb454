"""Errors raised by the repository registry and its store."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry errors."""


class RepositoryNotFoundError(RegistryError):
    """Raised when no tracked repository matches an id."""

    def __init__(self, repository_id: int) -> None:
        """Initialise with the missing repository id."""
        self.repository_id = repository_id
        super().__init__(f"repository with ID {repository_id} not found")


class DuplicateRepositoryError(RegistryError):
    """Raised when a repository URL is already tracked."""

    def __init__(self, url: str) -> None:
        """Initialise with the conflicting URL."""
        self.url = url
        super().__init__(f"repository with URL '{url}' already exists")


class InvalidRepositoryInputError(RegistryError):
    """Raised when a create or update request carries an unusable field."""

    def __init__(self, field: str, reason: str) -> None:
        """Initialise with the offending field and a reason."""
        self.field = field
        self.reason = reason
        super().__init__(f"invalid {field}: {reason}")


class RepositoryStoreError(RegistryError):
    """Raised when a database operation on the repositories table fails."""

    def __init__(self, operation: str, reason: str) -> None:
        """Initialise with the store operation and failure reason."""
        self.operation = operation
        self.reason = reason
        super().__init__(f"repository store {operation} failed: {reason}")

    @classmethod
    def database(cls, operation: str, exc: BaseException) -> RepositoryStoreError:
        """Return an error wrapping a database driver failure."""
        return cls(operation, f"{type(exc).__name__}: {exc}")


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime is bound to a UTC column."""

    def __init__(self, column: str) -> None:
        """Attach a consistent message for the failing column."""
        self.column = column
        super().__init__(f"{column} must be timezone aware")
