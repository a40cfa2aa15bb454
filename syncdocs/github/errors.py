"""Errors raised by the GitHub contents client."""

from __future__ import annotations


class GitHubError(RuntimeError):
    """Base class for failures talking to GitHub."""


class GitHubNotFoundError(GitHubError):
    """Raised when a repository or path does not exist or is inaccessible."""

    def __init__(self, owner: str, repo: str, path: str | None = None) -> None:
        """Initialise with the coordinates that could not be found."""
        self.owner = owner
        self.repo = repo
        self.path = path
        if path is None:
            message = f"repository not found: {owner}/{repo}"
        else:
            message = f"path not found in {owner}/{repo}: {path}"
        super().__init__(message)


class GitHubAPIError(GitHubError):
    """Raised for transport failures and non-2xx responses other than 404."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, resource: str) -> GitHubAPIError:
        """Return an error for a non-2xx HTTP response."""
        return cls(
            f"GitHub API HTTP {status_code} for {resource}", status_code=status_code
        )

    @classmethod
    def transport(cls, resource: str, exc: Exception) -> GitHubAPIError:
        """Return an error for a connection-level failure."""
        return cls(f"GitHub API request for {resource} failed: {exc}")


class GitHubResponseShapeError(GitHubAPIError):
    """Raised when a GitHub response is missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"GitHub API response missing expected field: {field}")


class NotAFileError(GitHubError):
    """Raised when a content fetch resolves to something other than a file."""

    def __init__(self, path: str) -> None:
        """Initialise with the offending path."""
        self.path = path
        super().__init__(f"path is not a file: {path}")


class ContentDecodeError(GitHubError):
    """Raised when file content cannot be decoded to text."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialise with the path and decoding failure reason."""
        self.path = path
        self.reason = reason
        super().__init__(f"failed to decode file content for '{path}': {reason}")
