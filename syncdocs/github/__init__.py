"""GitHub contents client used to discover and fetch remote files."""

from __future__ import annotations

from .client import GitHubContentsClient, GitHubContentsConfig, RemoteTreeClient
from .errors import (
    ContentDecodeError,
    GitHubAPIError,
    GitHubError,
    GitHubNotFoundError,
    GitHubResponseShapeError,
    NotAFileError,
)
from .models import FileEntry

__all__ = [
    "ContentDecodeError",
    "FileEntry",
    "GitHubAPIError",
    "GitHubContentsClient",
    "GitHubContentsConfig",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubResponseShapeError",
    "NotAFileError",
    "RemoteTreeClient",
]
