"""GitHub REST contents client used by the sync engine.

The client is a pure I/O boundary: it resolves default branches, walks a
directory subtree through the contents API, and fetches decoded file text.
Policy (filtering, ordering, retries, timeouts) lives in the engine.
"""

from __future__ import annotations

import base64
import binascii
import collections
import dataclasses
import os
import typing as typ
import urllib.parse

import httpx

from syncdocs.logging import get_logger, log_warning

from .errors import (
    ContentDecodeError,
    GitHubAPIError,
    GitHubNotFoundError,
    GitHubResponseShapeError,
    NotAFileError,
)
from .models import FileEntry

logger = get_logger(__name__)

_HTTP_NOT_FOUND = 404
_HTTP_ERROR_STATUS_THRESHOLD = 400
_DEFAULT_API_URL = "https://api.github.com"


class RemoteTreeClient(typ.Protocol):
    """Interface the sync engine needs from a source-control host."""

    async def resolve_default_branch(self, owner: str, repo: str) -> str:
        """Return the repository's default branch name."""
        ...

    async def list_subtree(
        self, owner: str, repo: str, root_path: str, branch: str
    ) -> list[FileEntry]:
        """Return every file below ``root_path`` on ``branch``."""
        ...

    async def fetch_file_content(
        self, owner: str, repo: str, path: str, branch: str
    ) -> str:
        """Return the decoded text of a single file."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubContentsConfig:
    """Configuration for the GitHub REST contents client.

    An empty ``token`` is permitted; requests are then unauthenticated and
    subject to GitHub's anonymous rate limit.
    """

    token: str = ""
    api_url: str = _DEFAULT_API_URL
    timeout_s: float = 20.0
    user_agent: str = "syncdocs/0.1"

    @classmethod
    def from_env(cls) -> GitHubContentsConfig:
        """Build configuration from ``SYNCDOCS_GITHUB_*`` env vars."""
        token = os.environ.get("SYNCDOCS_GITHUB_TOKEN", "").strip()
        api_url = (
            os.environ.get("SYNCDOCS_GITHUB_API_URL", "").strip() or _DEFAULT_API_URL
        )
        return cls(token=token, api_url=api_url)


def _file_entry(item: dict[str, typ.Any]) -> FileEntry | None:
    path = item.get("path")
    sha = item.get("sha")
    if not isinstance(path, str) or not isinstance(sha, str):
        return None
    return FileEntry(path=path, sha=sha)


def _decode_content(path: str, payload: dict[str, typ.Any]) -> str:
    """Decode a contents API file object into text."""
    content = payload.get("content")
    if not isinstance(content, str):
        raise ContentDecodeError(path, "response has no content field")

    encoding = payload.get("encoding")
    if not encoding:
        return content
    if encoding != "base64":
        # GitHub reports "none" for files above 1 MB.
        raise ContentDecodeError(path, f"unsupported content encoding: {encoding}")

    try:
        raw = base64.b64decode(content)
    except (binascii.Error, ValueError) as exc:
        raise ContentDecodeError(path, "invalid base64 payload") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ContentDecodeError(path, "content is not valid UTF-8") from exc


class GitHubContentsClient:
    """GitHub REST implementation of :class:`RemoteTreeClient`."""

    def __init__(
        self,
        config: GitHubContentsConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client, creating an HTTP client unless one is given."""
        self._config = config
        self._api_url = config.api_url.rstrip("/")
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": config.user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if config.token.strip():
            headers["Authorization"] = f"Bearer {config.token.strip()}"
        else:
            log_warning(
                logger,
                "No GitHub token configured; API requests are unauthenticated "
                "and rate-limited",
            )
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s, headers=headers
        )
        if http_client is not None:
            self._client.headers.update(headers)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def resolve_default_branch(self, owner: str, repo: str) -> str:
        """Return the default branch of ``owner/repo``.

        Raises
        ------
        GitHubNotFoundError
            If the repository does not exist or is not visible to the token.
        GitHubAPIError
            For any other transport or API failure.

        """
        payload = await self._get_json(
            f"/repos/{_quote(owner)}/{_quote(repo)}",
            owner=owner,
            repo=repo,
            path=None,
        )
        if not isinstance(payload, dict):
            raise GitHubResponseShapeError.missing("repository")
        branch = payload.get("default_branch")
        if not isinstance(branch, str) or not branch.strip():
            raise GitHubResponseShapeError.missing("default_branch")
        return branch

    async def list_subtree(
        self, owner: str, repo: str, root_path: str, branch: str
    ) -> list[FileEntry]:
        """Walk ``root_path`` breadth-first and collect file entries.

        Paths that return 404 are skipped with a warning so one vanished
        directory does not abort the listing; any other failure propagates.
        Symlinks and submodules are ignored. When ``root_path`` names a file
        the result holds that single entry.
        """
        files: list[FileEntry] = []
        queue: collections.deque[str] = collections.deque([root_path])

        while queue:
            current = queue.popleft()
            try:
                payload = await self._get_contents(owner, repo, current, branch)
            except GitHubNotFoundError:
                log_warning(
                    logger,
                    "[github.contents.path_missing] repo=%s/%s branch=%s path=%r "
                    "skipped",
                    owner,
                    repo,
                    branch,
                    current,
                )
                continue

            if isinstance(payload, dict):
                entry = _file_entry(payload)
                if payload.get("type") == "file" and entry is not None:
                    files.append(entry)
                else:
                    log_warning(
                        logger,
                        "Path %r in %s/%s is neither a directory nor a file; "
                        "skipping",
                        current,
                        owner,
                        repo,
                    )
                continue

            if not isinstance(payload, list):
                raise GitHubResponseShapeError.missing("contents")

            for item in payload:
                if not isinstance(item, dict):
                    continue
                kind = item.get("type")
                if kind == "dir":
                    item_path = item.get("path")
                    if isinstance(item_path, str):
                        queue.append(item_path)
                elif kind == "file":
                    entry = _file_entry(item)
                    if entry is None:
                        log_warning(
                            logger,
                            "Skipping file with missing path or sha under %r",
                            current,
                        )
                        continue
                    files.append(entry)

        return files

    async def fetch_file_content(
        self, owner: str, repo: str, path: str, branch: str
    ) -> str:
        """Return the decoded text of ``path`` on ``branch``.

        Raises
        ------
        GitHubNotFoundError
            If the path no longer exists.
        NotAFileError
            If the path resolves to a directory or non-file entry.
        ContentDecodeError
            If the content cannot be decoded to UTF-8 text.
        GitHubAPIError
            For any other transport or API failure.

        """
        payload = await self._get_contents(owner, repo, path, branch)
        if not isinstance(payload, dict) or payload.get("type") != "file":
            raise NotAFileError(path)
        return _decode_content(path, payload)

    async def _get_contents(
        self, owner: str, repo: str, path: str, branch: str
    ) -> object:
        resource = (
            f"/repos/{_quote(owner)}/{_quote(repo)}/contents/"
            f"{urllib.parse.quote(path.strip('/'), safe='/')}"
        )
        params = {"ref": branch} if branch else None
        return await self._get_json(
            resource, owner=owner, repo=repo, path=path, params=params
        )

    async def _get_json(
        self,
        resource: str,
        *,
        owner: str,
        repo: str,
        path: str | None,
        params: dict[str, str] | None = None,
    ) -> object:
        """Issue a GET request and return the decoded JSON body."""
        try:
            response = await self._client.get(
                f"{self._api_url}{resource}", params=params
            )
        except httpx.HTTPError as exc:
            raise GitHubAPIError.transport(resource, exc) from exc

        if response.status_code == _HTTP_NOT_FOUND:
            raise GitHubNotFoundError(owner, repo, path)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code, resource)

        try:
            return response.json()
        except ValueError as exc:
            raise GitHubResponseShapeError.missing("JSON body") from exc


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")
