"""Repository slug and URL helpers.

Slugs are GitHub identifiers in ``owner/name`` form. They are not filesystem
paths, even though they use ``/`` as a separator.
"""

from __future__ import annotations

import urllib.parse

_GITHUB_HOST = "github.com"
_GIT_SUFFIX = ".git"


def repo_slug(owner: str, name: str) -> str:
    """Build a repository slug from owner and name.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{name}"


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract ``(owner, name)`` from a ``github.com`` repository URL.

    Parameters
    ----------
    url:
        Repository URL such as ``https://github.com/octo/reef`` or
        ``https://github.com/octo/reef.git``. Extra path segments after the
        repository name (``/tree/main/docs``) are ignored.

    Returns
    -------
    tuple[str, str]
        ``(owner, name)`` with any ``.git`` suffix removed.

    Raises
    ------
    ValueError
        If the URL is not a ``github.com`` URL or lacks owner and name.

    Examples
    --------
    >>> parse_github_url("https://github.com/octo/reef.git")
    ('octo', 'reef')

    """
    parsed = urllib.parse.urlsplit(url.strip())
    if (parsed.hostname or "").lower() != _GITHUB_HOST:
        msg = f"URL is not a github.com URL: {url!r}"
        raise ValueError(msg)

    parts = [part for part in parsed.path.strip("/").split("/") if part]
    if len(parts) < 2:  # noqa: PLR2004 - owner and name segments
        msg = f"URL path does not contain owner and repo: {parsed.path!r}"
        raise ValueError(msg)

    owner = parts[0]
    name = parts[1].removesuffix(_GIT_SUFFIX)
    if not owner or not name:
        msg = f"Could not extract owner or repo from URL: {url!r}"
        raise ValueError(msg)
    return owner, name
