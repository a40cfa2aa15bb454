"""Typed values returned by the GitHub contents client."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True, slots=True)
class FileEntry:
    """A file discovered while listing a remote subtree.

    ``sha`` identifies the blob; it is not used for diffing.
    """

    path: str
    sha: str
