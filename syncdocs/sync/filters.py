"""Extension allow-list filtering for discovered remote files.

Extensions are configured as a comma-separated string such as ``"md, MDX"``.
Each entry is trimmed, lowercased and given a single leading ``.`` so it can
be compared directly against a path suffix.
"""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from syncdocs.github.models import FileEntry


def _normalise(entry: str) -> str:
    cleaned = entry.strip().lower()
    if not cleaned:
        return ""
    return cleaned if cleaned.startswith(".") else f".{cleaned}"


def parse_extensions(raw: str) -> frozenset[str]:
    """Return the normalised allow-set for a comma-separated extension list.

    Examples
    --------
    >>> sorted(parse_extensions("md, .TXT,,  "))
    ['.md', '.txt']

    """
    return frozenset(ext for ext in (_normalise(e) for e in raw.split(",")) if ext)


def path_suffix(path: str) -> str:
    """Return the suffix of the final path segment, including its ``.``.

    The suffix starts at the last ``.`` of the final segment, so dot-files
    are treated as all suffix and names without a ``.`` have none.

    Examples
    --------
    >>> path_suffix("docs/guide.MD")
    '.MD'
    >>> path_suffix("docs/.bashrc")
    '.bashrc'
    >>> path_suffix("Makefile")
    ''

    """
    name = path.rsplit("/", 1)[-1]
    idx = name.rfind(".")
    return "" if idx == -1 else name[idx:]


def clean_extension_list(raw: str) -> str:
    """Normalise a user-supplied extension list for storage.

    Entries are trimmed and lowercased and empty entries dropped; the
    leading ``.`` is left as supplied.

    Raises
    ------
    ValueError
        If no non-empty entries remain.

    """
    entries = [part.strip().lower() for part in raw.split(",")]
    kept = [entry for entry in entries if entry]
    if not kept:
        msg = "at least one valid extension must be provided"
        raise ValueError(msg)
    return ",".join(kept)


@dataclasses.dataclass(frozen=True, slots=True)
class ExtensionFilter:
    """Decide which discovered paths are eligible for fetch.

    An empty allow-set matches nothing.
    """

    allowed: frozenset[str]

    @classmethod
    def from_config(cls, raw: str) -> ExtensionFilter:
        """Build a filter from the stored comma-separated list."""
        return cls(allowed=parse_extensions(raw))

    def matches(self, path: str) -> bool:
        """Return ``True`` when the lowercased suffix of ``path`` is allowed."""
        suffix = path_suffix(path).lower()
        return bool(suffix) and suffix in self.allowed

    def apply(self, entries: cabc.Iterable[FileEntry]) -> list[FileEntry]:
        """Return the entries whose paths match, preserving input order."""
        return [entry for entry in entries if self.matches(entry.path)]
