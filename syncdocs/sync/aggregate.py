"""Render fetched files into one delimited document."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_DELIMITER = "---"


def format_block(path: str, content: str) -> str:
    """Return the framed block for a single file.

    Examples
    --------
    >>> format_block("a.md", "hello")
    '---\\nFile: a.md\\n---\\n\\nhello\\n\\n\\n'

    """
    return f"{_DELIMITER}\nFile: {path}\n{_DELIMITER}\n\n{content}\n\n\n"


def aggregate_documents(files: cabc.Iterable[tuple[str, str]]) -> str:
    """Concatenate ``(path, content)`` pairs in the order given.

    Callers sort the pairs first; this function does not reorder. An empty
    input yields an empty string.
    """
    return "".join(format_block(path, content) for path, content in files)
