"""Request bodies and response serialisation for repository resources."""

from __future__ import annotations

import typing as typ

import msgspec

from syncdocs.api.errors import InvalidInputError

if typ.TYPE_CHECKING:
    from syncdocs.registry.models import RepositoryDetails


class CreateRepositoryRequest(msgspec.Struct, kw_only=True, frozen=True):
    """Body of ``POST /api/repositories``."""

    url: str
    docs_path: str
    extensions: str
    branch: str | None = None


class UpdateRepositoryRequest(msgspec.Struct, kw_only=True, frozen=True):
    """Body of ``PUT /api/repositories/{id}``."""

    docs_path: str
    extensions: str


_T = typ.TypeVar("_T")


def decode_body(raw: bytes, body_type: type[_T]) -> _T:
    """Decode a JSON request body into ``body_type``.

    Raises
    ------
    InvalidInputError
        If the body is not valid JSON or does not match the schema.

    """
    if not raw.strip():
        reason = "request body is required"
        raise InvalidInputError(reason)
    try:
        return msgspec.json.decode(raw, type=body_type)
    except msgspec.ValidationError as exc:
        raise InvalidInputError(f"invalid request payload: {exc}") from exc
    except msgspec.DecodeError as exc:
        raise InvalidInputError(f"malformed JSON: {exc}") from exc


def serialize_summary(details: RepositoryDetails) -> dict[str, typ.Any]:
    """Return the list-view representation of a repository."""
    return {
        "id": details.id,
        "url": details.url,
        "owner": details.owner,
        "name": details.name,
        "branch": details.branch,
        "docs_path": details.docs_path,
        "extensions": details.extensions,
        "last_sync_status": details.last_sync_status.value,
        "last_sync_time": (
            details.last_sync_time.isoformat() if details.last_sync_time else None
        ),
        "last_sync_error": details.last_sync_error or "",
        "created_at": details.created_at.isoformat(),
        "updated_at": details.updated_at.isoformat(),
    }


def serialize_details(details: RepositoryDetails) -> dict[str, typ.Any]:
    """Return the full representation, including the aggregated document."""
    media = serialize_summary(details)
    media["aggregated_content"] = details.aggregated_content
    return media
