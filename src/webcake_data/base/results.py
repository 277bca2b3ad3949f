# src/webcake_data/base/results.py

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import TransportError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    """Summary of an update, in document-database conventions."""

    acknowledged: bool
    matched_count: int
    modified_count: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "acknowledged": self.acknowledged,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
        }


@dataclass(frozen=True)
class DeleteResult:
    """Summary of a delete, in document-database conventions."""

    acknowledged: bool
    deleted_count: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "acknowledged": self.acknowledged,
            "deletedCount": self.deleted_count,
        }


def unwrap_envelope(payload: Any, context: Optional[str] = None) -> Any:
    """
    Return the `data` member of a response envelope or raise on failure.

    The collection API wraps every response as
    ``{"success": bool, "data": ..., "message": "..."}``.

    Args:
        payload: The parsed JSON body returned by the transport.
        context: Short description of the operation, used when the envelope
                 carries no message.

    Returns:
        The unwrapped `data` value.

    Raises:
        TransportError: If `success` is false (carrying `message` verbatim)
                        or the payload is not an envelope at all.
    """
    if not isinstance(payload, Mapping) or "success" not in payload:
        raise TransportError(
            f"Malformed response envelope{f' for {context}' if context else ''}: "
            f"{payload!r}"
        )
    if not payload["success"]:
        message = payload.get("message") or (
            f"{context} failed" if context else "Request failed"
        )
        log.debug(f"Envelope reported failure: {message}")
        raise TransportError(message)
    return payload.get("data")


def _affected_count(affected: Any) -> int:
    # The API answers writes with the list of affected records.
    if affected is None:
        return 0
    if isinstance(affected, list):
        return len(affected)
    return 1


def to_update_result(affected: Any) -> UpdateResult:
    count = _affected_count(affected)
    return UpdateResult(acknowledged=True, matched_count=count, modified_count=count)


def to_delete_result(affected: Any) -> DeleteResult:
    return DeleteResult(acknowledged=True, deleted_count=_affected_count(affected))


def to_count(data: Mapping[str, Any]) -> int:
    """Extract the number from a ``{"count": n}`` payload."""
    return int(data["count"])


def to_exists(data: Mapping[str, Any]) -> bool:
    """Extract the flag from an ``{"exists": bool}`` payload."""
    return bool(data["exists"])


def first_or_none(documents: Optional[List[Any]]) -> Optional[Any]:
    """Return the first document, or None when nothing matched."""
    if not documents:
        return None
    return documents[0]
