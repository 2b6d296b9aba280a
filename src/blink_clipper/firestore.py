"""Firestore REST helpers: endpoints, typed-value codec, structured queries.

Firestore's JSON wire format wraps every value in a one-key object naming its
type (``{"stringValue": "x"}``, ``{"arrayValue": {"values": [...]}}``).
``encode_value`` / ``decode_value`` convert between those and plain Python.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

if TYPE_CHECKING:
    from blink_clipper.models import ClipperConfig

UNAUTHENTICATED_STATUS = "UNAUTHENTICATED"
FAILED_PRECONDITION_STATUS = "FAILED_PRECONDITION"


# ============================================================================
# Endpoints
# ============================================================================


@dataclass(slots=True, frozen=True)
class FirestoreEndpoints:
    """URL builder for the identity and document endpoints of one project."""

    api_key: str
    project_id: str
    database: str = "(default)"
    collection_id: str = "vaults"
    identity_base_url: str = "https://identitytoolkit.googleapis.com/v1"
    firestore_base_url: str = "https://firestore.googleapis.com/v1"

    @classmethod
    def from_config(cls, config: ClipperConfig) -> FirestoreEndpoints:
        return cls(
            api_key=config.api_key,
            project_id=config.project_id,
            database=config.database,
            collection_id=config.collection_id,
            identity_base_url=config.identity_base_url.rstrip("/"),
            firestore_base_url=config.firestore_base_url.rstrip("/"),
        )

    @property
    def documents_root(self) -> str:
        return (
            f"{self.firestore_base_url}/projects/{self.project_id}"
            f"/databases/{self.database}/documents"
        )

    @property
    def sign_in_url(self) -> str:
        return f"{self.identity_base_url}/accounts:signInWithPassword"

    @property
    def run_query_url(self) -> str:
        return f"{self.documents_root}:runQuery"

    def document_url(self, document_id: str) -> str:
        """URL of one document in the configured collection."""
        return f"{self.documents_root}/{self.collection_id}/{quote(document_id, safe='')}"

    def key_params(self) -> dict[str, str]:
        """Query parameters identifying the API key (empty when unset)."""
        return {"key": self.api_key} if self.api_key else {}


def bearer_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# Value codec
# ============================================================================


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp with millisecond precision.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    """Parse a Firestore timestamp, which may carry nanosecond precision."""
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap a Python value in Firestore's typed JSON representation."""
    # bool before int: bool is an int subclass
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {str(k): encode_value(v) for k, v in value.items()}}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def decode_value(typed: Any) -> Any:
    """Unwrap one Firestore typed value. Unknown shapes are returned unchanged."""
    if not isinstance(typed, dict) or len(typed) != 1:
        return typed
    kind, raw = next(iter(typed.items()))
    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(raw)
    if kind == "integerValue":
        return int(raw)
    if kind == "doubleValue":
        return float(raw)
    if kind == "timestampValue" and isinstance(raw, str):
        return parse_timestamp(raw)
    if kind in ("stringValue", "referenceValue", "bytesValue"):
        return raw
    if kind == "arrayValue":
        values = raw.get("values", []) if isinstance(raw, dict) else []
        return [decode_value(item) for item in values]
    if kind == "mapValue":
        fields = raw.get("fields", {}) if isinstance(raw, dict) else {}
        return decode_fields(fields)
    return raw


def decode_fields(fields: Any) -> dict[str, Any]:
    """Decode a document's ``fields`` map into plain Python values."""
    if not isinstance(fields, dict):
        return {}
    return {name: decode_value(value) for name, value in fields.items()}


def document_id(document_name: str) -> str:
    """Return the last path segment of a full document resource name."""
    return document_name.rstrip("/").rsplit("/", 1)[-1]


def array_values(fields: Any, field_name: str) -> list[Any]:
    """Return the raw typed elements of an array field.

    A missing field, or an empty array (which Firestore sends without a
    ``values`` key), yields an empty list.
    """
    if not isinstance(fields, dict):
        return []
    field = fields.get(field_name)
    if not isinstance(field, dict):
        return []
    array = field.get("arrayValue")
    if not isinstance(array, dict):
        return []
    values = array.get("values", [])
    return list(values) if isinstance(values, list) else []


# ============================================================================
# Queries and errors
# ============================================================================


def build_field_equals_query(collection_id: str, field_path: str, value: Any) -> dict[str, Any]:
    """Build a ``runQuery`` body selecting documents where ``field_path == value``."""
    return {
        "structuredQuery": {
            "from": [{"collectionId": collection_id}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": field_path},
                    "op": "EQUAL",
                    "value": encode_value(value),
                }
            },
        }
    }


def _error_object(payload: Any) -> dict[str, Any] | None:
    # runQuery reports errors inside its response list
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    return error if isinstance(error, dict) else None


def error_status(payload: Any) -> str | None:
    """Return the canonical status string of an error payload, if any."""
    error = _error_object(payload)
    if error is None:
        return None
    status = error.get("status")
    return status if isinstance(status, str) else None


def error_message(payload: Any) -> str | None:
    """Return the human-readable message of an error payload, if any."""
    error = _error_object(payload)
    if error is None:
        return None
    message = error.get("message")
    return message if isinstance(message, str) else None


__all__ = [
    "FAILED_PRECONDITION_STATUS",
    "UNAUTHENTICATED_STATUS",
    "FirestoreEndpoints",
    "array_values",
    "bearer_headers",
    "build_field_equals_query",
    "decode_fields",
    "decode_value",
    "document_id",
    "encode_value",
    "error_message",
    "error_status",
    "format_timestamp",
    "parse_timestamp",
]
