"""Two-stage decoding of the extraction service's nested JSON envelopes.

The upload and result endpoints deliver their payload as JSON whose
interesting part may itself be a JSON-encoded string, so a body has to be
parsed once for the outer envelope and once more for the inner document.
"""

from __future__ import annotations

import json
from typing import Any

from ocr_uploader.core.errors import MalformedPayload


def _loads(raw: str | bytes, *, stage: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(f"{stage} is not valid JSON", detail=_preview(raw)) from exc


def _preview(raw: Any, limit: int = 500) -> str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    return text if len(text) <= limit else text[:limit] + "..."


def decode_envelope(body: str | bytes, *, envelope_key: str | None = None) -> dict[str, Any]:
    """Decode ``body`` into the inner JSON object.

    Stage 1 parses the outer body. Stage 2 parses again when the outer value
    is a string, or when ``envelope_key`` names a string field of the outer
    object. Whatever comes out must be a JSON object.
    """

    outer = _loads(body, stage="Response body")

    inner: Any = outer
    if envelope_key is not None and isinstance(outer, dict) and envelope_key in outer:
        inner = outer[envelope_key]

    if isinstance(inner, str):
        inner = _loads(inner, stage="Inner payload")

    if not isinstance(inner, dict):
        raise MalformedPayload(
            f"Expected a JSON object, got {type(inner).__name__}",
            detail=_preview(body),
        )
    return inner


def require_str(payload: dict[str, Any], field: str, *, allow_empty: bool = False) -> str:
    """Return ``payload[field]`` if it is a string, else raise MalformedPayload."""

    value = payload.get(field)
    if not isinstance(value, str):
        raise MalformedPayload(f"Missing string field '{field}'", detail=sorted(payload))
    if not allow_empty and not value.strip():
        raise MalformedPayload(f"Field '{field}' is empty", detail=sorted(payload))
    return value
