"""
Response Cleanup
=================

Turns the free-form text returned by the document-understanding model into
a candidate JSON string, then decodes it.

Models regularly wrap their answer in Markdown code fences or add a line of
commentary before/after the object, even when told not to. Cleanup is
deliberately forgiving; anything it lets through that is not JSON fails at
the decode step with MalformedPayload.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from errors import MalformedPayload

log = logging.getLogger(__name__)

# ```json, ```JSON, ```javascript ... and bare ```
_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*")

_RAW_LOG_LIMIT = 500


def sanitize_response(raw: str) -> str:
    """Strip code fences and cut the text down to its outermost braces.

    Never raises. When no ``{ ... }`` span exists, the trimmed text is
    returned unchanged so the decode step can report it.
    """
    if not raw:
        return ""
    cleaned = _FENCE_RE.sub("", raw).strip()

    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last != -1 and first < last:
        cleaned = cleaned[first:last + 1]
    return cleaned


def decode_payload(raw: str) -> Any:
    """Sanitize raw model output and decode it as JSON.

    Args:
        raw: Text exactly as returned by the extractor.

    Returns:
        The decoded value (usually a dict, but not checked here).

    Raises:
        MalformedPayload: If the sanitized text cannot be decoded as JSON. The
            original, unsanitized text is attached as ``raw_text``.
    """
    candidate = sanitize_response(raw)
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError, TypeError) as e:
        log.warning(
            "Could not decode model response as JSON: %s | raw=%r",
            e, (raw or "")[:_RAW_LOG_LIMIT],
        )
        raise MalformedPayload(
            f"Failed to parse AI response as JSON: {e}", raw_text=raw or "",
        ) from e
