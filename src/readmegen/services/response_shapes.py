"""Normalization of heterogeneous provider responses into markdown text.

Every function here is total: unexpected shapes degrade to serialized
text instead of raising, so a malformed payload surfaces later as a
validation problem rather than as a crash.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional

# Leading ```markdown / ``` line and trailing ``` line around the whole document.
_LEADING_MARKDOWN_FENCE_RE = re.compile(r"\A```markdown\n", re.IGNORECASE)
_LEADING_FENCE_RE = re.compile(r"\A```\n")
_TRAILING_FENCE_RE = re.compile(r"\n```\Z")

ShapeMatcher = Callable[[Any], Optional[str]]


def _field(obj: Any, name: str) -> Any:
    """Read *name* from a mapping key or an attribute, whichever exists."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _first(seq: Any) -> Any:
    if isinstance(seq, (list, tuple)) and seq:
        return seq[0]
    return None


# ---------------------------------------------------------------------------
# Shape matchers — each returns text, or None when the shape does not match
# ---------------------------------------------------------------------------

def match_plain_string(payload: Any) -> Optional[str]:
    return payload if isinstance(payload, str) else None


def match_content_field(payload: Any) -> Optional[str]:
    content = _field(payload, "content")
    return content if isinstance(content, str) and content else None


def match_choices_message(payload: Any) -> Optional[str]:
    """OpenAI-style ``choices[0].message.content``."""
    message = _field(_first(_field(payload, "choices")), "message")
    content = _field(message, "content")
    return content if isinstance(content, str) and content else None


def match_choices_delta(payload: Any) -> Optional[str]:
    """OpenAI-style streaming chunk ``choices[0].delta.content``."""
    delta = _field(_first(_field(payload, "choices")), "delta")
    if delta is None:
        return None
    # Role-only and finish chunks carry a delta with no content.
    content = _field(delta, "content")
    return content if isinstance(content, str) else ""


# Tried in order; the first match wins.
RESPONSE_MATCHERS: tuple[ShapeMatcher, ...] = (
    match_plain_string,
    match_content_field,
    match_choices_message,
)

FRAGMENT_MATCHERS: tuple[ShapeMatcher, ...] = (
    match_plain_string,
    match_choices_delta,
    match_content_field,
)


def _serialize(payload: Any) -> str:
    if payload is None:
        return ""
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    return json.dumps(payload, default=_json_default)


def _json_default(obj: Any) -> Any:
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return str(obj)


def normalize_response(payload: Any) -> str:
    """Extract document text from a non-streaming response.

    Falls back to serializing the whole payload when no matcher applies.
    """
    for matcher in RESPONSE_MATCHERS:
        text = matcher(payload)
        if text is not None:
            return text
    return _serialize(payload)


def normalize_fragment(fragment: Any) -> str:
    """Extract the text carried by one streamed fragment ("" if none)."""
    for matcher in FRAGMENT_MATCHERS:
        text = matcher(fragment)
        if text is not None:
            return text
    if fragment is None:
        return ""
    if isinstance(fragment, bytes):
        return fragment.decode("utf-8", errors="replace")
    return str(fragment)


def is_fragment_stream(response: Any) -> bool:
    """True when *response* should be consumed as a sequence of fragments.

    Strings, mappings and complete (non-chunked) responses are iterable
    too, but they are single payloads.
    """
    if isinstance(response, (str, bytes, Mapping)):
        return False
    if match_content_field(response) is not None or match_choices_message(response) is not None:
        return False
    return isinstance(response, Iterable)


# ---------------------------------------------------------------------------
# Provider-reported errors
# ---------------------------------------------------------------------------

_RESULT_PAIR_KEYS = frozenset({"error", "output"})


def unwrap_result_pair(payload: Any) -> tuple[Any, Any]:
    """Split an ``{"error", "output"}`` pair into (error, output).

    Payloads of any other shape come back as ``(None, payload)``.
    """
    if isinstance(payload, Mapping):
        keys = set(payload.keys())
        if keys and keys <= _RESULT_PAIR_KEYS:
            return payload.get("error"), payload.get("output")
        return None, payload
    if isinstance(payload, str):
        return None, payload
    if hasattr(payload, "error") and hasattr(payload, "output"):
        return payload.error, payload.output
    return None, payload


def describe_reported_error(error: Any) -> str:
    if isinstance(error, str):
        return error
    try:
        return json.dumps(error, default=_json_default)
    except (TypeError, ValueError):
        return str(error)


# ---------------------------------------------------------------------------
# Fence stripping
# ---------------------------------------------------------------------------

def strip_code_fence(text: str) -> str:
    """Remove one wrapping ```markdown fence pair, then trim whitespace."""
    text = _LEADING_MARKDOWN_FENCE_RE.sub("", text, count=1)
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    text = _TRAILING_FENCE_RE.sub("", text, count=1)
    return text.strip()
