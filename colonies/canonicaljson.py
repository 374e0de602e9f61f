"""Canonical request messages (RFC 8785 via ``jcs``).

A request message is the caller's fields plus ``msgtype``. Canonical bytes
keep ``compose`` deterministic: equal fields signed with the same key give
byte-identical envelopes.
"""

import math
from typing import Any

import jcs

from .errors import CanonicalizationError


def _reject_non_finite(value: Any, path: str) -> None:
    if isinstance(value, float) and not math.isfinite(value):
        raise CanonicalizationError(f"{path} is {value!r}, which JSON cannot carry")
    if isinstance(value, dict):
        for key, item in value.items():
            _reject_non_finite(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _reject_non_finite(item, f"{path}[{i}]")


def canonicalize(obj: dict) -> bytes:
    """Serialize *obj* as RFC 8785 canonical JSON (UTF-8).

    Raises:
        CanonicalizationError: If *obj* is not a dict, or holds NaN,
            infinities or values JSON has no encoding for.
    """
    if not isinstance(obj, dict):
        raise CanonicalizationError("Message must be a JSON object (dict)")
    _reject_non_finite(obj, "message")
    try:
        return jcs.canonicalize(obj)
    except (TypeError, ValueError) as e:
        raise CanonicalizationError(f"Cannot canonicalize message: {e}") from e


def canonical_message(msgtype: str, fields: dict[str, Any]) -> bytes:
    """Canonical bytes of *fields* with ``msgtype`` set."""
    return canonicalize({**fields, "msgtype": msgtype})
