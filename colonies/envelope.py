"""Signed RPC envelopes: composing requests and unwrapping replies.

A request envelope is ``{"signature", "payloadtype", "payload"}`` where
``payload`` is the base64 text of the canonical JSON message and
``signature`` signs that base64 *text*, not the JSON bytes underneath it.
The server recovers the caller's identity from exactly those characters,
so the encoding must not change after signing.
"""

import base64
import binascii
import json
import re
from typing import Any

from . import crypto
from .canonicaljson import canonical_message
from .errors import EnvelopeError
from .types import RPCMsg, RPCReplyMsg

_BASE64_STANDARD_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def decode_payload(value: str, field_name: str = "payload") -> str:
    """Decode standard base64 (RFC 4648 §4) into UTF-8 text."""
    if not isinstance(value, str):
        raise EnvelopeError(f"{field_name} must be a string")
    if not _BASE64_STANDARD_RE.match(value):
        raise EnvelopeError(f"{field_name} is not valid base64")
    try:
        raw = base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise EnvelopeError(f"{field_name} base64 decode failed: {e}") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EnvelopeError(f"{field_name} is not UTF-8: {e}") from e


def _loads_object(text: str, what: str) -> dict:
    try:
        obj = json.loads(text)
    except (TypeError, ValueError) as e:
        raise EnvelopeError(f"{what} is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise EnvelopeError(f"{what} must be a JSON object")
    return obj


def build_rpcmsg(payload_type: str, payload: dict[str, Any], prvkey: str) -> RPCMsg:
    """Build and sign a request envelope.

    ``msgtype`` is set to *payload_type* inside the signed payload; a
    conflicting ``msgtype`` already present in *payload* is rejected.
    """
    if not isinstance(payload_type, str) or not payload_type:
        raise EnvelopeError("payload_type must be a non-empty string")
    if not isinstance(payload, dict):
        raise EnvelopeError("payload must be a dict")
    msgtype = payload.get("msgtype", payload_type)
    if msgtype != payload_type:
        raise EnvelopeError(
            f"msgtype {msgtype!r} does not match payload_type {payload_type!r}"
        )
    message = canonical_message(payload_type, payload)
    payload_b64 = base64.b64encode(message).decode("ascii")
    return {
        "signature": crypto.sign(payload_b64, prvkey),
        "payloadtype": payload_type,
        "payload": payload_b64,
    }


def compose(payload_type: str, payload: dict[str, Any], prvkey: str) -> str:
    """Build a signed envelope and serialize it as an HTTP/WebSocket body."""
    return json.dumps(build_rpcmsg(payload_type, payload, prvkey))


def open_rpcmsg(body: str) -> tuple[str, dict[str, Any], str]:
    """Unwrap a request envelope the way the server does.

    Returns:
        ``(payload_type, payload, signer_identity)``.

    Raises:
        EnvelopeError: On structural problems or a msgtype mismatch.
        CryptoError: If no identity can be recovered from the signature.
    """
    envelope = _loads_object(body, "Envelope")
    missing = {"signature", "payloadtype", "payload"} - set(envelope)
    if missing:
        raise EnvelopeError(f"Missing envelope fields: {sorted(missing)}")

    payload_b64 = envelope["payload"]
    payload = _loads_object(decode_payload(payload_b64), "Payload")
    if payload.get("msgtype") != envelope["payloadtype"]:
        raise EnvelopeError(
            f"msgtype {payload.get('msgtype')!r} does not match "
            f"payloadtype {envelope['payloadtype']!r}"
        )
    signer = crypto.recover_identity(payload_b64, envelope["signature"])
    return envelope["payloadtype"], payload, signer


def parse_reply(body: str) -> RPCReplyMsg:
    """Parse a reply envelope, checking field presence and types."""
    reply = _loads_object(body, "Reply")
    if not isinstance(reply.get("payload"), str):
        raise EnvelopeError("Reply payload must be a string")
    if not isinstance(reply.get("error", False), bool):
        raise EnvelopeError("Reply error flag must be a boolean")
    return {
        "payloadtype": reply.get("payloadtype") or "",
        "payload": reply["payload"],
        "error": reply.get("error", False),
    }


def build_reply(payload_type: str, payload: Any, error: bool = False) -> str:
    """Serialize a reply envelope; used by test servers and fixtures."""
    data = json.dumps(payload).encode("utf-8")
    return json.dumps({
        "payloadtype": payload_type,
        "payload": base64.b64encode(data).decode("ascii"),
        "error": error,
    })


def parse_failure(text: str, status: int) -> tuple[int, str]:
    """Extract ``(status, message)`` from a decoded Failure payload.

    Text that is not a Failure object is returned verbatim as the message.
    """
    try:
        failure = json.loads(text)
    except ValueError:
        return status, text
    if not isinstance(failure, dict):
        return status, text
    message = failure.get("message")
    reported = failure.get("status")
    # bool is an int subclass but never a status code
    if isinstance(reported, int) and not isinstance(reported, bool) and reported:
        status = reported
    return status, message if isinstance(message, str) else text
