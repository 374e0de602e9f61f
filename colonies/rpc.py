"""HTTP transport for signed envelopes: one POST per exchange, no retries."""

import logging

import requests

from .config import ColoniesConfig
from .envelope import decode_payload, parse_failure, parse_reply
from .errors import EnvelopeError, RPCConnectionError, RPCFailure

logger = logging.getLogger(__name__)


def send(config: ColoniesConfig, wire_body: str) -> str:
    """POST *wire_body* to the server and return the decoded reply payload.

    Returns:
        The reply payload as JSON text, for the caller to deserialize.

    Raises:
        RPCConnectionError: If no response arrived (DNS, refused, timeout).
        RPCFailure: If the server answered with a non-200 status or an
            error reply; carries the server's status and message.
        EnvelopeError: If a 200 reply is not a well-formed envelope.
    """
    url = config.server_url
    try:
        resp = requests.post(
            url,
            data=wire_body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=config.timeout,
            verify=config.verify,
        )
    except requests.RequestException as e:
        logger.debug("POST %s failed: %s", url, e)
        raise RPCConnectionError(f"POST {url} failed: {e}") from e

    status = resp.status_code
    try:
        reply = parse_reply(resp.text)
        text = decode_payload(reply["payload"])
    except EnvelopeError:
        if status != 200:
            raise RPCFailure(status, resp.text) from None
        raise

    logger.debug(
        "POST %s -> %d (payloadtype=%s, error=%s)",
        url, status, reply["payloadtype"], reply["error"],
    )
    if status != 200 or reply["error"]:
        status, message = parse_failure(text, status)
        logger.warning("Server rejected request (%d): %s", status, message)
        raise RPCFailure(status, message)
    return text
