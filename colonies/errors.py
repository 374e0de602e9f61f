"""Machine-readable error categories for ColonyOS client failures."""


class ColoniesError(Exception):
    """Base exception for all colonies errors."""


class DecodingError(ColoniesError):
    """Malformed key, signature, hex, base64 or JSON input."""


class CryptoError(DecodingError):
    """Key material or signature could not be decoded or recovered."""


class EnvelopeError(DecodingError):
    """Invalid envelope structure or msgtype mismatch."""


class CanonicalizationError(DecodingError):
    """JSON canonicalization failed."""


class IdentityError(ColoniesError):
    """Identity key loading or generation error."""


class RPCError(ColoniesError):
    """Server exchange failed.

    ``conn_err()`` separates transport failures, where a retry may help,
    from rejections reported by the server.
    """

    connection_error = False

    def conn_err(self) -> bool:
        return self.connection_error


class RPCConnectionError(RPCError):
    """The server could not be reached or the transport broke down."""

    connection_error = True


class RPCFailure(RPCError):
    """The server rejected the request; carries its status and message."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class ConfigError(ColoniesError, ValueError):
    """Client configuration cannot describe a reachable server."""
