"""ColonyOS Python client SDK."""

from .client import ColoniesClient
from .config import ColoniesConfig
from .crypto import (
    Crypto,
    Identity,
    Secp256k1Crypto,
    derive_identity,
    generate_key,
    hash_message,
    recover_identity,
    sign,
)
from .envelope import build_rpcmsg, compose, open_rpcmsg
from .errors import (
    CanonicalizationError,
    ColoniesError,
    ConfigError,
    CryptoError,
    DecodingError,
    EnvelopeError,
    IdentityError,
    RPCConnectionError,
    RPCError,
    RPCFailure,
)
from .pubsub import Session, SessionState, SubscriptionResult, subscribe
from .rpc import send

__all__ = [
    "ColoniesClient",
    "ColoniesConfig",
    "Crypto",
    "Identity",
    "Secp256k1Crypto",
    "derive_identity",
    "generate_key",
    "hash_message",
    "recover_identity",
    "sign",
    "build_rpcmsg",
    "compose",
    "open_rpcmsg",
    "send",
    "Session",
    "SessionState",
    "SubscriptionResult",
    "subscribe",
    "CanonicalizationError",
    "ColoniesError",
    "ConfigError",
    "CryptoError",
    "DecodingError",
    "EnvelopeError",
    "IdentityError",
    "RPCConnectionError",
    "RPCError",
    "RPCFailure",
]
