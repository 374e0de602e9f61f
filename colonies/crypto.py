"""secp256k1 identities: key generation, identity derivation, recoverable signatures.

A principal is addressed by its *identity*: the SHA3-256 digest of the hex
text of its uncompressed public key (``04 || X || Y``). Signatures are 65-byte
recoverable ECDSA signatures (``r || s || v``) over the SHA3-256 digest of the
message, so anyone holding ``(message, signature)`` can recompute the
signer's identity without ever seeing the public key.

All keys, identities, digests and signatures travel as lowercase hex strings.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Protocol

from eth_keys import keys
from eth_keys.constants import SECPK1_N
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import decode_hex

from .errors import CryptoError, IdentityError

logger = logging.getLogger(__name__)

PRVKEY_BYTES = 32
SIGNATURE_BYTES = 65
_UNCOMPRESSED_TAG = "04"


def _decode_hex(value: str, expected_len: int, what: str) -> bytes:
    if not isinstance(value, str):
        raise CryptoError(f"{what} must be a hex string")
    try:
        raw = decode_hex(value)
    except (ValueError, TypeError) as e:
        raise CryptoError(f"{what} is not valid hex: {e}") from e
    if len(raw) != expected_len:
        raise CryptoError(
            f"{what} must decode to {expected_len} bytes, got {len(raw)}"
        )
    return raw


def _private_key(prvkey: str) -> keys.PrivateKey:
    raw = _decode_hex(prvkey, PRVKEY_BYTES, "Private key")
    scalar = int.from_bytes(raw, "big")
    if not 0 < scalar < SECPK1_N:
        raise CryptoError("Private key is outside the secp256k1 scalar range")
    try:
        return keys.PrivateKey(raw)
    except ValidationError as e:
        raise CryptoError(f"Invalid private key: {e}") from e


def _identity_of(public_key: keys.PublicKey) -> str:
    return hash_message(_UNCOMPRESSED_TAG + public_key.to_bytes().hex())


def _digest(message: str) -> bytes:
    if not isinstance(message, str):
        raise CryptoError("Message must be a string")
    return hashlib.sha3_256(message.encode("utf-8")).digest()


def generate_key() -> str:
    """Return a fresh private key: 64 hex chars, a scalar in ``[1, n)``."""
    while True:
        raw = secrets.token_bytes(PRVKEY_BYTES)
        if 0 < int.from_bytes(raw, "big") < SECPK1_N:
            return raw.hex()


def derive_identity(prvkey: str) -> str:
    """Derive the 64-hex-char identity of *prvkey*.

    Raises:
        CryptoError: If *prvkey* is not 32 bytes of hex or out of range.
    """
    return _identity_of(_private_key(prvkey).public_key)


def hash_message(message: str) -> str:
    """SHA3-256 hex digest of the UTF-8 encoded *message*."""
    return _digest(message).hex()


def sign(message: str, prvkey: str) -> str:
    """Sign *message* with *prvkey*, returning a 130-hex-char signature.

    The nonce is derived per RFC 6979, so signing the same message with the
    same key always yields the same signature.
    """
    signature = _private_key(prvkey).sign_msg_hash(_digest(message))
    return signature.to_bytes().hex()


def recover_identity(message: str, signature: str) -> str:
    """Recompute the identity of whoever produced *signature* over *message*.

    Raises:
        CryptoError: If the signature is malformed or no public key can be
            recovered from it.
    """
    raw = _decode_hex(signature, SIGNATURE_BYTES, "Signature")
    if raw[-1] not in (0, 1):
        raise CryptoError(f"Invalid recovery indicator: {raw[-1]}")
    try:
        sig = keys.Signature(signature_bytes=raw)
        public_key = sig.recover_public_key_from_msg_hash(_digest(message))
    except (BadSignature, ValidationError) as e:
        raise CryptoError(f"Signature recovery failed: {e}") from e
    return _identity_of(public_key)


class Crypto(Protocol):
    """The signature capability the envelope protocol relies on."""

    def derive_identity(self, prvkey: str) -> str: ...

    def sign(self, message: str, prvkey: str) -> str: ...

    def hash_message(self, message: str) -> str: ...

    def recover_identity(self, message: str, signature: str) -> str: ...


class Secp256k1Crypto:
    """:class:`Crypto` backed by the module-level secp256k1 functions."""

    def derive_identity(self, prvkey: str) -> str:
        return derive_identity(prvkey)

    def sign(self, message: str, prvkey: str) -> str:
        return sign(message, prvkey)

    def hash_message(self, message: str) -> str:
        return hash_message(message)

    def recover_identity(self, message: str, signature: str) -> str:
        return recover_identity(message, signature)


class Identity:
    """A principal's private key together with its derived identity."""

    def __init__(self, prvkey: str):
        key = _private_key(prvkey)
        self._prvkey = key.to_bytes().hex()
        self._id = _identity_of(key.public_key)

    @classmethod
    def generate(cls) -> "Identity":
        """Generate a new random key (in-memory only)."""
        return cls(generate_key())

    @classmethod
    def from_hex(cls, prvkey: str) -> "Identity":
        try:
            return cls(prvkey)
        except CryptoError as e:
            raise IdentityError(f"Invalid private key: {e}") from e

    @classmethod
    def create(cls, path: str) -> "Identity":
        """Generate a new key and save it to *path*. Creates parent dirs.

        Raises:
            IdentityError: If *path* already exists (will not overwrite).
        """
        p = Path(path)
        if p.exists():
            raise IdentityError(f"Identity file already exists: {path}")
        identity = cls.generate()
        identity.save(path)
        logger.debug("Created identity %s at %s", identity.id, path)
        return identity

    @classmethod
    def load(cls, path: str) -> "Identity":
        """Load a hex-encoded private key from *path*."""
        p = Path(path)
        if not p.exists():
            raise IdentityError(f"Identity file not found: {path}")
        text = p.read_text(encoding="ascii", errors="replace").strip()
        if len(text) != 2 * PRVKEY_BYTES:
            raise IdentityError(
                f"Invalid key file: expected {2 * PRVKEY_BYTES} hex chars, "
                f"got {len(text)}"
            )
        return cls.from_hex(text)

    def save(self, path: str) -> None:
        """Write the hex private key to *path*. Creates parent dirs."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(self._prvkey + "\n", encoding="ascii")

    @property
    def prvkey(self) -> str:
        return self._prvkey

    @property
    def id(self) -> str:
        """64-hex-char identity derived from the private key."""
        return self._id

    def sign(self, message: str) -> str:
        return sign(message, self._prvkey)

    def __repr__(self) -> str:
        return f"Identity(id={self._id!r})"
