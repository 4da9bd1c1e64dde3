"""
Secure Channel — per-node authenticated encryption of share bundles

Each node gets its own envelope. Nobody without the node's private key can
read it, and the node can tell the bundle came from the holder of the
sender's private key.

Construction:
  Sender key + recipient key → X25519 shared secret (static-static)
  Shared secret              → channel key (via HKDF, bound to both public keys)
  Channel key + fresh nonce  → ChaCha20-Poly1305 ciphertext

Envelope on the wire: base64(nonce || ciphertext || tag).

A fresh random nonce is drawn for every message. Any flipped bit, wrong key
or truncated token fails authentication; decrypt never returns partial or
corrupted plaintext.
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from quorum.encoding import canonical_json
from quorum.exceptions import TransportError

NONCE_SIZE = 12  # ChaCha20-Poly1305 standard
KEY_SIZE = 32
TAG_SIZE = 16

_CHANNEL_CONTEXT = b"quorum-share-channel-v1"


@dataclass(frozen=True)
class KeyPair:
    """A static X25519 key pair in raw 32-byte form."""
    public_key: bytes
    private_key: bytes = field(repr=False)

    @classmethod
    def generate(cls) -> "KeyPair":
        return cls.from_private_bytes(
            x25519.X25519PrivateKey.generate().private_bytes(
                serialization.Encoding.Raw,
                serialization.PrivateFormat.Raw,
                serialization.NoEncryption(),
            )
        )

    @classmethod
    def from_private_bytes(cls, private_key: bytes) -> "KeyPair":
        private = x25519.X25519PrivateKey.from_private_bytes(private_key)
        return cls(public_key=_public_raw(private), private_key=bytes(private_key))

    def public_hex(self) -> str:
        return self.public_key.hex()


def _public_raw(private: x25519.X25519PrivateKey) -> bytes:
    return private.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )


def _channel_key(
    private: x25519.X25519PrivateKey,
    peer_public: bytes,
    sender_public: bytes,
    recipient_public: bytes,
) -> bytes:
    shared = private.exchange(x25519.X25519PublicKey.from_public_bytes(peer_public))
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=None,
        info=_CHANNEL_CONTEXT + sender_public + recipient_public,
    )
    return hkdf.derive(shared)


def encrypt(data: Any, recipient_public_key: bytes, sender_private_key: bytes) -> str:
    """
    Encrypt a JSON-serializable value for one recipient.

    Args:
        data: Any JSON-serializable value (a share bundle dict, usually).
        recipient_public_key: Recipient's raw 32-byte X25519 public key.
        sender_private_key: Sender's raw 32-byte X25519 private key.

    Returns:
        Base64 transport token: nonce || ciphertext.
    """
    sender = x25519.X25519PrivateKey.from_private_bytes(sender_private_key)
    sender_public = _public_raw(sender)
    recipient_public = bytes(recipient_public_key)

    key = _channel_key(sender, recipient_public, sender_public, recipient_public)
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = ChaCha20Poly1305(key).encrypt(
        nonce, canonical_json(data), sender_public + recipient_public
    )
    return base64.b64encode(nonce + ciphertext).decode()


def decrypt(envelope: str | bytes, sender_public_key: bytes, recipient_private_key: bytes) -> Any:
    """
    Open an envelope produced by ``encrypt``.

    Raises:
        TransportError: On any malformed token, key mismatch or tampering.
    """
    try:
        raw = base64.b64decode(envelope, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise TransportError("Decryption failed") from exc

    if len(raw) < NONCE_SIZE + TAG_SIZE:
        raise TransportError("Decryption failed")

    nonce, ciphertext = raw[:NONCE_SIZE], raw[NONCE_SIZE:]

    try:
        recipient = x25519.X25519PrivateKey.from_private_bytes(recipient_private_key)
        recipient_public = _public_raw(recipient)
        sender_public = bytes(sender_public_key)
        key = _channel_key(recipient, sender_public, sender_public, recipient_public)
        plaintext = ChaCha20Poly1305(key).decrypt(
            nonce, ciphertext, sender_public + recipient_public
        )
    except (InvalidTag, ValueError, TypeError) as exc:
        raise TransportError("Decryption failed") from exc

    return json.loads(plaintext.decode("utf-8"))
