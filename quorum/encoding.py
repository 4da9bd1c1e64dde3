"""
Wire encoding for share values, digests and canonical JSON.

Two share encodings circulate on the wire: raw integers and hex strings.
This module is the only place that knows about either. Everything past
``decode_share`` works on canonical field integers.
"""

import json
from typing import Any, Iterable

from quorum.exceptions import ProtocolError
from quorum.shamir import PRIME, to_field

# A share value as it appears on the wire: int or hex string.
ShareValue = int | str

DIGEST_SIZE = 32


def encode_share(value: int) -> str:
    """Encode a share as a fixed-width hex string (the ledger's format)."""
    return f"{to_field(value):064x}"


def decode_share(raw: Any) -> int:
    """
    Decode a wire share value into a canonical field integer.

    Accepts Python ints (signed values are reduced into the field) and hex
    strings with or without a ``0x`` prefix.

    Raises:
        ProtocolError: If the value is neither, or the hex is malformed or
            outside the field.
    """
    if isinstance(raw, bool):
        raise ProtocolError("Share value must be an integer or hex string, got bool")
    if isinstance(raw, int):
        return to_field(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        if not text:
            raise ProtocolError("Empty share value")
        try:
            value = int(text, 16)
        except ValueError as exc:
            raise ProtocolError(f"Malformed hex share value: {raw!r}") from exc
        if value >= PRIME:
            raise ProtocolError("Share value outside the field")
        return value
    raise ProtocolError(f"Unsupported share value type: {type(raw).__name__}")


def encode_digest(digest: bytes) -> list[int]:
    """Encode a digest as a list of byte values (the ledger stores Vec<u8>)."""
    return list(digest)


def decode_digest(raw: Any) -> bytes:
    """
    Decode a digest from bytes, a list of byte values, or a hex string.

    Raises:
        ProtocolError: If the value cannot be read as DIGEST_SIZE bytes.
    """
    if isinstance(raw, (bytes, bytearray)):
        digest = bytes(raw)
    elif isinstance(raw, str):
        try:
            digest = bytes.fromhex(raw.removeprefix("0x"))
        except ValueError as exc:
            raise ProtocolError("Malformed hex digest") from exc
    elif isinstance(raw, (list, tuple)):
        try:
            digest = bytes(raw)
        except (TypeError, ValueError) as exc:
            raise ProtocolError("Digest byte list contains non-byte values") from exc
    else:
        raise ProtocolError(f"Unsupported digest type: {type(raw).__name__}")

    if len(digest) != DIGEST_SIZE:
        raise ProtocolError(f"Digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return digest


def decode_digests(raw: Iterable[Any]) -> list[bytes]:
    return [decode_digest(item) for item in raw]


def canonical_json(data: Any) -> bytes:
    """Deterministic JSON bytes: sorted keys, no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")
