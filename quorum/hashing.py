"""
Hash helpers shared between the validator and the surrounding ledger logic.
"""

import hashlib
from typing import Any, Sequence

from quorum.encoding import canonical_json
from quorum.shamir import FIELD_BYTES, to_field


def hash_shares(balance_share: int, nonce_share: int) -> bytes:
    """SHA-256 over a (balance share, nonce share) pair."""
    hasher = hashlib.sha256()
    hasher.update(to_field(balance_share).to_bytes(FIELD_BYTES, "big"))
    hasher.update(to_field(nonce_share).to_bytes(FIELD_BYTES, "big"))
    return hasher.digest()


def create_commitment(value: Any) -> str:
    """Hex SHA-256 commitment to any JSON-serializable value."""
    return hashlib.sha256(canonical_json(value)).hexdigest()


def verify_merkle_proof(leaf: bytes, proof: Sequence[Any], root: bytes) -> bool:
    """
    Walk a Merkle path from a leaf hash up to the root.

    Args:
        leaf: The leaf hash.
        proof: Path elements with ``hash`` and ``is_left`` (siblings on the
            left are hashed first).
        root: The expected root hash.

    Returns:
        True if the path reproduces the root.
    """
    current = bytes(leaf)
    for element in proof:
        sibling = bytes(element.hash)
        if element.is_left:
            current = hashlib.sha256(sibling + current).digest()
        else:
            current = hashlib.sha256(current + sibling).digest()
    return current == bytes(root)
