"""
Data model shared by the owner, the validators and the ledger boundary.

Field names of ShareBundle and StateTransition are part of the ledger's wire
format and must stay verbatim. ``from_dict`` / ``to_dict`` are the only places
wire encodings are read or written; attributes always hold canonical values
(field integers, raw bytes).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from quorum.encoding import (
    canonical_json,
    decode_digest,
    decode_digests,
    decode_share,
    encode_digest,
    encode_share,
)
from quorum.exceptions import ProtocolError
from quorum.tss import PartialSignature


class ValidationState(Enum):
    """States of the per-node validation machine."""
    RECEIVED = "received"
    DECRYPTED = "decrypted"
    VSS_VERIFIED = "vss_verified"
    ARITHMETIC_VERIFIED = "arithmetic_verified"
    SIGNED = "signed"
    REJECTED = "rejected"


SHARE_FIELDS = (
    "old_balance_share",
    "new_balance_share",
    "amount_share",
    "old_nonce_share",
    "new_nonce_share",
)


@dataclass(frozen=True)
class ShareBundle:
    """One node's decrypted shares for a transition."""
    old_balance_share: int
    new_balance_share: int
    amount_share: int
    old_nonce_share: int
    new_nonce_share: int
    gamma: int | None = None

    def to_dict(self) -> dict:
        data = {name: encode_share(getattr(self, name)) for name in SHARE_FIELDS}
        if self.gamma is not None:
            data["gamma"] = encode_share(self.gamma)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ShareBundle":
        if not isinstance(data, dict):
            raise ProtocolError("Share bundle must be an object")
        values = {}
        for name in SHARE_FIELDS:
            if data.get(name) is None:
                raise ProtocolError(f"Missing share field: {name}")
            values[name] = decode_share(data[name])
        gamma = data.get("gamma")
        # The ledger serializes an absent gamma as an empty string
        if gamma is not None and gamma != "":
            values["gamma"] = decode_share(gamma)
        return cls(**values)


@dataclass(frozen=True)
class EncryptedShare:
    """The envelope addressed to one node."""
    node_id: int
    encrypted_data: str

    def to_dict(self) -> dict:
        return {"node_id": self.node_id, "encrypted_data": self.encrypted_data}

    @classmethod
    def from_dict(cls, data: dict) -> "EncryptedShare":
        return cls(node_id=int(data["node_id"]), encrypted_data=str(data["encrypted_data"]))


@dataclass(frozen=True)
class MerkleProofElement:
    hash: bytes
    is_left: bool

    def to_dict(self) -> dict:
        return {"hash": encode_digest(self.hash), "is_left": self.is_left}

    @classmethod
    def from_dict(cls, data: dict) -> "MerkleProofElement":
        return cls(hash=decode_digest(data["hash"]), is_left=bool(data["is_left"]))


def _decode_bytes(raw: Any) -> bytes:
    if raw is None:
        return b""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        try:
            return bytes.fromhex(raw.removeprefix("0x"))
        except ValueError as exc:
            raise ProtocolError("Malformed hex bytes") from exc
    try:
        return bytes(raw)
    except (TypeError, ValueError) as exc:
        raise ProtocolError("Malformed byte list") from exc


@dataclass(frozen=True)
class StateTransition:
    """
    A proposed update to one user's private balance/nonce pair.

    Carries only public material plus one encrypted share bundle per node.
    """
    user_address: str
    old_state_root: bytes
    new_state_root: bytes
    merkle_proof: tuple[MerkleProofElement, ...] = ()
    state_pointer: str = ""
    user_pubkey_or_sig: bytes = b""
    encrypted_shares: tuple[EncryptedShare, ...] = ()
    vss_commitments: tuple[bytes, ...] = ()
    vss_proof_polynomial: tuple[int, ...] = ()

    def to_dict(self) -> dict:
        return {
            "user_address": self.user_address,
            "old_state_root": encode_digest(self.old_state_root),
            "new_state_root": encode_digest(self.new_state_root),
            "merkle_proof": [e.to_dict() for e in self.merkle_proof],
            "state_pointer": self.state_pointer,
            "user_pubkey_or_sig": list(self.user_pubkey_or_sig),
            "encrypted_shares": [s.to_dict() for s in self.encrypted_shares],
            "vss_commitments": [encode_digest(c) for c in self.vss_commitments],
            "vss_proof_polynomial": [encode_share(c) for c in self.vss_proof_polynomial],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StateTransition":
        """
        Decode a ledger record.

        The contract's own field names ``new_state_ipfs`` and
        ``user_signature`` are accepted for the pointer and signature.
        """
        try:
            return cls(
                user_address=str(data["user_address"]),
                old_state_root=decode_digest(data["old_state_root"]),
                new_state_root=decode_digest(data["new_state_root"]),
                merkle_proof=tuple(
                    MerkleProofElement.from_dict(e) for e in data.get("merkle_proof") or ()
                ),
                state_pointer=str(data.get("state_pointer", data.get("new_state_ipfs", ""))),
                user_pubkey_or_sig=_decode_bytes(
                    data.get("user_pubkey_or_sig", data.get("user_signature"))
                ),
                encrypted_shares=tuple(
                    EncryptedShare.from_dict(s) for s in data.get("encrypted_shares") or ()
                ),
                vss_commitments=tuple(decode_digests(data.get("vss_commitments") or ())),
                vss_proof_polynomial=tuple(
                    decode_share(c) for c in data.get("vss_proof_polynomial") or ()
                ),
            )
        except KeyError as exc:
            raise ProtocolError(f"Missing transition field: {exc.args[0]}") from exc

    def signing_message(self) -> bytes:
        """
        The bytes every validator signs for this transition.

        Covers all public fields and the envelopes, so a signature cannot be
        moved to a transition with different shares or proof material.
        """
        return b"quorum-transition-v1" + canonical_json(self.to_dict())


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of one node validating one transition (or transfer).

    On acceptance ``old_commitment`` and ``new_commitment`` carry the hex
    hashes of this node's (balance, nonce) share pairs before and after the
    update, for the ledger to cross-check against its stored state.
    """
    valid: bool
    reason: str
    partial_signature: PartialSignature | None = None
    state: ValidationState = ValidationState.REJECTED
    old_commitment: str | None = None
    new_commitment: str | None = None

    def to_dict(self) -> dict:
        data = {
            "valid": self.valid,
            "reason": self.reason,
            "partial_signature": (
                list(self.partial_signature.signature) if self.partial_signature else None
            ),
        }
        if self.old_commitment is not None:
            data["old_commitment"] = self.old_commitment
            data["new_commitment"] = self.new_commitment
        return data
