"""
Quorum — threshold validation of private balance updates

A value owner commits a balance/nonce update without any single party ever
seeing the value:

1. Shares   — the update is split t-of-n over a prime field (Shamir)
2. VSS      — a hash-based proof binds every share to one committed secret
3. Channel  — each node's share bundle is encrypted to that node alone
4. Validate — each node checks its own share: VSS, balance and nonce equations
5. Sign     — valid nodes emit partial BLS signatures; t of them aggregate

No node reconstructs the balance. Not even to check it is non-negative.

Usage:
    from quorum import Committee, build_transition, validate_transition
    committee = Committee.generate(size=3, threshold=2)
    transition = build_transition(...)
    result = validate_transition(committee.node(1), transition, envelope, owner_pk)
"""

from quorum.aggregator import SignatureAggregator
from quorum.channel import KeyPair, decrypt, encrypt
from quorum.committee import Committee, NodeIdentity
from quorum.exceptions import InvariantError, ProtocolError, QuorumError, TransportError, UsageError
from quorum.models import ShareBundle, StateTransition, ValidationResult, ValidationState
from quorum.shamir import (
    PRIME,
    create_additive_shares,
    create_shamir_shares,
    reconstruct_additive,
    reconstruct_shamir,
)
from quorum.transition import build_transition, share_update
from quorum.tss import AggregateSignature, PartialSignature, aggregate, verify
from quorum.validator import validate_transfer, validate_transition
from quorum.vss import VSSProof, generate_proof, verify_share

__version__ = "0.1.0"
__all__ = [
    "PRIME",
    "create_additive_shares",
    "reconstruct_additive",
    "create_shamir_shares",
    "reconstruct_shamir",
    "VSSProof",
    "generate_proof",
    "verify_share",
    "KeyPair",
    "encrypt",
    "decrypt",
    "ShareBundle",
    "StateTransition",
    "ValidationResult",
    "ValidationState",
    "Committee",
    "NodeIdentity",
    "validate_transition",
    "validate_transfer",
    "build_transition",
    "share_update",
    "PartialSignature",
    "AggregateSignature",
    "aggregate",
    "verify",
    "SignatureAggregator",
    "QuorumError",
    "TransportError",
    "ProtocolError",
    "InvariantError",
    "UsageError",
]
