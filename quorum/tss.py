"""
Threshold Signatures — t-of-n BLS over BLS12-381

Each node holds a key share sk_i = f(i) of a group secret f(0). A node that
accepts a transition signs the transition message with its share; any t
partial signatures interpolate (in the exponent) to the signature of the
group secret, which verifies against the single group public key.

  partial:   sigma_i = sk_i * H(m)
  aggregate: sigma   = sum(lambda_i * sigma_i)   (Lagrange at 0)
  verify:    e(g1, sigma) == e(pk_group, H(m))

Fewer than t partials interpolate a different key and fail verification.

Key generation here is a trusted-dealer ceremony. A distributed key
generation protocol is out of scope; the ceremony output has the same shape.
"""

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import structlog
from py_ecc.bls import G2ProofOfPossession as bls
from py_ecc.bls.g2_primitives import G1_to_pubkey, G2_to_signature, signature_to_G2
from py_ecc.optimized_bls12_381 import G1, add, curve_order, multiply

from quorum.exceptions import ProtocolError, UsageError
from quorum.shamir import RandomSource, evaluate_polynomial, lagrange_at_zero, get_random_source

logger = structlog.get_logger(__name__)

SIGNATURE_SIZE = 96   # compressed G2
PUBLIC_KEY_SIZE = 48  # compressed G1


@dataclass(frozen=True)
class SigningKeyShare:
    """One node's share of the committee signing key."""
    node_id: int
    secret: int = field(repr=False)
    public_share: bytes


@dataclass(frozen=True)
class CommitteePublicKeys:
    """Public verification material of a committee."""
    group_public_key: bytes
    public_shares: Mapping[int, bytes]
    threshold: int


@dataclass(frozen=True)
class PartialSignature:
    """A signature fragment from one node."""
    node_id: int
    signature: bytes

    def to_dict(self) -> dict:
        return {"node_id": self.node_id, "signature": self.signature.hex()}


@dataclass(frozen=True)
class AggregateSignature:
    """The combined threshold signature and the nodes that contributed."""
    signature: bytes
    signers: tuple[int, ...]

    def to_dict(self) -> dict:
        return {"signature": self.signature.hex(), "signers": list(self.signers)}


def keygen_ceremony(
    n: int,
    t: int,
    rng: RandomSource | None = None,
) -> tuple[list[SigningKeyShare], CommitteePublicKeys]:
    """
    Deal t-of-n signing key shares.

    Args:
        n: Committee size. Node ids are 1..n.
        t: Signatures needed for a valid aggregate.
        rng: Randomness provider for the dealer polynomial.

    Returns:
        (key shares, committee public keys)

    Raises:
        UsageError: If t < 1 or t > n.
    """
    if t < 1:
        raise UsageError("Threshold must be at least 1")
    if t > n:
        raise UsageError("Threshold cannot exceed committee size")

    source = get_random_source(rng)
    # Non-zero coefficients: the group secret must be a valid BLS key
    coefficients = [source.randrange(curve_order - 1) + 1 for _ in range(t)]

    shares = []
    public_shares = {}
    for node_id in range(1, n + 1):
        secret = evaluate_polynomial(coefficients, node_id, curve_order)
        public_share = G1_to_pubkey(multiply(G1, secret))
        shares.append(SigningKeyShare(node_id=node_id, secret=secret, public_share=public_share))
        public_shares[node_id] = public_share

    group_public_key = G1_to_pubkey(multiply(G1, coefficients[0]))
    return shares, CommitteePublicKeys(
        group_public_key=group_public_key,
        public_shares=public_shares,
        threshold=t,
    )


def sign_partial(key_share: SigningKeyShare, message: bytes) -> PartialSignature:
    """Sign a message with one node's key share."""
    return PartialSignature(
        node_id=key_share.node_id,
        signature=bls.Sign(key_share.secret, message),
    )


def verify_partial(
    partial: PartialSignature,
    message: bytes,
    public_keys: CommitteePublicKeys,
) -> bool:
    """Check one partial signature against the signer's public key share."""
    public_share = public_keys.public_shares.get(partial.node_id)
    if public_share is None:
        return False
    return bls.Verify(public_share, message, partial.signature)


def aggregate(partials: Sequence[PartialSignature]) -> AggregateSignature:
    """
    Combine partial signatures by Lagrange interpolation at 0.

    A single partial aggregates to itself. Callers pass at least the
    committee threshold; fewer still aggregate but will not verify.

    Raises:
        UsageError: If no partials are given or a node id repeats.
        ProtocolError: If a partial signature is not a valid G2 point.
    """
    if not partials:
        raise UsageError("No signatures to aggregate")

    node_ids = [p.node_id for p in partials]
    if len(set(node_ids)) != len(node_ids):
        raise UsageError("Duplicate signer in partial signatures")

    lambdas = lagrange_at_zero(node_ids, curve_order)

    combined = None
    for lam, partial in zip(lambdas, partials):
        try:
            point = signature_to_G2(partial.signature)
        except Exception as exc:
            raise ProtocolError(f"Malformed partial signature from node {partial.node_id}") from exc
        scaled = multiply(point, lam)
        combined = scaled if combined is None else add(combined, scaled)

    logger.debug("signatures_aggregated", signers=node_ids)
    return AggregateSignature(signature=G2_to_signature(combined), signers=tuple(node_ids))


def verify(
    signature: AggregateSignature,
    message: bytes,
    public_keys: CommitteePublicKeys,
) -> bool:
    """
    Verify an aggregate against the original message and committee keys.

    Requires at least ``threshold`` distinct known signers, then the pairing
    check against the group public key.
    """
    signers = set(signature.signers)
    if len(signers) < public_keys.threshold:
        return False
    if not signers.issubset(public_keys.public_shares):
        return False
    if len(signature.signature) != SIGNATURE_SIZE:
        return False
    return bls.Verify(public_keys.group_public_key, message, signature.signature)
