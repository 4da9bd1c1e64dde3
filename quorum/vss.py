"""
Verifiable Secret Sharing — hash-based, non-interactive (Baghery-style)

Binds every node's share to one committed secret without revealing the
secret, the sharing polynomial, or any other node's share.

Prover (the value owner):
  1. Secret polynomial P with P(0) = secret, auxiliary polynomial R with
     R(0) = 0, both of degree t-1.
  2. A random blinding gamma_i per node.
  3. c_i = H(P(i) || R(i) || gamma_i) for i = 1..n.
  4. d = H(c_1 || ... || c_n) mod PRIME (Fiat-Shamir: nobody picks d).
  5. Z = R + d*P, coefficientwise.
  P(i) and gamma_i go to node i encrypted; c_1..c_n and Z are public.
  P and R never leave the prover.

Verifier (node i, from its own share plus public values only):
  1. Recompute d from the commitments. A supplied challenge is never trusted.
  2. Evaluate Z(i).
  3. R'(i) = Z(i) - d*v_i.
  4. Reject a Z with more than t coefficients.
  5. Accept iff H(v_i || R'(i) || gamma_i) == c_i byte-for-byte.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Any, Sequence

import structlog

from quorum.encoding import decode_digests, decode_share, encode_digest, encode_share
from quorum.exceptions import ProtocolError, UsageError
from quorum.shamir import (
    FIELD_BYTES,
    PRIME,
    RandomSource,
    add_polynomials,
    create_shamir_shares,
    evaluate_polynomial,
    random_element,
    scale_polynomial,
    to_field,
)

logger = structlog.get_logger(__name__)

# Domain separation for the two hash uses
_COMMITMENT_TAG = b"quorum-vss-commitment-v1"
_CHALLENGE_TAG = b"quorum-vss-challenge-v1"

REASON_PROOF_MISSING = "VSS proof missing from transition"
REASON_GAMMA_MISSING = "Gamma missing from encrypted shares"
REASON_VERIFY_FAILED = "VSS verification failed for balance share"
REASON_VERIFY_PASSED = "VSS verification passed"


def _element_bytes(value: int) -> bytes:
    return to_field(value).to_bytes(FIELD_BYTES, "big")


def hash_commitment(share: int, aux: int, gamma: int) -> bytes:
    """c = SHA-256(tag || share || aux || gamma), each a 32-byte field element."""
    payload = _COMMITMENT_TAG + _element_bytes(share) + _element_bytes(aux) + _element_bytes(gamma)
    return hashlib.sha256(payload).digest()


def derive_challenge(commitments: Sequence[bytes]) -> int:
    """Fiat-Shamir challenge d over the full, ordered commitment set."""
    digest = hashlib.sha256(_CHALLENGE_TAG + b"".join(commitments)).digest()
    return int.from_bytes(digest, "big") % PRIME


@dataclass(frozen=True)
class VSSProof:
    """Public proof material published alongside a transition."""
    commitments: tuple[bytes, ...]
    proof_polynomial: tuple[int, ...]
    challenge: int

    def to_wire(self) -> dict:
        """Serialize into the transition's vss_commitments / vss_proof_polynomial fields."""
        return {
            "vss_commitments": [encode_digest(c) for c in self.commitments],
            "vss_proof_polynomial": [encode_share(c) for c in self.proof_polynomial],
        }

    @classmethod
    def from_wire(cls, commitments: Sequence[Any], proof_polynomial: Sequence[Any]) -> "VSSProof":
        """Decode wire values. The challenge is always recomputed, never read."""
        decoded = tuple(decode_digests(commitments))
        polynomial = tuple(decode_share(c) for c in proof_polynomial)
        return cls(
            commitments=decoded,
            proof_polynomial=polynomial,
            challenge=derive_challenge(decoded),
        )


@dataclass(frozen=True)
class VSSDealing:
    """
    Everything the prover produces.

    ``shares`` and ``gammas`` are secret and are handed out one pair per node
    (index i - 1 belongs to node i). ``proof`` is public.
    """
    shares: tuple[int, ...]
    gammas: tuple[int, ...]
    proof: VSSProof

    def for_node(self, node_id: int) -> tuple[int, int]:
        """The (share, gamma) pair destined for one node."""
        if not 1 <= node_id <= len(self.shares):
            raise UsageError(f"No share for node {node_id}")
        return self.shares[node_id - 1], self.gammas[node_id - 1]


def prove_polynomial(
    polynomial: Sequence[int],
    n: int,
    rng: RandomSource | None = None,
) -> VSSDealing:
    """
    Run the prover for an already-built secret polynomial P.

    The owner uses this when P is derived from other sharings (for example
    new balance = old balance + amount, coefficientwise) so the proven shares
    are exactly the ones the validators check arithmetic on.

    Args:
        polynomial: Coefficients of P, constant term first. Degree t-1.
        n: Number of nodes.
        rng: Randomness provider for R and the gammas.

    Raises:
        UsageError: If the polynomial is empty or has more than n coefficients.
    """
    t = len(polynomial)
    if t < 1:
        raise UsageError("Secret polynomial must have at least one coefficient")
    if t > n:
        raise UsageError("Threshold cannot exceed number of shares")

    secret_poly = [to_field(c) for c in polynomial]
    aux_values, aux_poly = create_shamir_shares(0, n, t, rng)

    shares = [evaluate_polynomial(secret_poly, i) for i in range(1, n + 1)]
    gammas = [random_element(rng) for _ in range(n)]

    commitments = tuple(
        hash_commitment(share, aux, gamma)
        for share, aux, gamma in zip(shares, aux_values, gammas)
    )
    challenge = derive_challenge(commitments)
    proof_poly = add_polynomials(aux_poly, scale_polynomial(secret_poly, challenge))

    return VSSDealing(
        shares=tuple(shares),
        gammas=tuple(gammas),
        proof=VSSProof(
            commitments=commitments,
            proof_polynomial=tuple(proof_poly),
            challenge=challenge,
        ),
    )


def generate_proof(secret: int, t: int, n: int, rng: RandomSource | None = None) -> VSSDealing:
    """Share a secret t-of-n and prove the sharing in one step."""
    _, polynomial = create_shamir_shares(secret, n, t, rng)
    return prove_polynomial(polynomial, n, rng)


def verify_share(
    node_id: int,
    share: Any,
    gamma: Any,
    commitments: Sequence[Any],
    proof_polynomial: Sequence[Any],
    threshold: int,
) -> bool:
    """
    Check one node's share against the public commitments and proof polynomial.

    ``threshold`` is the committee's t. A proof polynomial with more than t
    coefficients could pass through any n points, so it is refused: only then
    do the shares of every t-subset reconstruct the same secret.

    Accepts canonical integers/bytes or their wire encodings. Malformed input
    or a node id outside 1..n verifies as False.
    """
    try:
        proof = VSSProof.from_wire(commitments, proof_polynomial)
        value = decode_share(share)
        blinding = decode_share(gamma)
    except ProtocolError as exc:
        logger.debug("vss_malformed_input", node_id=node_id, error=str(exc))
        return False

    if not 1 <= node_id <= len(proof.commitments):
        logger.debug("vss_node_out_of_range", node_id=node_id, n=len(proof.commitments))
        return False

    if not 1 <= threshold <= len(proof.commitments) or len(proof.proof_polynomial) > threshold:
        logger.debug(
            "vss_degree_exceeded",
            node_id=node_id,
            threshold=threshold,
            coefficients=len(proof.proof_polynomial),
        )
        return False

    z_value = evaluate_polynomial(proof.proof_polynomial, node_id)
    aux_value = (z_value - proof.challenge * value) % PRIME

    expected = hash_commitment(value, aux_value, blinding)
    return hmac.compare_digest(expected, proof.commitments[node_id - 1])


def verify_transition_vss(node_id: int, bundle, transition, threshold: int) -> tuple[bool, str]:
    """
    VSS gate of the validator: check the new balance share of a bundle.

    Args:
        node_id: This node's id (its evaluation point).
        bundle: The decrypted ShareBundle.
        transition: The StateTransition carrying the public proof.
        threshold: The committee's t.

    Returns:
        (ok, reason) with one of the fixed reason strings.
    """
    if not transition.vss_commitments or not transition.vss_proof_polynomial:
        return False, REASON_PROOF_MISSING

    if bundle.gamma is None:
        return False, REASON_GAMMA_MISSING

    ok = verify_share(
        node_id,
        bundle.new_balance_share,
        bundle.gamma,
        transition.vss_commitments,
        transition.vss_proof_polynomial,
        threshold,
    )
    if not ok:
        return False, REASON_VERIFY_FAILED
    return True, REASON_VERIFY_PASSED
