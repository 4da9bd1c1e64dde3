"""
Transition Builder — the value owner's side

Turns a plaintext update (old balance, old nonce, amount) into a
StateTransition that carries no plaintext:

1. Share old balance and amount with independent degree t-1 polynomials.
2. New balance polynomial = old + amount, coefficientwise, so every node's
   shares satisfy old_i + amount_i == new_i.
3. Share the old nonce; new nonce shares are old + 1 on every node.
4. Prove the new balance sharing with the VSS prover.
5. Encrypt one bundle per node.

The plaintext values and all polynomials are dropped once the transition
is built.
"""

from dataclasses import dataclass
from typing import Mapping, Sequence

from quorum import channel
from quorum.exceptions import UsageError
from quorum.models import EncryptedShare, MerkleProofElement, ShareBundle, StateTransition
from quorum.shamir import PRIME, RandomSource, add_polynomials, evaluate_polynomial, random_polynomial
from quorum.vss import VSSProof, prove_polynomial


@dataclass(frozen=True)
class SharedUpdate:
    """Per-node bundles (secret) and the VSS proof (public) for one update."""
    bundles: Mapping[int, ShareBundle]
    proof: VSSProof


def share_update(
    old_balance: int,
    old_nonce: int,
    amount: int,
    n: int,
    t: int,
    initialize: bool = False,
    rng: RandomSource | None = None,
) -> SharedUpdate:
    """
    Split one balance/nonce update into per-node share bundles.

    Args:
        old_balance: Current balance.
        old_nonce: Current nonce.
        amount: Signed change (negative for withdrawals and outgoing transfers).
        n: Committee size; bundles are keyed by node id 1..n.
        t: Threshold.
        initialize: First deposit. Old balance and nonce must be zero; old
            balance and both nonce sharings are all-zero so validators skip
            the nonce check.
        rng: Randomness provider.

    Raises:
        UsageError: On t outside 1..n, or initialize with a non-zero state.
    """
    if not 1 <= t <= n:
        raise UsageError("Threshold must be between 1 and the committee size")

    degree = t - 1
    if initialize:
        if old_balance != 0 or old_nonce != 0:
            raise UsageError("Initialization requires a zero balance and nonce")
        old_balance_poly = [0] * t
        old_nonce_poly = [0] * t
        nonce_step = 0
    else:
        old_balance_poly = random_polynomial(old_balance, degree, rng)
        old_nonce_poly = random_polynomial(old_nonce, degree, rng)
        nonce_step = 1

    amount_poly = random_polynomial(amount, degree, rng)
    new_balance_poly = add_polynomials(old_balance_poly, amount_poly)

    dealing = prove_polynomial(new_balance_poly, n, rng)

    bundles = {}
    for node_id in range(1, n + 1):
        new_balance_share, gamma = dealing.for_node(node_id)
        old_nonce_share = evaluate_polynomial(old_nonce_poly, node_id)
        bundles[node_id] = ShareBundle(
            old_balance_share=evaluate_polynomial(old_balance_poly, node_id),
            new_balance_share=new_balance_share,
            amount_share=evaluate_polynomial(amount_poly, node_id),
            old_nonce_share=old_nonce_share,
            new_nonce_share=(old_nonce_share + nonce_step) % PRIME,
            gamma=gamma,
        )

    return SharedUpdate(bundles=bundles, proof=dealing.proof)


def seal_bundles(
    bundles: Mapping[int, ShareBundle],
    node_keys: Mapping[int, bytes],
    sender_private_key: bytes,
) -> tuple[EncryptedShare, ...]:
    """Encrypt each node's bundle to that node's public key."""
    missing = set(bundles) - set(node_keys)
    if missing:
        raise UsageError(f"No encryption key for nodes {sorted(missing)}")

    return tuple(
        EncryptedShare(
            node_id=node_id,
            encrypted_data=channel.encrypt(
                bundle.to_dict(), node_keys[node_id], sender_private_key
            ),
        )
        for node_id, bundle in sorted(bundles.items())
    )


def build_transition(
    *,
    user_address: str,
    owner_keys: channel.KeyPair,
    node_keys: Mapping[int, bytes],
    threshold: int,
    old_balance: int,
    old_nonce: int,
    amount: int,
    old_state_root: bytes,
    new_state_root: bytes,
    merkle_proof: Sequence[MerkleProofElement] = (),
    state_pointer: str = "",
    initialize: bool = False,
    rng: RandomSource | None = None,
) -> StateTransition:
    """
    Build a complete transition ready for submission to the ledger.

    ``node_keys`` maps node ids 1..n to their encryption public keys.
    """
    n = len(node_keys)
    if sorted(node_keys) != list(range(1, n + 1)):
        raise UsageError("Node ids must be 1..n")

    update = share_update(
        old_balance, old_nonce, amount, n, threshold, initialize=initialize, rng=rng
    )
    return StateTransition(
        user_address=user_address,
        old_state_root=bytes(old_state_root),
        new_state_root=bytes(new_state_root),
        merkle_proof=tuple(merkle_proof),
        state_pointer=state_pointer,
        user_pubkey_or_sig=owner_keys.public_key,
        encrypted_shares=seal_bundles(update.bundles, node_keys, owner_keys.private_key),
        vss_commitments=update.proof.commitments,
        vss_proof_polynomial=update.proof.proof_polynomial,
    )
