"""
Tests for the per-node validation state machine.

Scenarios use hand-picked share values so the arithmetic checks are easy to
follow; the VSS proof is built over a polynomial that passes through the
chosen new balance share at node 1.
"""

import random
import sys
from functools import lru_cache
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from quorum.channel import KeyPair, encrypt
from quorum.committee import Committee
from quorum.exceptions import InvariantError
from quorum.hashing import hash_shares
from quorum.models import EncryptedShare, ShareBundle, StateTransition, ValidationState
from quorum.shamir import to_field
from quorum.tss import verify_partial
from quorum.validator import (
    check_share_arithmetic,
    extract_node_shares,
    is_initialization,
    validate_encrypted_transfer,
    validate_transfer,
    validate_transition,
    verify_all_shares_present,
)
from quorum.vss import prove_polynomial

NODE_ID = 1
OWNER = KeyPair.generate()


@lru_cache(maxsize=None)
def _committee():
    return Committee.generate(size=3, threshold=2, rng=random.Random(5))


def _scenario(
    old_balance, amount, new_balance, old_nonce, new_nonce, with_gamma=True, with_proof=True, tail=(50,)
):
    """Build (transition, envelope) for node 1 with the given share values."""
    node = _committee().node(NODE_ID)
    # P(1) = new_balance; the committee threshold is 2, so one tail coefficient
    dealing = prove_polynomial(
        [to_field(new_balance - sum(tail)), *tail], n=3, rng=random.Random(17)
    )
    share, gamma = dealing.for_node(NODE_ID)
    assert share == to_field(new_balance)

    bundle = ShareBundle(
        old_balance_share=to_field(old_balance),
        new_balance_share=share,
        amount_share=to_field(amount),
        old_nonce_share=to_field(old_nonce),
        new_nonce_share=to_field(new_nonce),
        gamma=gamma if with_gamma else None,
    )
    envelope = encrypt(bundle.to_dict(), node.public_key, OWNER.private_key)
    transition = StateTransition(
        user_address="alice",
        old_state_root=bytes([1]) * 32,
        new_state_root=bytes([2]) * 32,
        user_pubkey_or_sig=OWNER.public_key,
        encrypted_shares=(EncryptedShare(node_id=NODE_ID, encrypted_data=envelope),),
        vss_commitments=dealing.proof.commitments if with_proof else (),
        vss_proof_polynomial=dealing.proof.proof_polynomial if with_proof else (),
    )
    return transition, envelope


def _validate(transition, envelope, sender=None):
    node = _committee().node(NODE_ID)
    return validate_transition(node, transition, envelope, sender or OWNER.public_key)


def test_acceptance_scenario():
    """500 + 100 = 600, nonce 5 -> 6, valid VSS: accepted and signed."""
    print("Testing acceptance scenario...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6)
    result = _validate(transition, envelope)
    assert result.valid, result.reason
    assert result.reason == "All checks passed"
    assert result.state is ValidationState.SIGNED
    assert result.partial_signature is not None
    assert result.partial_signature.node_id == NODE_ID
    assert verify_partial(
        result.partial_signature, transition.signing_message(), _committee().public_keys
    )

    # Share-pair hashes go back to the ledger with the result
    assert result.old_commitment == hash_shares(to_field(500), to_field(5)).hex()
    assert result.new_commitment == hash_shares(to_field(600), to_field(6)).hex()
    wire = result.to_dict()
    assert wire["old_commitment"] == result.old_commitment
    assert wire["new_commitment"] == result.new_commitment
    print("PASS")


def test_balance_violation():
    """500 + 100 != 650: rejected on the balance equation."""
    print("Testing balance violation...", end=" ")
    transition, envelope = _scenario(500, 100, 650, 5, 6)
    result = _validate(transition, envelope)
    assert not result.valid
    assert result.reason == "Balance equation failed on share"
    assert result.partial_signature is None
    assert result.state is ValidationState.REJECTED
    assert result.old_commitment is None
    assert "old_commitment" not in result.to_dict()
    print("PASS")


def test_nonce_violation():
    """Nonce unchanged (5 -> 5): rejected on the nonce check."""
    print("Testing nonce violation...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 5)
    result = _validate(transition, envelope)
    assert not result.valid
    assert result.reason == "Nonce not incremented correctly on share"
    print("PASS")


def test_initialization_skips_nonce_check():
    """First deposit: 0 + 1000 = 1000 with zero nonces is accepted."""
    print("Testing initialization scenario...", end=" ")
    transition, envelope = _scenario(0, 1000, 1000, 0, 0)
    result = _validate(transition, envelope)
    assert result.valid, result.reason

    # Exemption does not cover a broken balance equation
    transition, envelope = _scenario(0, 1000, 999, 0, 0)
    result = _validate(transition, envelope)
    assert result.reason == "Balance equation failed on share"
    print("PASS")


def test_decryption_failure():
    """Wrong claimed sender key: rejected before anything else."""
    print("Testing decryption failure...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6)
    result = _validate(transition, envelope, sender=KeyPair.generate().public_key)
    assert not result.valid
    assert result.reason == "Error: Decryption failed"

    result = _validate(transition, "garbage")
    assert result.reason == "Error: Decryption failed"
    print("PASS")


def test_missing_vss_material():
    """Missing proof fields and missing gamma give their own reasons."""
    print("Testing missing VSS material...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6, with_proof=False)
    assert _validate(transition, envelope).reason == "VSS proof missing from transition"

    transition, envelope = _scenario(500, 100, 600, 5, 6, with_gamma=False)
    assert _validate(transition, envelope).reason == "Gamma missing from encrypted shares"
    print("PASS")


def test_vss_mismatch():
    """A proof for someone else's sharing fails the VSS gate."""
    print("Testing VSS mismatch...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6)
    other, _ = _scenario(500, 100, 700, 5, 6)
    swapped = StateTransition(
        user_address=transition.user_address,
        old_state_root=transition.old_state_root,
        new_state_root=transition.new_state_root,
        encrypted_shares=transition.encrypted_shares,
        vss_commitments=other.vss_commitments,
        vss_proof_polynomial=other.vss_proof_polynomial,
    )
    result = _validate(swapped, envelope)
    assert result.reason == "VSS verification failed for balance share"
    print("PASS")


def test_over_degree_sharing_rejected():
    """A quadratic sharing shown to a 2-of-3 committee fails the VSS gate."""
    print("Testing over-degree sharing...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6, tail=(50, 7))
    assert len(transition.vss_proof_polynomial) == 3
    result = _validate(transition, envelope)
    assert not result.valid
    assert result.reason == "VSS verification failed for balance share"
    assert result.partial_signature is None
    print("PASS")


def test_malformed_input_never_raises():
    """Garbage anywhere becomes an 'Error: ...' rejection."""
    print("Testing malformed input...", end=" ")
    node = _committee().node(NODE_ID)

    # Decrypts fine but is not a share bundle
    envelope = encrypt({"hello": "world"}, node.public_key, OWNER.private_key)
    transition, _ = _scenario(500, 100, 600, 5, 6)
    result = _validate(transition, envelope)
    assert not result.valid
    assert result.reason.startswith("Error: ")

    # Ledger dict missing required fields
    _, envelope = _scenario(500, 100, 600, 5, 6)
    result = _validate({"user_address": "alice"}, envelope)
    assert not result.valid
    assert result.reason.startswith("Error: ")
    print("PASS")


def test_transition_dict_accepted():
    """The ledger's dict form validates the same as the decoded transition."""
    print("Testing ledger dict input...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6)
    as_dict = transition.to_dict()
    assert StateTransition.from_dict(as_dict) == transition
    result = _validate(as_dict, envelope)
    assert result.valid, result.reason
    print("PASS")


def test_share_arithmetic_helpers():
    """Test the arithmetic check and the initialization predicate."""
    print("Testing arithmetic helpers...", end=" ")
    ok = ShareBundle(500, 600, 100, 5, 6)
    init = ShareBundle(0, 1000, 1000, 0, 0)
    assert not is_initialization(ok)
    assert is_initialization(init)
    check_share_arithmetic(ok)
    check_share_arithmetic(init)

    # Negative amount shares (withdrawals) wrap in the field
    check_share_arithmetic(ShareBundle(500, 400, to_field(-100), 5, 6))
    try:
        check_share_arithmetic(ShareBundle(500, 650, 100, 5, 6))
        raise AssertionError("should have raised InvariantError")
    except InvariantError as exc:
        assert str(exc) == "Balance equation failed on share"
    print("PASS")


def test_transfer_validation():
    """Sender debit and recipient credit checked together."""
    print("Testing transfer validation...", end=" ")
    sender = ShareBundle(1000, 900, to_field(-100), 5, 6)
    recipient = ShareBundle(200, 300, 100, 2, 3)
    result = validate_transfer(sender, recipient)
    assert result.valid
    assert result.reason == "Transfer valid on shares"
    assert result.partial_signature is None

    bad_recipient = ShareBundle(200, 350, 100, 2, 3)
    result = validate_transfer(sender, bad_recipient)
    assert not result.valid
    assert result.reason == "Transfer validation failed on shares"

    stale_nonce = ShareBundle(1000, 900, to_field(-100), 5, 5)
    assert not validate_transfer(stale_nonce, recipient).valid

    result = validate_transfer({"old_balance_share": "1"}, recipient)
    assert result.reason.startswith("Error: ")
    print("PASS")


def test_encrypted_transfer():
    """Both envelopes decrypted by the node, then checked."""
    print("Testing encrypted transfer...", end=" ")
    node = _committee().node(2)
    bob = KeyPair.generate()
    sender_env = encrypt(ShareBundle(1000, 900, to_field(-100), 5, 6).to_dict(), node.public_key, OWNER.private_key)
    recipient_env = encrypt(ShareBundle(0, 100, 100, 0, 0).to_dict(), node.public_key, bob.private_key)

    result = validate_encrypted_transfer(node, sender_env, recipient_env, OWNER.public_key, bob.public_key)
    assert result.valid, result.reason

    result = validate_encrypted_transfer(node, sender_env, recipient_env, OWNER.public_key, OWNER.public_key)
    assert result.reason == "Error: Decryption failed"
    print("PASS")


def test_share_lookup_helpers():
    """Test envelope lookup and committee coverage."""
    print("Testing share lookup...", end=" ")
    transition, envelope = _scenario(500, 100, 600, 5, 6)
    assert extract_node_shares(transition, 1) == envelope
    assert extract_node_shares(transition, 2) is None
    assert verify_all_shares_present(transition, [1])
    assert not verify_all_shares_present(transition, [1, 2, 3])
    print("PASS")


def main():
    print("=" * 50)
    print("  Validator Tests")
    print("=" * 50)
    print()

    tests = [
        test_acceptance_scenario,
        test_balance_violation,
        test_nonce_violation,
        test_initialization_skips_nonce_check,
        test_decryption_failure,
        test_missing_vss_material,
        test_vss_mismatch,
        test_over_degree_sharing_rejected,
        test_malformed_input_never_raises,
        test_transition_dict_accepted,
        test_share_arithmetic_helpers,
        test_transfer_validation,
        test_encrypted_transfer,
        test_share_lookup_helpers,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print()
    print(f"Results: {passed} passed, {failed} failed")
    return failed == 0


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
