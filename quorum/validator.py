"""
Validator — per-node validation of a proposed state transition

Each node runs this on its own, on its own share, with no coordination:

  RECEIVED → DECRYPTED → VSS_VERIFIED → ARITHMETIC_VERIFIED → SIGNED
  (any state) → REJECTED(reason)

Checks are done on share values only. The node never sees, and never
reconstructs, the balance. Because Shamir sharing is linear, the equations
old_balance + amount == new_balance and new_nonce == old_nonce + 1 hold on
every share exactly when they hold on the secrets.

Balance non-negativity is NOT checked. It cannot be decided on a single
share, and reconstructing the balance to check it would defeat the scheme.

Nothing raises past ``validate_transition``: every failure comes back as a
rejection with a reason string, so one malformed transition cannot take a
node down.
"""

from typing import Iterable

import structlog

from quorum import channel
from quorum.committee import NodeIdentity
from quorum.exceptions import InvariantError, TransportError
from quorum.hashing import hash_shares
from quorum.models import ShareBundle, StateTransition, ValidationResult, ValidationState
from quorum.shamir import PRIME
from quorum.tss import sign_partial
from quorum.vss import verify_transition_vss

logger = structlog.get_logger(__name__)

REASON_ACCEPTED = "All checks passed"
REASON_BALANCE = "Balance equation failed on share"
REASON_NONCE = "Nonce not incremented correctly on share"
REASON_TRANSFER_OK = "Transfer valid on shares"
REASON_TRANSFER_FAILED = "Transfer validation failed on shares"


def is_initialization(bundle: ShareBundle) -> bool:
    """First deposit: old balance, old nonce and new nonce shares are all zero."""
    return (
        bundle.old_balance_share == 0
        and bundle.old_nonce_share == 0
        and bundle.new_nonce_share == 0
    )


def check_share_arithmetic(bundle: ShareBundle) -> None:
    """
    Check the balance and nonce equations on one bundle.

    Raises:
        InvariantError: With the fixed rejection reason as its message.
    """
    if (bundle.old_balance_share + bundle.amount_share) % PRIME != bundle.new_balance_share % PRIME:
        raise InvariantError(REASON_BALANCE)

    if is_initialization(bundle):
        return

    if (bundle.old_nonce_share + 1) % PRIME != bundle.new_nonce_share % PRIME:
        raise InvariantError(REASON_NONCE)


def _reject(log, state: ValidationState, reason: str) -> ValidationResult:
    log.info("transition_rejected", at_state=state.value, reason=reason)
    return ValidationResult(valid=False, reason=reason, state=ValidationState.REJECTED)


def validate_transition(
    node: NodeIdentity,
    transition: StateTransition | dict,
    encrypted_shares: str,
    sender_public_key: bytes,
) -> ValidationResult:
    """
    Validate a transition on this node's share and sign it if it holds.

    Args:
        node: This node's identity.
        transition: The transition (decoded, or as the ledger's dict).
        encrypted_shares: This node's envelope from the transition.
        sender_public_key: The owner's claimed encryption public key.

    Returns:
        ValidationResult. ``partial_signature`` is set only when valid.
    """
    log = logger.bind(node_id=node.node_id)
    state = ValidationState.RECEIVED

    try:
        try:
            payload = channel.decrypt(
                encrypted_shares, sender_public_key, node.encryption_keys.private_key
            )
        except TransportError as exc:
            return _reject(log, state, f"Error: {exc}")

        bundle = ShareBundle.from_dict(payload)
        if not isinstance(transition, StateTransition):
            transition = StateTransition.from_dict(transition)
        state = ValidationState.DECRYPTED
        log.debug("bundle_decrypted")

        ok, reason = verify_transition_vss(node.node_id, bundle, transition, node.threshold)
        if not ok:
            return _reject(log, state, reason)
        state = ValidationState.VSS_VERIFIED
        log.debug("vss_verified")

        try:
            check_share_arithmetic(bundle)
        except InvariantError as exc:
            return _reject(log, state, str(exc))
        state = ValidationState.ARITHMETIC_VERIFIED

        # Cross-check material for the ledger; does not gate acceptance
        old_commitment = hash_shares(bundle.old_balance_share, bundle.old_nonce_share)
        new_commitment = hash_shares(bundle.new_balance_share, bundle.new_nonce_share)
        log.debug(
            "share_commitments",
            old_hash=old_commitment.hex()[:16],
            new_hash=new_commitment.hex()[:16],
        )

        partial = sign_partial(node.signing_key, transition.signing_message())
        state = ValidationState.SIGNED
        log.info("transition_accepted")
        return ValidationResult(
            valid=True,
            reason=REASON_ACCEPTED,
            partial_signature=partial,
            state=state,
            old_commitment=old_commitment.hex(),
            new_commitment=new_commitment.hex(),
        )
    except Exception as exc:
        log.warning("validation_error", at_state=state.value, error=str(exc))
        return ValidationResult(
            valid=False,
            reason=f"Error: {exc}",
            state=ValidationState.REJECTED,
        )


def validate_transfer(
    sender_bundle: ShareBundle | dict,
    recipient_bundle: ShareBundle | dict,
) -> ValidationResult:
    """
    Check both halves of an atomic two-party transfer on this node's shares.

    The sender's amount share is negative (a debit), the recipient's positive.
    Same balance and nonce rules as a single transition; no VSS check and no
    signature.
    """
    try:
        if not isinstance(sender_bundle, ShareBundle):
            sender_bundle = ShareBundle.from_dict(sender_bundle)
        if not isinstance(recipient_bundle, ShareBundle):
            recipient_bundle = ShareBundle.from_dict(recipient_bundle)

        check_share_arithmetic(sender_bundle)
        check_share_arithmetic(recipient_bundle)
    except InvariantError as exc:
        logger.info("transfer_rejected", reason=str(exc))
        return ValidationResult(valid=False, reason=REASON_TRANSFER_FAILED)
    except Exception as exc:
        logger.warning("transfer_error", error=str(exc))
        return ValidationResult(valid=False, reason=f"Error: {exc}")

    return ValidationResult(
        valid=True,
        reason=REASON_TRANSFER_OK,
        state=ValidationState.ARITHMETIC_VERIFIED,
    )


def validate_encrypted_transfer(
    node: NodeIdentity,
    sender_shares: str,
    recipient_shares: str,
    sender_public_key: bytes,
    recipient_public_key: bytes,
) -> ValidationResult:
    """Decrypt both transfer envelopes addressed to this node, then validate."""
    try:
        sender_bundle = channel.decrypt(
            sender_shares, sender_public_key, node.encryption_keys.private_key
        )
        recipient_bundle = channel.decrypt(
            recipient_shares, recipient_public_key, node.encryption_keys.private_key
        )
    except TransportError as exc:
        logger.info("transfer_rejected", node_id=node.node_id, reason=str(exc))
        return ValidationResult(valid=False, reason=f"Error: {exc}")

    return validate_transfer(sender_bundle, recipient_bundle)


def extract_node_shares(transition: StateTransition, node_id: int) -> str | None:
    """The envelope addressed to a node, or None if there is none."""
    for entry in transition.encrypted_shares:
        if entry.node_id == node_id:
            return entry.encrypted_data
    return None


def verify_all_shares_present(transition: StateTransition, node_ids: Iterable[int]) -> bool:
    """True if every committee node has an envelope in the transition."""
    provided = {entry.node_id for entry in transition.encrypted_shares}
    return all(node_id in provided for node_id in node_ids)
