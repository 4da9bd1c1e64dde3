"""
Signature Aggregator — collecting a quorum of partial signatures

The ledger (or whoever orchestrates a round) feeds validation results in
as nodes report. Each partial signature is checked against its node's
public key share before it counts; a node can contribute once. When
``threshold`` partials are in, they fold into one aggregate signature that
verifies against the committee's group public key.

Protocol:
  1. The transition is published; every node validates independently
  2. Valid results carry a partial signature over the transition message
  3. The collector keeps the first good partial per node
  4. At threshold, the partials are combined by Lagrange interpolation
  5. The aggregate + transition go back to the ledger for finalization
"""

import structlog

from quorum.exceptions import UsageError
from quorum.models import StateTransition, ValidationResult
from quorum.tss import (
    AggregateSignature,
    CommitteePublicKeys,
    PartialSignature,
    aggregate,
    verify,
    verify_partial,
)

logger = structlog.get_logger(__name__)


class SignatureAggregator:
    """
    Collects partial signatures for one transition until a quorum is reached.

    Args:
        transition: The transition being signed.
        public_keys: The committee's public verification material.
    """

    def __init__(self, transition: StateTransition, public_keys: CommitteePublicKeys):
        self.message = transition.signing_message()
        self.public_keys = public_keys
        self._partials: dict[int, PartialSignature] = {}
        self._rejected: dict[int, str] = {}

    @property
    def threshold(self) -> int:
        return self.public_keys.threshold

    @property
    def collected(self) -> int:
        return len(self._partials)

    @property
    def quorum_reached(self) -> bool:
        return self.collected >= self.threshold

    def add_partial(self, partial: PartialSignature) -> bool:
        """
        Count a partial signature if it is new and verifies.

        Returns:
            True if the partial was accepted.
        """
        if partial.node_id in self._partials:
            logger.info("partial_duplicate", node_id=partial.node_id)
            return False

        if not verify_partial(partial, self.message, self.public_keys):
            logger.warning("partial_invalid", node_id=partial.node_id)
            self._rejected[partial.node_id] = "invalid partial signature"
            return False

        self._partials[partial.node_id] = partial
        self._rejected.pop(partial.node_id, None)
        logger.debug("partial_accepted", node_id=partial.node_id, collected=self.collected)
        return True

    def add_result(self, node_id: int, result: ValidationResult) -> bool:
        """Record one node's validation result."""
        if not result.valid or result.partial_signature is None:
            self._rejected[node_id] = result.reason
            return False
        if result.partial_signature.node_id != node_id:
            self._rejected[node_id] = "partial signature from a different node"
            return False
        return self.add_partial(result.partial_signature)

    def finalize(self) -> AggregateSignature:
        """
        Combine exactly ``threshold`` collected partials.

        Raises:
            UsageError: If the quorum has not been reached.
        """
        if not self.quorum_reached:
            raise UsageError(
                f"Could not reach threshold: got {self.collected} "
                f"of {self.threshold} required signatures"
            )

        selected = [self._partials[node_id] for node_id in sorted(self._partials)][: self.threshold]
        signature = aggregate(selected)
        logger.info("quorum_signed", signers=list(signature.signers))
        return signature

    def verify(self, signature: AggregateSignature) -> bool:
        return verify(signature, self.message, self.public_keys)

    def get_status(self) -> dict:
        """Summary of the round so far."""
        return {
            "threshold": self.threshold,
            "collected": self.collected,
            "quorum_reached": self.quorum_reached,
            "signers": sorted(self._partials),
            "rejected": dict(self._rejected),
        }
