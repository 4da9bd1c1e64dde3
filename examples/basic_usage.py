"""
Quorum — Basic Usage Example

An owner withdraws 100 from a private balance of 1000. Each node of a
2-of-3 committee checks only its own encrypted share; two partial
signatures aggregate into one signature anyone can verify.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from quorum import Committee, KeyPair, SignatureAggregator, build_transition, validate_transition
from quorum.config import load_config
from quorum.logging import configure_logging
from quorum.validator import extract_node_shares


def main():
    config = load_config()
    configure_logging(config.logging.normalized_level())

    print("=" * 50)
    print("  Quorum — Threshold Validation of a Private Update")
    print("=" * 50)

    committee = Committee.from_config(config.committee)
    owner = KeyPair.generate()
    print(f"\n[1] Committee: {committee.threshold}-of-{committee.size}")

    # Nobody but the owner knows 1000, 5 or -100
    transition = build_transition(
        user_address="0xowner",
        owner_keys=owner,
        node_keys=committee.encryption_keys(),
        threshold=committee.threshold,
        old_balance=1000,
        old_nonce=5,
        amount=-100,
        old_state_root=bytes(32),
        new_state_root=bytes([0xAB]) * 32,
        state_pointer="QmExampleStatePointer",
    )
    print(f"[2] Transition built: {len(transition.encrypted_shares)} encrypted envelopes, "
          f"{len(transition.vss_commitments)} VSS commitments")

    aggregator = SignatureAggregator(transition, committee.public_keys)
    for node in committee.nodes:
        envelope = extract_node_shares(transition, node.node_id)
        result = validate_transition(node, transition, envelope, owner.public_key)
        print(f"    node {node.node_id}: {result.state.value} ({result.reason})")
        aggregator.add_result(node.node_id, result)

    signature = aggregator.finalize()
    print(f"\n[3] Aggregate signature from nodes {list(signature.signers)}")
    print(f"    Verifies against group key: {aggregator.verify(signature)}")

    print("\n" + "=" * 50)
    print("  No node ever saw the balance.")
    print("=" * 50)


if __name__ == "__main__":
    main()
