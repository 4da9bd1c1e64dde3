"""
Committee — node identities and the public directory

A node is an immutable value: its id, the committee threshold, its
encryption key pair and its share of the committee signing key. Validation
functions take a node by reference and keep no state of their own.

In production the key registry hands these out. ``Committee.generate``
stands in for that registry in local setups and tests.
"""

from dataclasses import dataclass, field

from quorum.channel import KeyPair
from quorum.config import CommitteeConfig
from quorum.exceptions import UsageError
from quorum.shamir import RandomSource
from quorum.tss import CommitteePublicKeys, SigningKeyShare, keygen_ceremony


@dataclass(frozen=True)
class NodeIdentity:
    """Static identity of one validating node."""
    node_id: int
    threshold: int
    encryption_keys: KeyPair = field(repr=False)
    signing_key: SigningKeyShare = field(repr=False)

    @property
    def public_key(self) -> bytes:
        return self.encryption_keys.public_key


@dataclass(frozen=True)
class Committee:
    """The n validating nodes and their t-of-n signing keys."""
    nodes: tuple[NodeIdentity, ...]
    public_keys: CommitteePublicKeys

    @property
    def size(self) -> int:
        return len(self.nodes)

    @property
    def threshold(self) -> int:
        return self.public_keys.threshold

    def node(self, node_id: int) -> NodeIdentity:
        for candidate in self.nodes:
            if candidate.node_id == node_id:
                return candidate
        raise UsageError(f"Unknown node {node_id}")

    def encryption_keys(self) -> dict[int, bytes]:
        """node id -> encryption public key, as the owner sees the registry."""
        return {node.node_id: node.public_key for node in self.nodes}

    @classmethod
    def generate(cls, size: int, threshold: int, rng: RandomSource | None = None) -> "Committee":
        """Create a committee with fresh keys for nodes 1..size."""
        signing_keys, public_keys = keygen_ceremony(size, threshold, rng)
        nodes = tuple(
            NodeIdentity(
                node_id=key.node_id,
                threshold=public_keys.threshold,
                encryption_keys=KeyPair.generate(),
                signing_key=key,
            )
            for key in signing_keys
        )
        return cls(nodes=nodes, public_keys=public_keys)

    @classmethod
    def from_config(cls, config: CommitteeConfig, rng: RandomSource | None = None) -> "Committee":
        return cls.generate(config.size, config.threshold, rng)
