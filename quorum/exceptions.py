"""
Error taxonomy for the protocol core.

Everything raised while validating a single transition is caught at the
validator boundary and turned into a rejection reason. Outside that boundary
(share splitting, proof generation, aggregation) these propagate to the caller.
"""


class QuorumError(Exception):
    """Base exception for all protocol failures."""


class TransportError(QuorumError):
    """Raised when an envelope cannot be decrypted or authenticated."""


class ProtocolError(QuorumError, ValueError):
    """Raised for missing or malformed VSS material and wire data."""


class InvariantError(QuorumError):
    """Raised when a balance or nonce equation does not hold on a share."""


class UsageError(QuorumError, ValueError):
    """Raised when a caller misuses an API (empty aggregation, t > n, ...)."""


__all__ = [
    "QuorumError",
    "TransportError",
    "ProtocolError",
    "InvariantError",
    "UsageError",
]
