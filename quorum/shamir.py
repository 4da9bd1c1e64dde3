"""
Share Splitting
Split a secret integer into N shares, additively or with Shamir's scheme.

Balances, nonces and transfer amounts are signed integers. They are mapped
into a 256-bit prime field before splitting, and every share, polynomial
coefficient and sum lives in that field. Working modulo a prime is what makes
a share (or any t-1 of them) carry no information about the secret, and what
makes Lagrange interpolation recover it exactly.

Randomness is always drawn from an explicit provider with a ``randrange``
method. ``secrets.SystemRandom()`` is the default; tests pass a seeded
``random.Random`` to get reproducible shares.
"""

import secrets
from typing import Protocol, Sequence

from quorum.exceptions import UsageError

# 256-bit prime field (secp256k1 group order).
# Signed values must fit in (-PRIME/2, PRIME/2].
PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

FIELD_BYTES = 32


class RandomSource(Protocol):
    """Anything that can draw a uniform integer in ``[0, n)``."""

    def randrange(self, n: int) -> int: ...


_system_random = secrets.SystemRandom()


def get_random_source(rng: RandomSource | None) -> RandomSource:
    return rng if rng is not None else _system_random


def to_field(value: int) -> int:
    """Map a signed integer to its field representative in [0, PRIME)."""
    return value % PRIME


def to_signed(element: int) -> int:
    """Map a field element back to the signed integer it represents."""
    element %= PRIME
    if element > PRIME // 2:
        return element - PRIME
    return element


def random_element(rng: RandomSource | None = None) -> int:
    """Draw a uniform field element."""
    return get_random_source(rng).randrange(PRIME)


def _mod_inverse(a: int, p: int) -> int:
    """Modular multiplicative inverse using Fermat's little theorem."""
    return pow(a, p - 2, p)


# --- Polynomials -------------------------------------------------------------

def evaluate_polynomial(coefficients: Sequence[int], x: int, prime: int = PRIME) -> int:
    """Evaluate a polynomial (constant term first) at x with Horner's method."""
    result = 0
    for coeff in reversed(coefficients):
        result = (result * x + coeff) % prime
    return result


def random_polynomial(constant: int, degree: int, rng: RandomSource | None = None) -> list[int]:
    """
    Build f(x) = constant + a1*x + ... + a_degree*x^degree with random a_i.

    Args:
        constant: The value f(0). Signed values are mapped into the field.
        degree: Polynomial degree (threshold - 1).
        rng: Randomness provider.

    Returns:
        Coefficient list of length degree + 1.
    """
    if degree < 0:
        raise UsageError("Polynomial degree cannot be negative")
    coefficients = [to_field(constant)]
    for _ in range(degree):
        coefficients.append(random_element(rng))
    return coefficients


def add_polynomials(a: Sequence[int], b: Sequence[int]) -> list[int]:
    """Coefficientwise sum of two polynomials."""
    size = max(len(a), len(b))
    return [
        ((a[i] if i < len(a) else 0) + (b[i] if i < len(b) else 0)) % PRIME
        for i in range(size)
    ]


def scale_polynomial(coefficients: Sequence[int], factor: int) -> list[int]:
    """Multiply every coefficient by a scalar."""
    return [(c * factor) % PRIME for c in coefficients]


# --- Additive sharing --------------------------------------------------------

def create_additive_shares(secret: int, n: int, rng: RandomSource | None = None) -> list[int]:
    """
    Split a secret into n additive shares.

    The first n-1 shares are uniform field elements; the last one is chosen
    so that all n sum to the secret.

    Raises:
        UsageError: If n < 1.
    """
    if n < 1:
        raise UsageError("Need at least 1 share")

    shares = [random_element(rng) for _ in range(n - 1)]
    last = (to_field(secret) - sum(shares)) % PRIME
    shares.append(last)
    return shares


def reconstruct_additive(shares: Sequence[int]) -> int:
    """Recover an additively shared secret (sum of all shares)."""
    return to_signed(sum(shares) % PRIME)


# --- Shamir sharing ----------------------------------------------------------

def create_shamir_shares(
    secret: int,
    n: int,
    t: int,
    rng: RandomSource | None = None,
) -> tuple[list[int], list[int]]:
    """
    Split a secret into n Shamir shares, any t of which recover it.

    Args:
        secret: The signed integer to share.
        n: Total number of shares.
        t: Threshold (polynomial degree is t - 1).
        rng: Randomness provider.

    Returns:
        (shares, polynomial). shares[i - 1] is P(i) for i = 1..n. The
        polynomial is returned for provers that need it (VSS); it must not
        leave the dealer.

    Raises:
        UsageError: If t < 1 or t > n.
    """
    if t < 1:
        raise UsageError("Threshold must be at least 1")
    if t > n:
        raise UsageError("Threshold cannot exceed number of shares")

    polynomial = random_polynomial(secret, t - 1, rng)
    shares = [evaluate_polynomial(polynomial, x) for x in range(1, n + 1)]
    return shares, polynomial


def lagrange_at_zero(indices: Sequence[int], prime: int = PRIME) -> list[int]:
    """Lagrange basis coefficients at x=0 for the given evaluation points."""
    if len(set(indices)) != len(indices):
        raise UsageError("Evaluation points must be distinct")

    coefficients = []
    for i, xi in enumerate(indices):
        numerator = 1
        denominator = 1
        for j, xj in enumerate(indices):
            if i == j:
                continue
            numerator = (numerator * (-xj)) % prime
            denominator = (denominator * (xi - xj)) % prime
        coefficients.append((numerator * _mod_inverse(denominator, prime)) % prime)
    return coefficients


def reconstruct_shamir(points: Sequence[tuple[int, int]]) -> int:
    """
    Reconstruct a secret from (x, P(x)) points using Lagrange interpolation.

    Any t points of a degree t-1 sharing recover the secret. Fewer points
    interpolate a different polynomial and give an unrelated value.

    Raises:
        UsageError: If no points are given or x coordinates repeat.
    """
    if not points:
        raise UsageError("Need at least 1 share")

    indices = [x for x, _ in points]
    basis = lagrange_at_zero(indices)

    secret = 0
    for (_, y), coeff in zip(points, basis):
        secret = (secret + y * coeff) % PRIME
    return to_signed(secret)
