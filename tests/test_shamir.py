"""
Tests for additive and Shamir share splitting over the prime field.
"""

import itertools
import random
import sys
from pathlib import Path

from hypothesis import given, settings, strategies as st

sys.path.insert(0, str(Path(__file__).parent.parent))

from quorum.exceptions import UsageError
from quorum.shamir import (
    PRIME,
    add_polynomials,
    create_additive_shares,
    create_shamir_shares,
    evaluate_polynomial,
    reconstruct_additive,
    reconstruct_shamir,
    to_field,
    to_signed,
)

SIGNED_RANGE = st.integers(min_value=-(2 ** 200), max_value=2 ** 200)


def test_additive_round_trip():
    """Test additive split and reconstruct."""
    print("Testing additive split/reconstruct...", end=" ")
    for secret in [0, 1, 1000, -250, 10 ** 30]:
        shares = create_additive_shares(secret, 5)
        assert len(shares) == 5
        assert reconstruct_additive(shares) == secret
    print("PASS")


@settings(max_examples=50, deadline=None)
@given(SIGNED_RANGE, st.integers(min_value=2, max_value=12))
def test_additive_round_trip_property(secret, n):
    assert reconstruct_additive(create_additive_shares(secret, n)) == secret


def test_additive_missing_share_is_wrong():
    """Test that n-1 additive shares do not give the secret."""
    print("Testing additive shares need all n...", end=" ")
    shares = create_additive_shares(1000, 4, rng=random.Random(3))
    assert reconstruct_additive(shares[:3]) != 1000
    print("PASS")


def test_shamir_any_k_shares():
    """Test that ANY t of n Shamir shares reconstruct."""
    print("Testing any t shares reconstruct...", end=" ")
    secret = 123456789
    shares, _ = create_shamir_shares(secret, n=7, t=4)
    points = list(zip(range(1, 8), shares))

    combinations_tested = 0
    for combo in itertools.combinations(points, 4):
        assert reconstruct_shamir(list(combo)) == secret, f"Failed with {[x for x, _ in combo]}"
        combinations_tested += 1

    # 7 choose 4 = 35 combinations
    assert combinations_tested == 35
    print(f"PASS ({combinations_tested} combinations)")


@settings(max_examples=30, deadline=None)
@given(SIGNED_RANGE, st.integers(min_value=1, max_value=6), st.integers(min_value=0, max_value=4), st.randoms())
def test_shamir_reconstruct_property(secret, t, extra, rnd):
    n = t + extra
    shares, _ = create_shamir_shares(secret, n, t)
    points = rnd.sample(list(zip(range(1, n + 1), shares)), t)
    assert reconstruct_shamir(points) == secret


def test_insufficient_shares_wrong_secret():
    """Test that t-1 shares interpolate to something else."""
    print("Testing insufficient shares...", end=" ")
    secret = 42
    shares, _ = create_shamir_shares(secret, n=5, t=3, rng=random.Random(11))
    points = list(zip(range(1, 6), shares))
    for combo in itertools.combinations(points, 2):
        assert reconstruct_shamir(list(combo)) != secret
    print("PASS")


def test_threshold_above_n_rejected():
    """Test that t > n is a usage error."""
    print("Testing t > n rejected...", end=" ")
    try:
        create_shamir_shares(10, n=3, t=4)
        raise AssertionError("should have raised UsageError")
    except UsageError:
        pass
    print("PASS")


def test_seeded_rng_is_deterministic():
    """Test that an explicit seeded provider reproduces the same shares."""
    print("Testing seeded randomness...", end=" ")
    a, poly_a = create_shamir_shares(77, n=4, t=3, rng=random.Random(2024))
    b, poly_b = create_shamir_shares(77, n=4, t=3, rng=random.Random(2024))
    assert a == b
    assert poly_a == poly_b
    assert create_additive_shares(5, 3, rng=random.Random(1)) == create_additive_shares(
        5, 3, rng=random.Random(1)
    )
    print("PASS")


def test_polynomial_helpers():
    """Test Horner evaluation and coefficientwise addition."""
    print("Testing polynomial helpers...", end=" ")
    # 3 + 2x + x^2 at x = 4 -> 27
    assert evaluate_polynomial([3, 2, 1], 4) == 27
    assert add_polynomials([1, 2], [3, 4, 5]) == [4, 6, 5]
    assert evaluate_polynomial([PRIME - 1, 1], 1) == 0
    print("PASS")


def test_signed_field_mapping():
    """Test signed <-> field element mapping."""
    print("Testing signed mapping...", end=" ")
    assert to_field(-1) == PRIME - 1
    assert to_signed(PRIME - 1) == -1
    assert to_signed(to_field(-500)) == -500
    assert to_signed(500) == 500
    print("PASS")


def test_shares_are_linear():
    """Test that summing two sharings share-wise shares the sum."""
    print("Testing share linearity...", end=" ")
    a, _ = create_shamir_shares(500, n=3, t=2)
    b, _ = create_shamir_shares(-100, n=3, t=2)
    summed = [(x + y) % PRIME for x, y in zip(a, b)]
    assert reconstruct_shamir([(1, summed[0]), (3, summed[2])]) == 400
    print("PASS")


def main():
    print("=" * 50)
    print("  Share Splitting Tests")
    print("=" * 50)
    print()

    tests = [
        test_additive_round_trip,
        test_additive_missing_share_is_wrong,
        test_shamir_any_k_shares,
        test_insufficient_shares_wrong_secret,
        test_threshold_above_n_rejected,
        test_seeded_rng_is_deterministic,
        test_polynomial_helpers,
        test_signed_field_mapping,
        test_shares_are_linear,
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
