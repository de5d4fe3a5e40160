"""
Tests for the u64 ring helpers: floor square root and inverse mod 2^64.
"""

import math
import random

import pytest

from cme_errors import NotInvertible, RingRangeError
from cme_ring import MASK, MOD, isqrt_u64, modinv_odd, require_u64, u64


class TestU64:

    def test_wraps(self):
        assert u64(MOD) == 0
        assert u64(-1) == MASK
        assert u64(MASK * MASK) == 1

    def test_require_u64_bounds(self):
        assert require_u64(0) == 0
        assert require_u64(MASK) == MASK
        for bad in (-1, MOD):
            with pytest.raises(RingRangeError):
                require_u64(bad)

    def test_require_u64_rejects_non_int(self):
        with pytest.raises(RingRangeError):
            require_u64(1.0)
        with pytest.raises(RingRangeError):
            require_u64(True)


class TestIsqrt:

    EDGES = [
        0, 1, 2, 3, 4, 15, 16, 17,
        (1 << 32) - 1, 1 << 32,
        (1 << 52) + 1, (1 << 53) - 1, (1 << 53) + 1,
        ((1 << 32) - 1) ** 2 - 1, ((1 << 32) - 1) ** 2, ((1 << 32) - 1) ** 2 + 1,
        MASK - 1, MASK,
        0x476F6F6420646179,
    ]

    @pytest.mark.parametrize("x", EDGES)
    def test_edges_match_exact_isqrt(self, x):
        assert isqrt_u64(x) == math.isqrt(x)

    def test_top_of_domain(self):
        assert isqrt_u64(MASK) == (1 << 32) - 1

    def test_floor_property_random(self):
        rng = random.Random(1234)
        for _ in range(2000):
            x = rng.getrandbits(64)
            r = isqrt_u64(x)
            assert r * r <= x < (r + 1) * (r + 1)

    def test_near_perfect_squares(self):
        rng = random.Random(99)
        for _ in range(500):
            k = rng.randrange(1 << 31, 1 << 32)
            for x in (k * k - 1, k * k, k * k + 1):
                assert isqrt_u64(x) == math.isqrt(x)

    def test_out_of_range(self):
        with pytest.raises(RingRangeError):
            isqrt_u64(-1)
        with pytest.raises(ValueError):
            isqrt_u64(MOD)


class TestModInverse:

    def test_small(self):
        assert modinv_odd(1) == 1
        assert modinv_odd(MASK) == MASK  # -1 is its own inverse
        assert u64(3 * modinv_odd(3)) == 1

    def test_random_odd(self):
        rng = random.Random(7)
        for _ in range(1000):
            a = rng.getrandbits(64) | 1
            inv = modinv_odd(a)
            assert u64(a * inv) == 1
            assert inv == pow(a, -1, MOD)

    def test_layer_multipliers(self):
        for a in (0xD6E8FEB86659FD93, 0x9E3779B97F4A7C15, 0xBF58476D1CE4E5B9):
            assert u64(a * modinv_odd(a)) == 1

    @pytest.mark.parametrize("a", [0, 2, 1 << 63, 0x9E3779B97F4A7C14])
    def test_even_not_invertible(self, a):
        with pytest.raises(NotInvertible):
            modinv_odd(a)

    def test_not_invertible_is_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            modinv_odd(4)
