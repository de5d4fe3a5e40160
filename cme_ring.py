from __future__ import annotations

import math

from cme_errors import NotInvertible, RingRangeError

MASK = (1 << 64) - 1
MOD  = 1 << 64

# Newton steps: 1 -> 2 -> 4 -> 8 -> 16 -> 32 -> 64 correct bits
NEWTON_ROUNDS = 6


def u64(x: int) -> int:
    return x & MASK


def require_u64(x: int, name: str = "value") -> int:
    if not isinstance(x, int) or isinstance(x, bool):
        raise RingRangeError(f"{name} must be an int, got {type(x).__name__}")
    if not 0 <= x <= MASK:
        raise RingRangeError(f"{name} out of u64 range: {x}")
    return x


def isqrt_u64(x: int) -> int:
    """
    Floor square root of a u64.
    The float guess can be off by one near 2^64 (53-bit mantissa),
    so it is always corrected in both directions.
    """
    require_u64(x, "x")
    r = int(math.sqrt(x))
    while (r + 1) * (r + 1) <= x:
        r += 1
    while r * r > x:
        r -= 1
    return r


def modinv_odd(a: int) -> int:
    """Inverse of an odd a mod 2^64 by 2-adic Newton iteration."""
    require_u64(a, "a")
    if a & 1 == 0:
        raise NotInvertible(f"0x{a:016X} is even, not invertible mod 2^64")
    inv = a  # every odd number is its own inverse mod 2
    for _ in range(NEWTON_ROUNDS):
        inv = u64(inv * u64(2 - u64(a * inv)))
    return inv
