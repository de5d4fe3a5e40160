from __future__ import annotations

from typing import NamedTuple

from cme_ring import MASK, isqrt_u64, require_u64, u64


class Decomposition(NamedTuple):
    root: int
    rem: int


def decompose(A: int) -> Decomposition:
    # Geometry step: A = r0*r0 + rem, only reversible with the remainder
    r0 = isqrt_u64(A)
    rem = u64(A - u64(r0 * r0))
    return Decomposition(r0, rem)


def reconstruct(r0: int, rem: int) -> int:
    require_u64(r0, "r0")
    require_u64(rem, "rem")
    return u64(r0 * r0 + rem)


def is_decomposition(r0: int, rem: int) -> bool:
    """True when (r0, rem) is exactly what decompose() yields for some u64."""
    if not 0 <= r0 <= 0xFFFFFFFF or rem < 0:
        return False
    return rem <= 2 * r0 and r0 * r0 + rem <= MASK
