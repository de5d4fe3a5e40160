from __future__ import annotations

from typing import Iterable, NamedTuple, Sequence

from cme_errors import InvalidLayer
from cme_ring import MASK, modinv_odd, require_u64, u64


class Layer(NamedTuple):
    a: int  # multiplier, must be odd
    b: int  # offset


Layers = Sequence[Layer]


def validate_layers(layers: Iterable[tuple[int, int]]) -> list[Layer]:
    """
    Check a whole chain before any arithmetic runs.
    Returns the chain as a list of Layer.
    """
    out: list[Layer] = []
    for i, item in enumerate(layers):
        try:
            a, b = item
        except (TypeError, ValueError):
            raise InvalidLayer(f"layer {i} is not an (a, b) pair: {item!r}", i) from None
        for name, v in (("a", a), ("b", b)):
            if not isinstance(v, int) or isinstance(v, bool) or not 0 <= v <= MASK:
                raise InvalidLayer(f"layer {i}: {name} out of u64 range: {v!r}", i)
        if a & 1 == 0:
            raise InvalidLayer(f"layer {i}: multiplier 0x{a:016X} must be odd", i)
        out.append(Layer(a, b))
    return out


def forward_layers(x: int, layers: Layers) -> int:
    chain = validate_layers(layers)
    v = require_u64(x, "x")
    for a, b in chain:
        v = u64(a * v + b)
    return v


def inverse_layers(x: int, layers: Layers) -> int:
    chain = validate_layers(layers)
    v = require_u64(x, "x")
    for a, b in reversed(chain):
        ainv = modinv_odd(a)
        v = u64(ainv * u64(v - b))  # v = a^-1 (v - b)
    return v


# ---------------------------
# Config text: "a:b,a:b,..."
# ---------------------------

def _parse_int(s: str) -> int:
    s = s.strip().replace("_", "")
    if s.lower().startswith("0x"):
        return int(s, 16)
    return int(s, 10)


def parse_layers(text: str) -> list[Layer]:
    pairs = []
    for i, part in enumerate(p for p in text.split(",") if p.strip()):
        if part.count(":") != 1:
            raise InvalidLayer(f"layer {i}: expected 'a:b', got {part.strip()!r}", i)
        sa, sb = part.split(":")
        try:
            pairs.append((_parse_int(sa), _parse_int(sb)))
        except ValueError:
            raise InvalidLayer(f"layer {i}: not a number in {part.strip()!r}", i) from None
    if not pairs:
        raise InvalidLayer("empty layer chain")
    return validate_layers(pairs)


def format_layers(layers: Layers) -> str:
    return ",".join(f"0x{a:016X}:0x{b:016X}" for a, b in validate_layers(layers))
