#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
from typing import NamedTuple, Optional

from cme_bytes import pack8, unpack8
from cme_codec import decode_text, encode_text
from cme_errors import CMEError, ReconstructionMismatch
from cme_geometry import decompose, reconstruct
from cme_layers import Layer, Layers, forward_layers, inverse_layers, parse_layers, validate_layers

DEFAULT_TEXT = "Good day"  # 8 bytes

# Example layers (pre-shared). Override with CME_LAYERS="a:b,a:b,..."
DEFAULT_LAYERS: tuple[Layer, ...] = (
    Layer(0xD6E8FEB86659FD93, 0xA5A5A5A5A5A5A5A5),
    Layer(0x9E3779B97F4A7C15, 0x0123456789ABCDEF),
    Layer(0xBF58476D1CE4E5B9, 0xF0F0F0F0F0F0F0F0),
)


def log(tag: str, msg: str):
    print(f"[{tag}] {msg}", flush=True)


def configured_layers() -> list[Layer]:
    raw = os.environ.get("CME_LAYERS", "").strip()
    if raw:
        return parse_layers(raw)
    return list(DEFAULT_LAYERS)


class DemoResult(NamedTuple):
    text: str
    A: int
    r0: int
    rem: int
    rL: int
    remL: int
    r0_recv: int
    rem_recv: int
    A_recv: int
    text_recv: str


def run_demo(text: str = DEFAULT_TEXT, layers: Optional[Layers] = None,
             rem_layers: Optional[Layers] = None, verbose: bool = True) -> DemoResult:
    """
    Sender and receiver in one call:
    pack8 -> decompose -> forward (root, rem) -> inverse -> reconstruct -> unpack8.

    Raises ReconstructionMismatch if the receiver does not get the original back.
    """
    chain = validate_layers(DEFAULT_LAYERS if layers is None else layers)
    rem_chain = chain if rem_layers is None else validate_layers(rem_layers)
    say = log if verbose else (lambda tag, msg: None)

    A = pack8(text)
    say("DEMO", f"Original: {text}")
    say("DEMO", f"A hex = 0x{A:016X}")

    r0, rem = decompose(A)
    say("DEMO", f"r0 = {r0}")
    say("DEMO", f"rem = {rem}   (A = r0*r0 + rem)")

    # transport values (meaningless to observers)
    rL   = forward_layers(r0, chain)
    remL = forward_layers(rem, rem_chain)
    say("TX", f"rL   = 0x{rL:016X}")
    say("TX", f"remL = 0x{remL:016X}")

    r0_recv  = inverse_layers(rL, chain)
    rem_recv = inverse_layers(remL, rem_chain)
    A_recv   = reconstruct(r0_recv, rem_recv)
    text_recv = unpack8(A_recv)

    say("RX", f"Recovered r0 = {r0_recv}")
    say("RX", f"Recovered rem = {rem_recv}")
    say("RX", f"Recovered A hex = 0x{A_recv:016X}")
    say("RX", f"Recovered: {text_recv}")

    if A_recv != A:
        raise ReconstructionMismatch(f"A mismatch: sent 0x{A:016X}, got 0x{A_recv:016X}")
    if text_recv != text:
        raise ReconstructionMismatch(f"text mismatch: sent {text!r}, got {text_recv!r}")
    say("DEMO", "PASS")

    return DemoResult(text, A, r0, rem, rL, remL, r0_recv, rem_recv, A_recv, text_recv)


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="cme_demo",
        description="Geometric split + affine layers over Z/2^64Z, sent and recovered.",
    )
    ap.add_argument("--text", default=DEFAULT_TEXT, help="Exactly 8 UTF-8 bytes (default: %(default)r)")
    ap.add_argument("--layers", default=None, help="Chain 'a:b,a:b,...' (default: CME_LAYERS or built-in)")
    ap.add_argument("--rem-layers", default=None, help="Separate chain for the remainder")
    ap.add_argument("--quiet", action="store_true", help="Only report PASS/FAIL")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        layers = parse_layers(args.layers) if args.layers else configured_layers()
        rem_layers = parse_layers(args.rem_layers) if args.rem_layers else None
        run_demo(args.text, layers, rem_layers, verbose=not args.quiet)
    except CMEError as e:
        log("FAIL", f"{type(e).__name__}: {e}")
        return 1
    if args.quiet:
        log("DEMO", "PASS")
    return 0


# ============================================================
# Transport codec hooks (used by cme_server)
# ============================================================

def encode(s: str) -> str:
    """
    Outbound encoder: text -> G1 payload with the configured chain.
    """
    return encode_text(s, configured_layers())


def decode(s: str) -> str:
    """
    Inbound decoder. Mirrors encode(); non-G1 payloads pass through.
    """
    return decode_text(s, configured_layers())


if __name__ == "__main__":
    raise SystemExit(main())
