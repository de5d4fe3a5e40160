from __future__ import annotations

from typing import Optional

from cme_bytes import BLOCK, NON_UTF8, pack8, split_blocks, u64_to_bytes
from cme_errors import PayloadFormatError, ReconstructionMismatch, UndecodableText
from cme_geometry import decompose, is_decomposition, reconstruct
from cme_layers import Layers, forward_layers, inverse_layers, validate_layers

# Wire format:
#   G1:<len>.<root0>.<rem0>.<root1>.<rem1>....<fnv32>
# words are 16 hex digits, the checksum is 8 hex digits
PREFIX = "G1:"
SEP = "."
_HEX = frozenset("0123456789abcdefABCDEF")


def fnv1a32(data: bytes) -> int:
    # integrity check, not crypto
    h = 0x811C9DC5
    for b in data:
        h ^= b
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h


def encode_text(text: str, layers: Layers, rem_layers: Optional[Layers] = None) -> str:
    chain = validate_layers(layers)
    rem_chain = chain if rem_layers is None else validate_layers(rem_layers)

    data = text.encode("utf-8")
    words = [len(data)]
    for block in split_blocks(data):
        r0, rem = decompose(pack8(block))
        words.append(forward_layers(r0, chain))
        words.append(forward_layers(rem, rem_chain))

    body = SEP.join(f"{w:016x}" for w in words)
    return f"{PREFIX}{body}{SEP}{fnv1a32(data):08x}"


def _parse_words(body: str) -> tuple[int, list[int], int]:
    parts = body.split(SEP)
    if len(parts) < 2 or (len(parts) - 2) % 2:
        raise PayloadFormatError(f"expected length, root/rem pairs and checksum; got {len(parts)} fields")
    *word_parts, crc_part = parts
    if any(len(p) != 16 for p in word_parts) or len(crc_part) != 8:
        raise PayloadFormatError("bad field width")
    if any(c not in _HEX for p in parts for c in p):
        raise PayloadFormatError("non-hex field")
    words = [int(p, 16) for p in word_parts]
    crc = int(crc_part, 16)

    n, pairs = words[0], words[1:]
    nblocks = len(pairs) // 2
    if (n + BLOCK - 1) // BLOCK != nblocks:
        raise PayloadFormatError(f"length {n} does not match {nblocks} block(s)")
    return n, pairs, crc


def decode_text(payload: str, layers: Layers, rem_layers: Optional[Layers] = None,
                strict: bool = False) -> str:
    """
    Reverse encode_text(). Payloads without the G1 prefix pass through.

    The receiver checks that every (root, rem) pair is a real decomposition
    and that the checksum matches; a wrong chain fails loudly with
    ReconstructionMismatch instead of returning garbage.
    """
    if not payload.startswith(PREFIX):
        return payload

    chain = validate_layers(layers)
    rem_chain = chain if rem_layers is None else validate_layers(rem_layers)
    n, pairs, crc = _parse_words(payload[len(PREFIX):])

    out = b""
    for i in range(0, len(pairs), 2):
        r0 = inverse_layers(pairs[i], chain)
        rem = inverse_layers(pairs[i + 1], rem_chain)
        if not is_decomposition(r0, rem):
            raise ReconstructionMismatch(f"block {i // 2}: (r0={r0}, rem={rem}) is not a valid decomposition")
        out += u64_to_bytes(reconstruct(r0, rem))

    data, padding = out[:n], out[n:]
    if padding.strip(b"\x00"):
        raise PayloadFormatError(f"non-zero padding after {n} byte(s): {padding.hex()}")
    if fnv1a32(data) != crc:
        raise ReconstructionMismatch(f"checksum mismatch: got {fnv1a32(data):08x}, expected {crc:08x}")

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        if strict:
            raise UndecodableText(f"recovered bytes are not UTF-8: {data.hex()}") from e
        return NON_UTF8
