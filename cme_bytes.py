from __future__ import annotations

from typing import Union

from cme_errors import InvalidPayloadLength, InvalidPayloadType, UndecodableText
from cme_ring import require_u64

BLOCK = 8
NON_UTF8 = "<non-utf8>"

Payload = Union[bytes, bytearray, str]


# ---------------------------
# 8-byte register (big-endian)
# ---------------------------

def pack8(payload: Payload) -> int:
    if isinstance(payload, str):
        b = payload.encode("utf-8")
    elif isinstance(payload, (bytes, bytearray)):
        b = bytes(payload)
    else:
        raise InvalidPayloadType(f"payload must be str, bytes or bytearray, got {type(payload).__name__}")
    if len(b) != BLOCK:
        raise InvalidPayloadLength(f"need exactly {BLOCK} bytes for a 64-bit register, got {len(b)}")
    x = 0
    for byte in b:
        x = (x << 8) | byte
    return x


def u64_to_bytes(x: int) -> bytes:
    require_u64(x, "x")
    return bytes((x >> (8 * (7 - i))) & 0xFF for i in range(BLOCK))


def unpack8(x: int, strict: bool = False) -> str:
    """
    u64 -> 8 bytes -> UTF-8 text.
    Bytes that are not valid UTF-8 give NON_UTF8, or UndecodableText when strict.
    """
    b = u64_to_bytes(x)
    try:
        return b.decode("utf-8")
    except UnicodeDecodeError as e:
        if strict:
            raise UndecodableText(f"recovered bytes are not UTF-8: {b.hex()}") from e
        return NON_UTF8


# ---------------------------
# Arbitrary length -> blocks
# ---------------------------

def split_blocks(data: bytes) -> list[bytes]:
    """Split into 8-byte blocks, zero-padding the last one."""
    out = []
    for i in range(0, len(data), BLOCK):
        chunk = data[i:i + BLOCK]
        out.append(chunk + b"\x00" * (BLOCK - len(chunk)))
    return out
