from __future__ import annotations


class CMEError(Exception):
    """Base exception for the CME layering pipeline."""


class RingRangeError(CMEError, ValueError):
    """Raised when a value falls outside [0, 2^64)."""


class NotInvertible(CMEError, ArithmeticError):
    """Raised when an even value is asked for its inverse mod 2^64."""


class InvalidLayer(CMEError, ValueError):
    """Raised when a layer chain contains an even multiplier or a bad value."""

    def __init__(self, msg: str, index: int | None = None):
        super().__init__(msg)
        self.index = index


class InvalidPayloadLength(CMEError, ValueError):
    """Raised when pack8 is not given exactly 8 bytes."""


class UndecodableText(CMEError, ValueError):
    """Raised by strict unpacking when recovered bytes are not UTF-8."""


class PayloadFormatError(CMEError, ValueError):
    """Raised when a G1 wire payload cannot be parsed."""


class ReconstructionMismatch(CMEError):
    """Raised when the recovered value does not match what was sent."""


class InvalidPayloadType(CMEError, TypeError):
    """Raised when pack8 is given something other than str, bytes or bytearray."""
