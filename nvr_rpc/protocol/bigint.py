# nvr_rpc/protocol/bigint.py
"""Arbitrary-precision helpers for the raw RSA key wrap.

Python integers are unbounded, so this is a thin adapter over them and over
pycryptodome's byte/integer conversions.
"""
import string

from Crypto.Util.number import bytes_to_long, long_to_bytes

_HEX_DIGITS = set(string.hexdigits)


def from_hex(value: str) -> int:
    """Parse an unsigned hexadecimal string. Raises ValueError on bad input."""
    text = value.strip()
    if not text or not set(text) <= _HEX_DIGITS:
        raise ValueError(f"not a hex number: {value!r}")
    return int(text, 16)


def from_bytes(data: bytes) -> int:
    """Big-endian unsigned integer from bytes."""
    return bytes_to_long(data)


def to_bytes(value: int) -> bytes:
    """Minimal big-endian encoding. Zero encodes as a single 0x00 byte."""
    if value < 0:
        raise ValueError("negative values are not supported")
    return long_to_bytes(value) or b"\x00"


def mod_pow(base: int, exponent: int, modulus: int) -> int:
    if modulus <= 0:
        raise ValueError("modulus must be positive")
    return pow(base, exponent, modulus)
