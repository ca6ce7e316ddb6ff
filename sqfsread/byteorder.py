"""Conversion of little-endian on-disk integers to native values."""

from __future__ import annotations

MAGIC_SWAP = 0x68737173


def _from_le(raw: bytes | bytearray | memoryview, width: int) -> int:
    data = bytes(raw)
    if len(data) != width:
        raise ValueError(f"expected {width} bytes, got {len(data)}")
    return int.from_bytes(data, "little")


def swapin16(raw: bytes | bytearray | memoryview) -> int:
    """Decode a 2-byte little-endian unsigned integer."""
    return _from_le(raw, 2)


def swapin32(raw: bytes | bytearray | memoryview) -> int:
    """Decode a 4-byte little-endian unsigned integer."""
    return _from_le(raw, 4)


def swapin64(raw: bytes | bytearray | memoryview) -> int:
    """Decode an 8-byte little-endian unsigned integer."""
    return _from_le(raw, 8)


def swap16(value: int) -> int:
    """Exchange the two bytes of a 16-bit value."""
    return ((value >> 8) + (value << 8)) & 0xFFFF