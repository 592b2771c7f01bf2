"""Explicit big/little-endian primitives.

Nothing in the package relies on native byte order: every multi-byte field
goes through one of these helpers with the order spelled out.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import UnexpectedEof
from .vlv import decode_vlv

BIG = "big"
LITTLE = "little"

_PREFIX = {BIG: ">", LITTLE: "<"}


def _fmt(order: str, code: str) -> str:
    try:
        return _PREFIX[order] + code
    except KeyError:
        raise ValueError(f"byte order must be 'big' or 'little', got {order!r}") from None


def _pack(order: str, code: str, value) -> bytes:
    fmt = _fmt(order, code)
    try:
        return struct.pack(fmt, value)
    except struct.error as exc:
        raise ValueError(f"{value!r} does not fit in {fmt!r}: {exc}") from None


def pack_u16(value: int, order: str = BIG) -> bytes:
    return _pack(order, "H", value)


def pack_i16(value: int, order: str = BIG) -> bytes:
    return _pack(order, "h", value)


def pack_u32(value: int, order: str = BIG) -> bytes:
    return _pack(order, "I", value)


def pack_i32(value: int, order: str = BIG) -> bytes:
    return _pack(order, "i", value)


def pack_u64(value: int, order: str = BIG) -> bytes:
    return _pack(order, "Q", value)


def pack_f32(value: float, order: str = BIG) -> bytes:
    return _pack(order, "f", value)


def pack_f64(value: float, order: str = BIG) -> bytes:
    return _pack(order, "d", value)


@dataclass
class ByteCursor:
    """Sequential reader over an in-memory byte string.

    Every read checks the remaining length first and raises
    ``UnexpectedEof`` instead of returning partial data.
    """

    data: bytes
    pos: int = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def peek_u8(self) -> int | None:
        if self.at_end():
            return None
        return self.data[self.pos]

    def read(self, count: int) -> bytes:
        if count < 0:
            raise ValueError(f"cannot read a negative byte count ({count})")
        if count > self.remaining:
            raise UnexpectedEof(
                f"need {count} bytes at offset {self.pos}, only {self.remaining} left"
            )
        chunk = self.data[self.pos : self.pos + count]
        self.pos += count
        return chunk

    def read_u8(self) -> int:
        if self.at_end():
            raise UnexpectedEof(f"unexpected end of data at offset {self.pos}")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def _unpack(self, order: str, code: str, size: int):
        return struct.unpack(_fmt(order, code), self.read(size))[0]

    def read_u16(self, order: str = BIG) -> int:
        return self._unpack(order, "H", 2)

    def read_i16(self, order: str = BIG) -> int:
        return self._unpack(order, "h", 2)

    def read_u32(self, order: str = BIG) -> int:
        return self._unpack(order, "I", 4)

    def read_i32(self, order: str = BIG) -> int:
        return self._unpack(order, "i", 4)

    def read_u64(self, order: str = BIG) -> int:
        return self._unpack(order, "Q", 8)

    def read_f32(self, order: str = BIG) -> float:
        return self._unpack(order, "f", 4)

    def read_f64(self, order: str = BIG) -> float:
        return self._unpack(order, "d", 8)

    def read_vlv(self) -> int:
        value, self.pos = decode_vlv(self.data, self.pos)
        return value


__all__ = [
    "BIG",
    "LITTLE",
    "ByteCursor",
    "pack_f32",
    "pack_f64",
    "pack_i16",
    "pack_i32",
    "pack_u16",
    "pack_u32",
    "pack_u64",
]
