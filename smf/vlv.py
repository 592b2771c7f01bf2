"""MIDI variable-length quantities.

A VLV stores an unsigned integer as big-endian 7-bit groups.  Every byte
except the last has the continuation bit (0x80) set.  Standard MIDI Files
limit VLVs to four groups, so the largest value is 0x0FFFFFFF.
"""

from __future__ import annotations

import logging
from typing import Tuple

from .errors import TruncatedInput, VLVTooLarge

logger = logging.getLogger(__name__)

MAX_VLV_BYTES = 4
MAX_VLV_VALUE = 0x0FFFFFFF


def encode_vlv(value: int) -> bytes:
    """Encode ``value`` using the minimum number of 7-bit groups.

    Values that do not fit in 28 bits are clamped to ``MAX_VLV_VALUE`` and
    a warning is logged; encoding still succeeds.
    """
    if value < 0:
        raise ValueError(f"VLV values must be unsigned, got {value}")
    if value > MAX_VLV_VALUE:
        logger.warning(
            "value %d too large for a VLV; clamping to 0x%07X", value, MAX_VLV_VALUE
        )
        value = MAX_VLV_VALUE

    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def decode_vlv(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a VLV starting at ``offset``.

    Returns
    -------
    tuple[int, int]
        The decoded value and the offset just past the last consumed byte.
    """
    value = 0
    pos = offset
    for _ in range(MAX_VLV_BYTES):
        if pos >= len(data):
            raise TruncatedInput(f"VLV at offset {offset} ends before its final byte")
        byte = data[pos]
        pos += 1
        value = (value << 7) | (byte & 0x7F)
        if byte < 0x80:
            return value, pos
    raise VLVTooLarge(f"VLV at offset {offset} needs more than {MAX_VLV_BYTES} bytes")


def vlv_size(value: int) -> int:
    """Return how many bytes ``encode_vlv`` emits for ``value``."""
    size = 1
    value = min(value, MAX_VLV_VALUE) >> 7
    while value:
        size += 1
        value >>= 7
    return size


__all__ = [
    "MAX_VLV_BYTES",
    "MAX_VLV_VALUE",
    "decode_vlv",
    "encode_vlv",
    "vlv_size",
]
