"""Decode Standard MIDI File bytes into events.

Layout::

    "MThd" u32(6) u16 format u16 ntracks u16 division
    "MTrk" u32 length  (VLV delta, message)* ... FF 2F 00

All framing is big-endian.  The track length is advisory: parsing runs
until an end-of-track meta event or until the data runs out, because
many files in the wild carry wrong chunk sizes.

Any structural or payload error aborts the whole read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .byteorder import ByteCursor
from .errors import MalformedEvent, MalformedHeader, RunningStatusMisuse, UnexpectedEof
from .event import Event
from .message import META, SYSEX, SYSEX_CONTINUATION
from .vlv import decode_vlv

logger = logging.getLogger(__name__)

HEADER_MAGIC = b"MThd"
TRACK_MAGIC = b"MTrk"
HEADER_LENGTH = 6
SUPPORTED_FORMATS = (0, 1)
KNOWN_SMPTE_RATES = (24, 25, 29, 30)

# Data bytes following each channel command nibble.
_DATA_LENGTHS = {
    0x80: 2,
    0x90: 2,
    0xA0: 2,
    0xB0: 2,
    0xC0: 1,
    0xD0: 1,
    0xE0: 2,
}


@dataclass(frozen=True)
class SMFHeader:
    format: int
    track_count: int
    division: int
    ticks_per_quarter_note: int
    frames_per_second: int = 0
    subframes: int = 0

    @property
    def is_smpte(self) -> bool:
        return bool(self.division & 0x8000)

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> "SMFHeader":
        try:
            magic = cursor.read(4)
        except UnexpectedEof as exc:
            raise MalformedHeader("file too short for an MThd header") from exc
        if magic != HEADER_MAGIC:
            raise MalformedHeader(f"bad header magic: {magic!r}")

        length = cursor.read_u32()
        if length != HEADER_LENGTH:
            raise MalformedHeader(
                f"header length is {length} bytes; a MIDI 1.0 file needs {HEADER_LENGTH}"
            )

        fmt = cursor.read_u16()
        if fmt not in SUPPORTED_FORMATS:
            raise MalformedHeader(f"cannot handle a type-{fmt} MIDI file")

        track_count = cursor.read_u16()
        if fmt == 0 and track_count != 1:
            raise MalformedHeader(
                f"type-0 MIDI file must contain exactly one track, header says {track_count}"
            )

        division = cursor.read_u16()
        if division & 0x8000:
            frames_per_second = 256 - ((division >> 8) & 0xFF)
            subframes = division & 0xFF
            if subframes == 0:
                raise MalformedHeader(
                    f"SMPTE division 0x{division:04X} has no subframes per frame"
                )
            if frames_per_second not in KNOWN_SMPTE_RATES:
                logger.warning("unknown SMPTE frame rate %d fps", frames_per_second)
            return cls(
                format=fmt,
                track_count=track_count,
                division=division,
                ticks_per_quarter_note=frames_per_second * subframes,
                frames_per_second=frames_per_second,
                subframes=subframes,
            )
        if division == 0:
            raise MalformedHeader("division of 0 ticks per quarter note")
        return cls(
            format=fmt,
            track_count=track_count,
            division=division,
            ticks_per_quarter_note=division,
        )


def _read_meta_length(cursor: ByteCursor, buf: bytearray) -> int:
    """Read a meta length VLV, keeping its raw bytes in ``buf``."""
    start = cursor.pos
    length, cursor.pos = decode_vlv(cursor.data, start)
    buf.extend(cursor.data[start : cursor.pos])
    return length


def read_message(cursor: ByteCursor, running_command: int) -> Tuple[bytearray, int]:
    """Read one message (without its delta time), expanding running status.

    Returns the full message bytes and the running command to use for the
    next message.
    """
    first = cursor.read_u8()
    if first < 0x80:
        if running_command == 0:
            raise RunningStatusMisuse(
                f"data byte 0x{first:02X} at offset {cursor.pos - 1} with no previous command"
            )
        if running_command >= 0xF0:
            raise RunningStatusMisuse(
                f"running status not permitted after 0x{running_command:02X} "
                f"(data byte 0x{first:02X} at offset {cursor.pos - 1})"
            )
        command = running_command
        buf = bytearray((command, first))
    else:
        command = first
        buf = bytearray((command,))

    nibble = command & 0xF0
    if nibble in _DATA_LENGTHS:
        while len(buf) < _DATA_LENGTHS[nibble] + 1:
            byte = cursor.read_u8()
            if byte > 0x7F:
                raise MalformedEvent(
                    f"MIDI data byte too large: 0x{byte:02X} at offset {cursor.pos - 1}"
                )
            buf.append(byte)
    elif command == META:
        buf.append(cursor.read_u8())
        length = _read_meta_length(cursor, buf)
        buf.extend(cursor.read(length))
    elif command in (SYSEX, SYSEX_CONTINUATION):
        # The VLV length is implied by the buffer size and re-added on write.
        length = cursor.read_vlv()
        buf.extend(cursor.read(length))
    else:
        logger.debug("system message 0x%02X stored without data bytes", command)
    return buf, command


def read_track(cursor: ByteCursor, track_index: int) -> List[Event]:
    """Parse one ``MTrk`` chunk into events with absolute ticks."""
    try:
        magic = cursor.read(4)
    except UnexpectedEof as exc:
        raise MalformedHeader(f"missing MTrk header for track {track_index}") from exc
    if magic != TRACK_MAGIC:
        raise MalformedHeader(f"bad track magic for track {track_index}: {magic!r}")
    declared = cursor.read_u32()
    start = cursor.pos

    events: List[Event] = []
    running_command = 0
    tick = 0
    while not cursor.at_end():
        tick += cursor.read_vlv()
        data, running_command = read_message(cursor, running_command)
        event = Event.from_bytes(data, tick=tick, track=track_index)
        events.append(event)
        if event.is_end_of_track():
            break
    else:
        logger.warning("track %d ended without an end-of-track event", track_index)

    consumed = cursor.pos - start
    if consumed != declared:
        logger.debug(
            "track %d declares %d bytes but %d were parsed", track_index, declared, consumed
        )
    return events


def read_tracks(data: bytes) -> Tuple[SMFHeader, List[List[Event]]]:
    """Parse a complete file.

    Returns the header and one event list per track, ticks absolute.
    """
    cursor = ByteCursor(bytes(data))
    header = SMFHeader.from_cursor(cursor)
    tracks = [read_track(cursor, index) for index in range(header.track_count)]
    logger.debug(
        "read type-%d file: %d tracks, division 0x%04X",
        header.format,
        header.track_count,
        header.division,
    )
    return header, tracks


__all__ = [
    "HEADER_MAGIC",
    "SMFHeader",
    "TRACK_MAGIC",
    "read_message",
    "read_track",
    "read_tracks",
]
