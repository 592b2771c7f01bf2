"""Encode tracks of events as Standard MIDI File bytes.

Events are written with delta ticks and full status bytes.  Empty
(deleted) events and end-of-track events found in the data are skipped;
each track gets exactly one synthesized ``FF 2F 00`` at the end, placed at
the tick of the dropped end-of-track when there was one.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from .byteorder import pack_u16, pack_u32
from .event import Event
from .message import SYSEX, SYSEX_CONTINUATION
from .reader import HEADER_LENGTH, HEADER_MAGIC, TRACK_MAGIC
from .vlv import encode_vlv

logger = logging.getLogger(__name__)

END_OF_TRACK = b"\xFF\x2F\x00"


def absolute_ticks(events: Sequence[Event], *, delta: bool) -> List[int]:
    """Return absolute ticks for ``events`` given in delta or absolute form."""
    if not delta:
        return [event.tick for event in events]
    ticks: List[int] = []
    running = 0
    for event in events:
        running += event.tick
        ticks.append(running)
    return ticks


def encode_message(event: Event) -> bytes:
    """Return the on-disk bytes of one message (without its delta time)."""
    if event.command_byte in (SYSEX, SYSEX_CONTINUATION):
        payload = bytes(event.data[1:])
        return bytes(event.data[:1]) + encode_vlv(len(payload)) + payload
    return bytes(event.data)


def encode_track(events: Sequence[Event], *, delta: bool = False, track_index: int = 0) -> bytes:
    """Encode one track body (the bytes that follow ``MTrk`` and its length)."""
    out = bytearray()
    previous = 0
    end_tick = None
    for event, tick in zip(events, absolute_ticks(events, delta=delta)):
        if event.is_empty():
            continue
        if event.is_end_of_track():
            end_tick = tick if end_tick is None else max(end_tick, tick)
            continue
        step = tick - previous
        if step < 0:
            logger.warning(
                "negative delta tick %d in track %d; writing 0 (sort the track first)",
                step,
                track_index,
            )
            step = 0
        else:
            previous = tick
        out += encode_vlv(step)
        out += encode_message(event)

    final = 0 if end_tick is None else max(0, end_tick - previous)
    out += encode_vlv(final)
    out += END_OF_TRACK
    return bytes(out)


def encode_file(
    tracks: Sequence[Sequence[Event]],
    division: int,
    *,
    delta: bool = False,
) -> bytes:
    """Build a complete SMF: type 0 for a single track, otherwise type 1."""
    fmt = 0 if len(tracks) == 1 else 1
    parts: List[bytes] = [
        HEADER_MAGIC,
        pack_u32(HEADER_LENGTH),
        pack_u16(fmt),
        pack_u16(len(tracks)),
        pack_u16(division),
    ]
    for index, events in enumerate(tracks):
        body = encode_track(events, delta=delta, track_index=index)
        parts.append(TRACK_MAGIC)
        parts.append(pack_u32(len(body)))
        parts.append(body)
    logger.debug("encoded type-%d file with %d tracks", fmt, len(tracks))
    return b"".join(parts)


def hex_dump(data: Iterable[int], width: int = 25) -> str:
    """Format bytes as two-digit hex, ``width`` per line (0 = one line)."""
    values = [f"{byte:02x}" for byte in data]
    if width <= 0:
        return " ".join(values) + "\n" if values else ""
    lines = [" ".join(values[i : i + width]) for i in range(0, len(values), width)]
    return "\n".join(lines) + "\n" if lines else ""


__all__ = [
    "END_OF_TRACK",
    "absolute_ticks",
    "encode_file",
    "encode_message",
    "encode_track",
    "hex_dump",
]
