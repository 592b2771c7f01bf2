"""MIDI and meta messages as owned byte buffers.

Byte 0 of a non-empty buffer is always the status byte.  Running-status
compression only exists on the wire (see ``reader`` and ``writer``); a
``Message`` always carries its full command.

Meta messages keep their encoded length inside the buffer::

    FF <type> <VLV length> <payload...>

System-exclusive messages keep the leading F0 (or F7) followed by the raw
payload; the VLV length is added back by the writer.

Out-of-range parameter reads return -1 instead of raising.  An empty
buffer marks a deleted event (see ``event_list.remove_empties``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .errors import SMFError
from .vlv import decode_vlv, encode_vlv

NOTE_OFF = 0x80
NOTE_ON = 0x90
AFTERTOUCH = 0xA0
CONTROLLER = 0xB0
PATCH_CHANGE = 0xC0
PRESSURE = 0xD0
PITCHBEND = 0xE0
SYSEX = 0xF0
SYSEX_CONTINUATION = 0xF7
META = 0xFF

META_SEQUENCE_NUMBER = 0x00
META_TEXT = 0x01
META_COPYRIGHT = 0x02
META_TRACK_NAME = 0x03
META_INSTRUMENT_NAME = 0x04
META_LYRIC = 0x05
META_MARKER = 0x06
META_CUE = 0x07
META_END_OF_TRACK = 0x2F
META_TEMPO = 0x51
META_SMPTE_OFFSET = 0x54
META_TIME_SIGNATURE = 0x58
META_KEY_SIGNATURE = 0x59

SUSTAIN = 64
SOFT = 67

# Data bytes that follow each channel command nibble.
_COMMAND_LENGTHS = {
    NOTE_OFF: 2,
    NOTE_ON: 2,
    AFTERTOUCH: 2,
    CONTROLLER: 2,
    PATCH_CHANGE: 1,
    PRESSURE: 1,
    PITCHBEND: 2,
}


class MessageView:
    """Read/write accessors shared by ``Message`` and ``Event``.

    Subclasses provide ``data``, a mutable ``bytearray`` whose first byte
    is the status byte.
    """

    data: bytearray

    def __len__(self) -> int:
        return len(self.data)

    def __getitem__(self, index: int) -> int:
        return self.data[index]

    def __setitem__(self, index: int, value: int) -> None:
        self.data[index] = value & 0xFF

    @property
    def size(self) -> int:
        return len(self.data)

    def is_empty(self) -> bool:
        return len(self.data) == 0

    def clear(self) -> None:
        """Empty the buffer, marking the message as deleted."""
        del self.data[:]

    def _param(self, index: int) -> int:
        if index >= len(self.data):
            return -1
        return self.data[index]

    def _set_param(self, index: int, value: int) -> None:
        if index >= len(self.data):
            self.data.extend(b"\x00" * (index + 1 - len(self.data)))
        self.data[index] = value & 0xFF

    # -- raw parameters --------------------------------------------------

    @property
    def p0(self) -> int:
        return self._param(0)

    @p0.setter
    def p0(self, value: int) -> None:
        self._set_param(0, value)

    @property
    def p1(self) -> int:
        return self._param(1)

    @p1.setter
    def p1(self, value: int) -> None:
        self._set_param(1, value)

    @property
    def p2(self) -> int:
        return self._param(2)

    @p2.setter
    def p2(self, value: int) -> None:
        self._set_param(2, value)

    @property
    def p3(self) -> int:
        return self._param(3)

    @p3.setter
    def p3(self, value: int) -> None:
        self._set_param(3, value)

    # -- command / channel -----------------------------------------------

    @property
    def command_byte(self) -> int:
        return self._param(0)

    @command_byte.setter
    def command_byte(self, value: int) -> None:
        self._set_param(0, value)

    @property
    def command_nibble(self) -> int:
        if not self.data:
            return -1
        return self.data[0] & 0xF0

    @command_nibble.setter
    def command_nibble(self, value: int) -> None:
        low = self.data[0] & 0x0F if self.data else 0
        self._set_param(0, (value & 0xF0) | low)

    @property
    def channel(self) -> int:
        if not self.data:
            return -1
        return self.data[0] & 0x0F

    @channel.setter
    def channel(self, value: int) -> None:
        high = self.data[0] & 0xF0 if self.data else 0
        self._set_param(0, high | (value & 0x0F))

    def set_parameters(self, p1: int, p2: int | None = None) -> None:
        self.p1 = p1
        if p2 is not None:
            self.p2 = p2

    def resize_to_command(self) -> int:
        """Pad or truncate a channel message to its command's length.

        Returns the new size.  Meta, sysex and empty messages are untouched.
        """
        expected = _COMMAND_LENGTHS.get(self.command_nibble)
        if expected is None:
            return len(self.data)
        wanted = expected + 1
        if len(self.data) > wanted:
            del self.data[wanted:]
        elif len(self.data) < wanted:
            self.data.extend(b"\x00" * (wanted - len(self.data)))
        return len(self.data)

    # -- notes -----------------------------------------------------------

    @property
    def key_number(self) -> int:
        if not self.is_note() and not self.is_aftertouch():
            return -1
        return self._param(1)

    @key_number.setter
    def key_number(self, value: int) -> None:
        if self.is_note() or self.is_aftertouch():
            self._set_param(1, value & 0x7F)

    @property
    def velocity(self) -> int:
        if not self.is_note():
            return -1
        return self._param(2)

    @velocity.setter
    def velocity(self, value: int) -> None:
        if self.is_note():
            self._set_param(2, value & 0x7F)

    def is_note_on(self) -> bool:
        return self.command_nibble == NOTE_ON and self.p2 > 0

    def is_note_off(self) -> bool:
        return self.command_nibble == NOTE_OFF

    def is_note(self) -> bool:
        return self.command_nibble in (NOTE_ON, NOTE_OFF)

    def is_aftertouch(self) -> bool:
        return self.command_nibble == AFTERTOUCH

    # -- controllers -----------------------------------------------------

    def is_controller(self) -> bool:
        return self.command_nibble == CONTROLLER

    @property
    def controller_number(self) -> int:
        if not self.is_controller():
            return -1
        return self._param(1)

    @property
    def controller_value(self) -> int:
        if not self.is_controller():
            return -1
        return self._param(2)

    def is_sustain(self) -> bool:
        return self.is_controller() and self.p1 == SUSTAIN

    def is_sustain_on(self) -> bool:
        return self.is_sustain() and self.p2 >= 64

    def is_sustain_off(self) -> bool:
        return self.is_sustain() and self.p2 < 64

    def is_soft(self) -> bool:
        return self.is_controller() and self.p1 == SOFT

    def is_soft_on(self) -> bool:
        return self.is_soft() and self.p2 >= 64

    def is_soft_off(self) -> bool:
        return self.is_soft() and self.p2 < 64

    def is_patch_change(self) -> bool:
        return self.command_nibble == PATCH_CHANGE

    is_timbre = is_patch_change

    def is_pressure(self) -> bool:
        return self.command_nibble == PRESSURE

    def is_pitchbend(self) -> bool:
        return self.command_nibble == PITCHBEND

    def is_sysex(self) -> bool:
        return self.command_byte in (SYSEX, SYSEX_CONTINUATION)

    # -- meta ------------------------------------------------------------

    def is_meta(self) -> bool:
        return self.command_byte == META

    @property
    def meta_type(self) -> int:
        if not self.is_meta():
            return -1
        return self._param(1)

    def _is_meta_of(self, meta_type: int) -> bool:
        return self.is_meta() and self.p1 == meta_type

    def is_end_of_track(self) -> bool:
        return self._is_meta_of(META_END_OF_TRACK)

    def is_tempo(self) -> bool:
        return self._is_meta_of(META_TEMPO) and len(self.data) == 6

    def is_text(self) -> bool:
        return self._is_meta_of(META_TEXT)

    def is_copyright(self) -> bool:
        return self._is_meta_of(META_COPYRIGHT)

    def is_track_name(self) -> bool:
        return self._is_meta_of(META_TRACK_NAME)

    def is_instrument_name(self) -> bool:
        return self._is_meta_of(META_INSTRUMENT_NAME)

    def is_lyric_text(self) -> bool:
        return self._is_meta_of(META_LYRIC)

    def is_marker_text(self) -> bool:
        return self._is_meta_of(META_MARKER)

    def is_time_signature(self) -> bool:
        return self._is_meta_of(META_TIME_SIGNATURE) and len(self.data) == 7

    def is_key_signature(self) -> bool:
        return self._is_meta_of(META_KEY_SIGNATURE) and len(self.data) == 5

    @property
    def meta_content(self) -> bytes:
        """Payload of a meta message, without type and length bytes.

        Returns ``b""`` for non-meta messages or an unreadable length.
        """
        if not self.is_meta() or len(self.data) < 3:
            return b""
        try:
            length, start = decode_vlv(self.data, 2)
        except SMFError:
            return b""
        return bytes(self.data[start : start + length])

    def set_meta_content(self, payload: bytes | str) -> None:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        meta_type = self.p1 if self.is_meta() else 0
        self.data[:] = bytes((META, meta_type & 0x7F)) + encode_vlv(len(payload)) + payload

    # -- tempo -----------------------------------------------------------

    @property
    def tempo_microseconds(self) -> int:
        if not self.is_tempo():
            return -1
        return int.from_bytes(self.data[3:6], "big")

    @property
    def tempo_seconds(self) -> float:
        microseconds = self.tempo_microseconds
        if microseconds < 0:
            return -1.0
        return microseconds / 1_000_000.0

    @property
    def tempo_bpm(self) -> float:
        microseconds = self.tempo_microseconds
        if microseconds <= 0:
            return -1.0
        return 60_000_000.0 / microseconds

    def tempo_tps(self, ticks_per_quarter_note: int) -> float:
        """Ticks per second at this tempo."""
        seconds = self.tempo_seconds
        if seconds <= 0:
            return -1.0
        return ticks_per_quarter_note / seconds

    def tempo_spt(self, ticks_per_quarter_note: int) -> float:
        """Seconds per tick at this tempo."""
        seconds = self.tempo_seconds
        if seconds < 0 or ticks_per_quarter_note <= 0:
            return -1.0
        return seconds / ticks_per_quarter_note

    def set_tempo_microseconds(self, microseconds: int) -> None:
        microseconds = max(0, min(int(microseconds), 0xFFFFFF))
        self.data[:] = bytes((META, META_TEMPO, 0x03)) + microseconds.to_bytes(3, "big")

    def set_tempo(self, bpm: float) -> None:
        if bpm <= 0:
            raise ValueError(f"tempo must be positive, got {bpm}")
        self.set_tempo_microseconds(round(60_000_000.0 / bpm))


@dataclass(eq=False)
class Message(MessageView):
    """A single MIDI, sysex or meta message."""

    data: bytearray = field(default_factory=bytearray)

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Message):
            return self.data == other.data
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def from_values(cls, values: Iterable[int]) -> "Message":
        return cls(bytearray(value & 0xFF for value in values))

    @classmethod
    def meta(cls, meta_type: int, payload: bytes | str = b"") -> "Message":
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return cls(bytes((META, meta_type & 0x7F)) + encode_vlv(len(payload)) + payload)

    def copy(self) -> "Message":
        return Message(bytearray(self.data))

    def hex(self, sep: str = " ") -> str:
        return self.data.hex(sep)


__all__ = [
    "AFTERTOUCH",
    "CONTROLLER",
    "META",
    "META_COPYRIGHT",
    "META_CUE",
    "META_END_OF_TRACK",
    "META_INSTRUMENT_NAME",
    "META_KEY_SIGNATURE",
    "META_LYRIC",
    "META_MARKER",
    "META_SEQUENCE_NUMBER",
    "META_SMPTE_OFFSET",
    "META_TEMPO",
    "META_TEXT",
    "META_TIME_SIGNATURE",
    "META_TRACK_NAME",
    "Message",
    "MessageView",
    "NOTE_OFF",
    "NOTE_ON",
    "PATCH_CHANGE",
    "PITCHBEND",
    "PRESSURE",
    "SOFT",
    "SUSTAIN",
    "SYSEX",
    "SYSEX_CONTINUATION",
]
