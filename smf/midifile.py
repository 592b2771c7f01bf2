"""File-level container for Standard MIDI File data.

A ``MidiFile`` owns its tracks and two pieces of state that decide what the
events' ``tick`` values mean:

* tick state: ``DELTA`` (ticks since the previous event in the track) or
  ``ABSOLUTE`` (ticks since the start of the track);
* track state: ``SPLIT`` (one list per track) or ``JOINED`` (every event
  interleaved in track 0, with ``Event.track`` remembering its origin).

Files are read in absolute/split form with a sequence number on every
event so that joining and re-sorting keeps the on-disk order of events
that share a tick.  Writing always emits delta ticks regardless of state.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

from .errors import IndexOutOfRange, NegativeDeltaTick
from .event import Event
from .event_list import (
    clear_links,
    clear_sequence,
    link_note_pairs,
    mark_sequence,
    remove_empties,
    sort_events,
)
from .message import Message
from .reader import read_tracks
from .timemap import TimeMap
from .writer import absolute_ticks, encode_file, hex_dump

logger = logging.getLogger(__name__)

DEFAULT_TICKS_PER_QUARTER_NOTE = 120
MILLISECOND_DIVISION = 0xE728  # SMPTE -25 fps, 40 subframes: 1 tick = 1 ms
MAX_TICKS_PER_QUARTER_NOTE = 0x7FFF  # the header high bit marks SMPTE


def _check_resolution(ticks_per_quarter_note: int) -> int:
    if not 1 <= ticks_per_quarter_note <= MAX_TICKS_PER_QUARTER_NOTE:
        raise ValueError(
            f"ticks per quarter note must be 1..{MAX_TICKS_PER_QUARTER_NOTE}, "
            f"got {ticks_per_quarter_note}"
        )
    return ticks_per_quarter_note


class TickState(Enum):
    DELTA = "delta"
    ABSOLUTE = "absolute"


class TrackState(Enum):
    SPLIT = "split"
    JOINED = "joined"


class MidiFile:
    def __init__(
        self,
        ticks_per_quarter_note: int = DEFAULT_TICKS_PER_QUARTER_NOTE,
        track_count: int = 1,
    ) -> None:
        self.tracks: List[List[Event]] = [[] for _ in range(track_count)]
        self._ticks_per_quarter_note = _check_resolution(ticks_per_quarter_note)
        self._smpte_division: Optional[int] = None
        self._tick_state = TickState.ABSOLUTE
        self._track_state = TrackState.SPLIT
        self._time_map: Optional[TimeMap] = None
        self._joined_track_count = 0
        self._linked = False

    def __repr__(self) -> str:
        return (
            f"MidiFile(tracks={len(self.tracks)}, tpq={self._ticks_per_quarter_note}, "
            f"{self._tick_state.value}, {self._track_state.value})"
        )

    # -- serialization -----------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes) -> "MidiFile":
        header, tracks = read_tracks(data)
        midi_file = cls(header.ticks_per_quarter_note, track_count=0)
        if header.is_smpte:
            midi_file._smpte_division = header.division
        midi_file.tracks = tracks
        midi_file.mark_sequence()
        return midi_file

    def to_bytes(self) -> bytes:
        return encode_file(self.tracks, self.division, delta=self.is_delta_ticks())

    def to_hex(self, width: int = 25) -> str:
        """Hex dump of ``to_bytes()``, ``width`` bytes per line (0 = no wrapping)."""
        return hex_dump(self.to_bytes(), width)

    # -- tracks and events -------------------------------------------------

    def __len__(self) -> int:
        return len(self.tracks)

    def __iter__(self) -> Iterator[List[Event]]:
        return iter(self.tracks)

    def __getitem__(self, track: int) -> List[Event]:
        self._check_track(track)
        return self.tracks[track]

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    def _check_track(self, track: int) -> None:
        if not 0 <= track < len(self.tracks):
            raise IndexOutOfRange(
                f"track {track} out of range (file has {len(self.tracks)} tracks)"
            )

    def event_count(self, track: int) -> int:
        self._check_track(track)
        return len(self.tracks[track])

    def get_event(self, track: int, index: int) -> Event:
        self._check_track(track)
        events = self.tracks[track]
        if not 0 <= index < len(events):
            raise IndexOutOfRange(
                f"event {index} out of range (track {track} has {len(events)} events)"
            )
        return events[index]

    def add_track(self, count: int = 1) -> int:
        """Append ``count`` empty tracks; return the index of the last one."""
        for _ in range(count):
            self.tracks.append([])
        self._invalidate_time_map()
        return len(self.tracks) - 1

    def delete_track(self, track: int) -> None:
        self._check_track(track)
        clear_links(self.tracks[track])
        del self.tracks[track]
        self._invalidate_time_map()

    def merge_tracks(self, first: int, second: int) -> None:
        """Move every event of ``second`` into ``first`` and delete ``second``.

        Tracks after ``second`` shift down by one, and so do the origin
        track numbers of their events.
        """
        self._check_track(first)
        self._check_track(second)
        if first == second:
            return
        was_delta = self.is_delta_ticks()
        self.make_absolute_ticks()

        merged = self.tracks[first] + self.tracks[second]
        sort_events(merged)
        self.tracks[first] = merged
        del self.tracks[second]
        for index, events in enumerate(self.tracks):
            for event in events:
                event.track = index

        if was_delta:
            self.make_delta_ticks()
        self._invalidate_time_map()

    def track_count_as_type1(self) -> int:
        """Track count the file would have once split."""
        if self.has_joined_tracks():
            return max((event.track for event in self.tracks[0]), default=0) + 1
        return len(self.tracks)

    def split_track_of(self, track: int, index: int) -> int:
        """Original track of an event; in split state simply ``track``."""
        if self.has_split_tracks():
            return track
        return self.get_event(track, index).track

    def add_event(self, track: int, tick: int, data: bytes | bytearray | Message) -> Event:
        """Append a new event at ``tick`` to ``track`` and return it.

        When tracks are joined the event goes into track 0 with its
        ``track`` field set to ``track``.
        """
        if isinstance(data, Message):
            data = data.data
        event = Event.from_bytes(data, tick=tick, track=track)
        self._append(event, track)
        return event

    def insert_event(self, event: Event, track: Optional[int] = None) -> Event:
        """Append an unlinked copy of ``event``; return the stored copy."""
        stored = event.copy()
        if track is not None:
            stored.track = track
        self._append(stored, stored.track)
        return stored

    def _append(self, event: Event, track: int) -> None:
        if self.has_joined_tracks():
            self.tracks[0].append(event)
        else:
            self._check_track(track)
            self.tracks[track].append(event)
        self._invalidate_time_map()

    def add_meta_event(
        self, track: int, tick: int, meta_type: int, payload: bytes | str = b""
    ) -> Event:
        return self.add_event(track, tick, Message.meta(meta_type, payload))

    def remove_empties(self) -> int:
        """Drop deleted (empty) events from every track; return how many."""
        removed = sum(remove_empties(events) for events in self.tracks)
        if removed:
            self._invalidate_time_map()
        return removed

    def clear(self) -> None:
        """Reset to a single empty track in absolute/split state."""
        for events in self.tracks:
            clear_links(events)
        self.tracks = [[]]
        self._time_map = None
        self._tick_state = TickState.ABSOLUTE
        self._track_state = TrackState.SPLIT
        self._joined_track_count = 0
        self._linked = False

    # -- timing resolution -------------------------------------------------

    @property
    def ticks_per_quarter_note(self) -> int:
        return self._ticks_per_quarter_note

    @ticks_per_quarter_note.setter
    def ticks_per_quarter_note(self, value: int) -> None:
        self._ticks_per_quarter_note = _check_resolution(value)
        self._smpte_division = None
        self._invalidate_time_map()

    @property
    def division(self) -> int:
        """Header division word: SMPTE form if the file uses it, else the TPQ."""
        if self._smpte_division is not None:
            return self._smpte_division
        return self._ticks_per_quarter_note

    def set_millisecond_ticks(self) -> None:
        """Make one tick mean one millisecond (SMPTE 25 fps x 40 subframes).

        Existing tick values are not rescaled.
        """
        self._ticks_per_quarter_note = 1000
        self._smpte_division = MILLISECOND_DIVISION
        self._invalidate_time_map()

    # -- tick state ----------------------------------------------------------

    @property
    def tick_state(self) -> TickState:
        return self._tick_state

    def is_delta_ticks(self) -> bool:
        return self._tick_state is TickState.DELTA

    def is_absolute_ticks(self) -> bool:
        return self._tick_state is TickState.ABSOLUTE

    def make_absolute_ticks(self) -> None:
        if self.is_absolute_ticks():
            return
        for events in self.tracks:
            for event, tick in zip(events, absolute_ticks(events, delta=True)):
                event.tick = tick
        self._tick_state = TickState.ABSOLUTE
        self._invalidate_time_map()

    def make_delta_ticks(self, *, strict: bool = False) -> None:
        """Convert absolute ticks to deltas.

        A decreasing tick between neighbours means the track is unsorted.
        By default the negative delta is kept and a warning logged; with
        ``strict=True`` ``NegativeDeltaTick`` is raised before anything
        changes.
        """
        if self.is_delta_ticks():
            return
        converted: List[List[int]] = []
        for index, events in enumerate(self.tracks):
            deltas: List[int] = []
            previous = 0
            for position, event in enumerate(events):
                delta = event.tick - previous
                if delta < 0 and position > 0:
                    if strict:
                        raise NegativeDeltaTick(
                            f"negative delta tick {delta} at event {position} of track {index}; "
                            "sort the tracks first"
                        )
                    logger.warning(
                        "negative delta tick %d at event %d of track %d; sort the tracks first",
                        delta,
                        position,
                        index,
                    )
                deltas.append(delta)
                previous = event.tick
            converted.append(deltas)

        for events, deltas in zip(self.tracks, converted):
            for event, delta in zip(events, deltas):
                event.tick = delta
        self._tick_state = TickState.DELTA
        self._invalidate_time_map()

    # -- track state -------------------------------------------------------

    @property
    def track_state(self) -> TrackState:
        return self._track_state

    def has_joined_tracks(self) -> bool:
        return self._track_state is TrackState.JOINED

    def has_split_tracks(self) -> bool:
        return self._track_state is TrackState.SPLIT

    def join_tracks(self) -> None:
        """Interleave all tracks into track 0, sorted by time."""
        if self.has_joined_tracks():
            return
        self._joined_track_count = len(self.tracks)
        if len(self.tracks) <= 1:
            if not self.tracks:
                self.tracks = [[]]
            self._track_state = TrackState.JOINED
            return

        was_delta = self.is_delta_ticks()
        self.make_absolute_ticks()
        joined = [event for events in self.tracks for event in events]
        sort_events(joined)
        self.tracks = [joined]
        self._track_state = TrackState.JOINED
        if was_delta:
            self.make_delta_ticks()

    def split_tracks(self) -> None:
        """Undo ``join_tracks`` using each event's ``track`` field."""
        if self.has_split_tracks():
            return
        was_delta = self.is_delta_ticks()
        self.make_absolute_ticks()

        joined = self.tracks[0] if self.tracks else []
        highest = max((event.track for event in joined), default=0)
        count = max(highest + 1, self._joined_track_count, 1)
        tracks: List[List[Event]] = [[] for _ in range(count)]
        for event in joined:
            tracks[max(event.track, 0)].append(event)
        self.tracks = tracks
        self._track_state = TrackState.SPLIT

        if was_delta:
            self.make_delta_ticks()

    def split_tracks_by_channel(self) -> None:
        """Re-bucket events by MIDI channel.

        Channel ``n`` goes to track ``n + 1``; meta, sysex and other
        system messages go to track 0.  Events get their ``track`` field
        updated to the new layout.  Nothing is split when there are no
        channel messages at all.
        """
        self.join_tracks()
        was_delta = self.is_delta_ticks()
        self.make_absolute_ticks()

        events = self.tracks[0]
        channels = [
            event.channel
            for event in events
            if not event.is_empty() and event.command_byte < 0xF0
        ]
        if channels:
            tracks: List[List[Event]] = [[] for _ in range(max(channels) + 2)]
            for event in events:
                if event.is_empty() or event.command_byte >= 0xF0:
                    index = 0
                else:
                    index = event.channel + 1
                event.track = index
                tracks[index].append(event)
            self.tracks = tracks
            self._track_state = TrackState.SPLIT
        else:
            logger.debug("no channel messages; leaving tracks joined")

        if was_delta:
            self.make_delta_ticks()

    # -- ordering ----------------------------------------------------------

    def sort_tracks(self) -> None:
        """Sort every track; only allowed with absolute ticks."""
        if not self.is_absolute_ticks():
            logger.warning("sorting is only allowed in absolute tick mode; skipping")
            return
        for events in self.tracks:
            sort_events(events)

    def mark_sequence(self) -> int:
        """Number all events track by track; return the next free number."""
        sequence = 1
        for events in self.tracks:
            sequence = mark_sequence(events, sequence)
        return sequence

    def clear_sequence(self) -> None:
        for events in self.tracks:
            clear_sequence(events)

    # -- time analysis -----------------------------------------------------

    def _invalidate_time_map(self) -> None:
        self._time_map = None

    def do_time_analysis(self) -> TimeMap:
        """Build the tick/seconds map and timestamp every event.

        Runs in absolute/joined state and restores the previous state.
        """
        was_delta = self.is_delta_ticks()
        was_split = self.has_split_tracks()
        self.make_absolute_ticks()
        self.join_tracks()

        time_map = TimeMap.build(self.tracks[0], self._ticks_per_quarter_note)

        if was_split:
            self.split_tracks()
        if was_delta:
            self.make_delta_ticks()
        self._time_map = time_map
        return time_map

    @property
    def time_map(self) -> TimeMap:
        if self._time_map is None:
            return self.do_time_analysis()
        return self._time_map

    def second_at_tick(self, tick: float) -> float:
        """Seconds at absolute ``tick``; -1.0 outside the file's range."""
        return self.time_map.second_at_tick(tick)

    def tick_at_second(self, seconds: float) -> float:
        """Absolute tick at ``seconds``; -1.0 outside the file's range."""
        return self.time_map.tick_at_second(seconds)

    def time_in_seconds(self, track: int, index: int) -> float:
        event = self.get_event(track, index)
        tick = event.tick
        if self.is_delta_ticks():
            tick = absolute_ticks(self.tracks[track][: index + 1], delta=True)[-1]
        return self.second_at_tick(tick)

    def file_duration_in_ticks(self) -> int:
        if self.is_delta_ticks():
            return max(
                (sum(event.tick for event in events) for events in self.tracks),
                default=0,
            )
        return max((event.tick for events in self.tracks for event in events), default=0)

    def file_duration_in_quarters(self) -> float:
        return self.file_duration_in_ticks() / self._ticks_per_quarter_note

    def file_duration_in_seconds(self) -> float:
        return self.time_map.duration_in_seconds

    # -- linking -----------------------------------------------------------

    @property
    def has_linked_events(self) -> bool:
        return self._linked

    def link_note_pairs(self, *, zero_velocity_off: bool = False) -> int:
        """Link note and switch-controller pairs in every track.

        Returns the number of note pairs linked across all tracks.
        """
        total = sum(
            link_note_pairs(events, zero_velocity_off=zero_velocity_off)
            for events in self.tracks
        )
        self._linked = True
        return total

    link_event_pairs = link_note_pairs

    def clear_links(self) -> None:
        for events in self.tracks:
            clear_links(events)
        self._linked = False


Source = Union[str, "os.PathLike[str]", BinaryIO]


def read(source: Source) -> MidiFile:
    """Read a Standard MIDI File from a path or a binary stream.

    Raises ``OSError`` when the file cannot be opened and an ``SMFError``
    subclass when the data is not a readable SMF.
    """
    if isinstance(source, (str, os.PathLike)):
        data = Path(source).read_bytes()
    else:
        data = source.read()
    return MidiFile.from_bytes(data)


def write(target: Source, midi_file: MidiFile) -> bool:
    """Write ``midi_file`` to a path or binary stream.

    Returns ``False`` (after logging the error) when the output cannot be
    written.
    """
    data = midi_file.to_bytes()
    try:
        if isinstance(target, (str, os.PathLike)):
            Path(target).write_bytes(data)
        else:
            target.write(data)
    except OSError as exc:
        logger.error("could not write %s: %s", target, exc)
        return False
    return True


__all__ = [
    "DEFAULT_TICKS_PER_QUARTER_NOTE",
    "MAX_TICKS_PER_QUARTER_NOTE",
    "MILLISECOND_DIVISION",
    "MidiFile",
    "TickState",
    "TrackState",
    "read",
    "write",
]
