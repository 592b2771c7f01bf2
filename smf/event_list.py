"""Operations over a single track's list of events.

These functions know nothing about delta/absolute tick state; ``MidiFile``
tracks that and only calls the ordering helpers when ticks are absolute.
"""

from __future__ import annotations

from collections import defaultdict
from functools import cmp_to_key
from typing import Dict, List, MutableSequence, Tuple

from .event import Event

# General MIDI controllers that behave as on/off switches:
# 0..63 = off, 64..127 = on.
SWITCH_CONTROLLERS = frozenset(
    {
        64,  # hold pedal (sustain)
        65,  # portamento
        66,  # sostenuto
        67,  # soft pedal
        68,  # legato
        69,  # hold 2
        *range(80, 91),  # general purpose buttons / undefined switches
        122,  # local keyboard
    }
)


def link_note_pairs(
    events: MutableSequence[Event], *, zero_velocity_off: bool = False
) -> int:
    """Link note-ons to note-offs, and switch controllers on to off.

    ``events`` must be in time order.  When notes overlap on the same
    channel and key, the first note-off closes the most recent note-on.
    A note-off with no pending note-on is ignored.  Existing links on
    every visited event are cleared first, so re-running gives the same
    result.

    Parameters
    ----------
    events : MutableSequence[Event]
        One track, sorted by absolute tick.
    zero_velocity_off : bool
        Also treat a note-on with velocity 0 as a note-off.  Off by
        default: only explicit 0x80 status closes a note.

    Returns
    -------
    int
        Number of note-on/note-off pairs created.  Controller pairs are
        linked but not counted.
    """
    pending_notes: Dict[Tuple[int, int], List[Event]] = defaultdict(list)
    # (controller, channel) -> [last state (None = unseen), on-event]
    switch_state: Dict[Tuple[int, int], List] = {}
    count = 0

    for event in events:
        event.unlink_event()
        if event.is_note_on():
            pending_notes[(event.channel, event.key_number)].append(event)
        elif event.is_note_off() or (
            zero_velocity_off and event.is_note() and event.velocity == 0
        ):
            stack = pending_notes.get((event.channel, event.key_number))
            if stack:
                stack.pop().link_event(event)
                count += 1
        elif event.is_controller() and event.controller_number in SWITCH_CONTROLLERS:
            key = (event.controller_number, event.channel)
            is_on = event.controller_value >= 64
            state = switch_state.setdefault(key, [None, None])
            previous = state[0]
            if previous == is_on:
                continue  # redundant state change
            if is_on:
                state[0] = True
                state[1] = event
            elif previous:
                state[1].link_event(event)
                state[0] = False
                state[1] = event
    return count


def clear_links(events: MutableSequence[Event]) -> None:
    for event in events:
        event.unlink_event()


def mark_sequence(events: MutableSequence[Event], start: int = 1) -> int:
    """Number events in list order from ``start``; return the next free number."""
    sequence = start
    for event in events:
        event.sequence = sequence
        sequence += 1
    return sequence


def clear_sequence(events: MutableSequence[Event]) -> None:
    for event in events:
        event.sequence = 0


def remove_empties(events: MutableSequence[Event]) -> int:
    """Drop events whose message buffer is empty; return how many were removed.

    Removed events are unlinked so no surviving event points at them.
    """
    kept: List[Event] = []
    removed = 0
    for event in events:
        if event.is_empty():
            event.unlink_event()
            removed += 1
        else:
            kept.append(event)
    events[:] = kept
    return removed


def _category(event: Event) -> int:
    """Same-tick ordering group for non-meta events: other < note-off < note-on."""
    if event.is_note_on():
        return 2
    if event.is_note():
        return 1
    return 0


def event_compare(a: Event, b: Event) -> int:
    """Three-way comparison used to sort a track.

    Ties on tick are broken, in order, by: both sequence numbers when both
    are set, end-of-track last, meta before other messages, note-ons after
    everything, note-offs (including zero-velocity note-ons) after
    everything but note-ons, and controllers by number then value.
    """
    if a.tick != b.tick:
        return -1 if a.tick < b.tick else 1
    if a.sequence and b.sequence and a.sequence != b.sequence:
        return -1 if a.sequence < b.sequence else 1

    a_end = a.is_end_of_track()
    b_end = b.is_end_of_track()
    if a_end != b_end:
        return 1 if a_end else -1
    if a_end:
        return 0

    a_meta = a.is_meta()
    b_meta = b.is_meta()
    if a_meta != b_meta:
        return -1 if a_meta else 1
    if a_meta:
        return 0

    a_cat = _category(a)
    b_cat = _category(b)
    if a_cat != b_cat:
        return -1 if a_cat < b_cat else 1

    if a.is_controller() and b.is_controller():
        a_key = (a.p1, a.p2)
        b_key = (b.p1, b.p2)
        if a_key != b_key:
            return -1 if a_key < b_key else 1
    return 0


def sort_events(events: MutableSequence[Event]) -> None:
    """Sort one track in place with ``event_compare``; equal events keep their order."""
    events[:] = sorted(events, key=cmp_to_key(event_compare))


__all__ = [
    "SWITCH_CONTROLLERS",
    "clear_links",
    "clear_sequence",
    "event_compare",
    "link_note_pairs",
    "mark_sequence",
    "remove_empties",
    "sort_events",
]
