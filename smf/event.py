from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .message import Message, MessageView


@dataclass(eq=False)
class Event(MessageView):
    """A message placed in time within a track.

    ``tick`` is delta or absolute depending on the owning file's tick state.
    ``track`` is the track the event was read from (kept through joins).
    ``seconds`` is only meaningful after a time analysis.
    ``sequence`` breaks ties between events on the same tick; 0 means unset.

    Events compare by identity so that links and list removal always refer
    to one specific event.
    """

    message: Message = field(default_factory=Message)
    tick: int = 0
    track: int = 0
    seconds: float = 0.0
    sequence: int = 0
    _linked: Optional["Event"] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.message, Message):
            self.message = Message(bytearray(self.message))

    @classmethod
    def from_bytes(
        cls, data: bytes | bytearray | Iterable[int], *, tick: int = 0, track: int = 0
    ) -> "Event":
        return cls(Message(bytearray(data)), tick=tick, track=track)

    @property
    def data(self) -> bytearray:  # type: ignore[override]
        return self.message.data

    def copy(self) -> "Event":
        """Return an unlinked copy with its own message buffer."""
        return Event(
            self.message.copy(),
            tick=self.tick,
            track=self.track,
            seconds=self.seconds,
            sequence=self.sequence,
        )

    # -- linking ---------------------------------------------------------

    @property
    def linked_event(self) -> Optional["Event"]:
        return self._linked

    def is_linked(self) -> bool:
        return self._linked is not None

    def link_event(self, other: "Event") -> None:
        """Pair this event with ``other`` in both directions.

        Any existing partner of either event is released first.
        """
        if other is self:
            raise ValueError("an event cannot be linked to itself")
        other.unlink_event()
        self.unlink_event()
        self._linked = other
        other._linked = self

    def unlink_event(self) -> None:
        partner = self._linked
        if partner is None:
            return
        self._linked = None
        if partner._linked is self:
            partner._linked = None

    @property
    def tick_duration(self) -> int:
        """Absolute tick distance to the linked event, 0 if unlinked."""
        if self._linked is None:
            return 0
        return abs(self._linked.tick - self.tick)

    @property
    def duration_in_seconds(self) -> float:
        """Distance in seconds to the linked event, 0.0 if unlinked.

        Requires a time analysis; before that both sides read 0.0.
        """
        if self._linked is None:
            return 0.0
        return abs(self._linked.seconds - self.seconds)


__all__ = ["Event"]
