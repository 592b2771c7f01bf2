"""Tick <-> seconds mapping under tempo changes.

The map holds one sample per distinct absolute tick found in a joined,
time-sorted event list.  Tempo meta events change the seconds-per-tick
rate from their own tick onwards; before the first tempo event the rate
is 120 BPM.  Queries between samples are linearly interpolated; queries
outside the sampled range return -1.0 rather than extrapolating.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import List, Sequence

from .event import Event

logger = logging.getLogger(__name__)

DEFAULT_TEMPO_BPM = 120.0
OUT_OF_RANGE = -1.0


@dataclass(frozen=True)
class TimeMapSample:
    tick: int
    seconds: float


@dataclass
class TimeMap:
    samples: List[TimeMapSample] = field(default_factory=list)
    _ticks: List[int] = field(init=False, repr=False)
    _seconds: List[float] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._ticks = [sample.tick for sample in self.samples]
        self._seconds = [sample.seconds for sample in self.samples]

    def __len__(self) -> int:
        return len(self.samples)

    @classmethod
    def build(
        cls,
        events: Sequence[Event],
        ticks_per_quarter_note: int,
        *,
        default_tempo_bpm: float = DEFAULT_TEMPO_BPM,
    ) -> "TimeMap":
        """Walk ``events`` (absolute ticks, time order) and timestamp each one.

        Every event gets its ``seconds`` field set.  A tempo event only
        affects the time of later ticks, never its own.
        """
        if ticks_per_quarter_note <= 0:
            raise ValueError(
                f"ticks per quarter note must be positive, got {ticks_per_quarter_note}"
            )
        seconds_per_tick = 60.0 / (default_tempo_bpm * ticks_per_quarter_note)
        samples: List[TimeMapSample] = []
        last_tick = 0
        last_seconds = 0.0
        current = 0.0

        for event in events:
            tick = event.tick
            if not samples or tick > last_tick:
                current = last_seconds + (tick - last_tick) * seconds_per_tick
                samples.append(TimeMapSample(tick=tick, seconds=current))
                last_tick = tick
                last_seconds = current
            event.seconds = current

            if event.is_tempo():
                seconds_per_tick = event.tempo_spt(ticks_per_quarter_note)

        logger.debug("built time map with %d samples", len(samples))
        return cls(samples)

    @property
    def duration_in_seconds(self) -> float:
        if not self.samples:
            return 0.0
        return self.samples[-1].seconds

    def second_at_tick(self, tick: float) -> float:
        """Return the time in seconds of ``tick``, or -1.0 when out of range."""
        if not self.samples or tick < 0 or tick > self._ticks[-1]:
            return OUT_OF_RANGE
        index = bisect_left(self._ticks, tick)
        if self._ticks[index] == tick:
            return self._seconds[index]
        if index == 0:
            return OUT_OF_RANGE
        x1, x2 = self._ticks[index - 1], self._ticks[index]
        y1, y2 = self._seconds[index - 1], self._seconds[index]
        return (tick - x1) * ((y2 - y1) / (x2 - x1)) + y1

    def tick_at_second(self, seconds: float) -> float:
        """Return the (fractional) tick at ``seconds``, or -1.0 when out of range."""
        if not self.samples or seconds < 0 or seconds > self._seconds[-1]:
            return OUT_OF_RANGE
        index = bisect_left(self._seconds, seconds)
        if self._seconds[index] == seconds:
            return float(self._ticks[index])
        if index == 0:
            return OUT_OF_RANGE
        x1, x2 = self._seconds[index - 1], self._seconds[index]
        y1, y2 = self._ticks[index - 1], self._ticks[index]
        return (seconds - x1) * ((y2 - y1) / (x2 - x1)) + y1


__all__ = [
    "DEFAULT_TEMPO_BPM",
    "OUT_OF_RANGE",
    "TimeMap",
    "TimeMapSample",
]
