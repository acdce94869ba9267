"""Tick <-> millisecond conversion over a chart's tempo map."""

import bisect
import math

from fillscan.analysis.errors import InvalidTempoError
from fillscan.analysis.models import TempoEvent

MS_PER_MINUTE = 60000.0


def validate_tempos(tempos: list[TempoEvent]) -> None:
    """Raise InvalidTempoError unless *tempos* is a usable tempo map."""
    if not tempos:
        raise InvalidTempoError("Tempo map is empty")

    for i, tempo in enumerate(tempos):
        if tempo.tick < 0:
            raise InvalidTempoError(f"Tempo {i} has negative tick {tempo.tick}")
        if not math.isfinite(tempo.bpm) or tempo.bpm <= 0:
            raise InvalidTempoError(f"Tempo {i} has invalid BPM {tempo.bpm}")
        if i > 0:
            prev = tempos[i - 1].tick
            if tempo.tick == prev:
                raise InvalidTempoError(f"Duplicate tempo at tick {tempo.tick}")
            if tempo.tick < prev:
                raise InvalidTempoError(f"Tempos not sorted: tick {tempo.tick} after {prev}")

    if tempos[0].tick != 0:
        raise InvalidTempoError(f"First tempo must be at tick 0, got {tempos[0].tick}")


def ticks_to_ms_duration(ticks: float, bpm: float, resolution: int) -> float:
    """Duration of *ticks* at a fixed tempo."""
    return ticks / resolution * MS_PER_MINUTE / bpm


def ms_to_duration_ticks(ms: float, bpm: float, resolution: int) -> float:
    """Number of ticks spanning *ms* at a fixed tempo."""
    return ms * bpm / MS_PER_MINUTE * resolution


class TempoMap:
    """Validated tempo map with cumulative millisecond offsets.

    Each segment's start time is computed once; lookups binary-search the
    cached ticks, so conversions are O(log n) in the number of tempo events.
    The input events are copied, never modified.
    """

    def __init__(self, tempos: list[TempoEvent], resolution: int):
        if resolution <= 0:
            raise InvalidTempoError(f"Resolution must be positive, got {resolution}")
        validate_tempos(tempos)
        self.resolution = resolution

        events = []
        ms = 0.0
        for i, tempo in enumerate(tempos):
            if i > 0:
                prev = events[-1]
                ms += ticks_to_ms_duration(tempo.tick - prev.tick, prev.bpm, resolution)
            events.append(TempoEvent(tick=tempo.tick, bpm=tempo.bpm, ms_time=ms))
        self.events = events
        self._ticks = [e.tick for e in events]
        self._ms = [e.ms_time for e in events]

    def __len__(self) -> int:
        return len(self.events)

    def tempo_at_tick(self, tick: float) -> TempoEvent:
        """Tempo event in effect at *tick* (the last one at or before it)."""
        idx = bisect.bisect_right(self._ticks, tick) - 1
        return self.events[max(idx, 0)]

    def bpm_at_tick(self, tick: float) -> float:
        return self.tempo_at_tick(tick).bpm

    def tick_to_ms(self, tick: float) -> float:
        if tick <= 0:
            return 0.0
        tempo = self.tempo_at_tick(tick)
        return tempo.ms_time + ticks_to_ms_duration(tick - tempo.tick, tempo.bpm, self.resolution)

    def ms_to_tick(self, ms: float) -> float:
        if ms <= 0:
            return 0.0
        idx = max(bisect.bisect_right(self._ms, ms) - 1, 0)
        tempo = self.events[idx]
        return tempo.tick + ms_to_duration_ticks(ms - tempo.ms_time, tempo.bpm, self.resolution)

    def tick_range_to_ms(self, start_tick: float, end_tick: float) -> tuple[float, float]:
        return self.tick_to_ms(start_tick), self.tick_to_ms(end_tick)

    def tick_range_duration_ms(self, start_tick: float, end_tick: float) -> float:
        start_ms, end_ms = self.tick_range_to_ms(start_tick, end_tick)
        return end_ms - start_ms
