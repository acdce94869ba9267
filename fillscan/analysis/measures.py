"""Measure lookup from a chart's time signatures."""

import math
from dataclasses import dataclass, replace

from fillscan.analysis.models import FillSegment, TimeSignature
from fillscan.analysis.tempo import TempoMap


@dataclass
class MeasureInfo:
    number: int  # 1-based
    start_tick: float
    end_tick: float


def normalize_time_signatures(time_signatures: list[TimeSignature]) -> list[TimeSignature]:
    """Sorted, usable signatures with a 4/4 default at tick 0."""
    usable = sorted(
        (ts for ts in time_signatures if ts.numerator > 0 and ts.denominator > 0 and ts.tick >= 0),
        key=lambda ts: ts.tick,
    )
    if not usable or usable[0].tick > 0:
        usable.insert(0, TimeSignature(tick=0))
    return usable


def measure_ticks(ts: TimeSignature, resolution: int) -> float:
    return resolution * 4 * ts.numerator / ts.denominator


def _measure_in(ts: TimeSignature, tick: float, first_number: int, next_tick: float, resolution: int) -> MeasureInfo:
    length = measure_ticks(ts, resolution)
    n = max(0, int((tick - ts.tick) // length))
    start = ts.tick + n * length
    return MeasureInfo(first_number + n, start, min(start + length, next_tick))


def measure_at_tick(tick: float, time_signatures: list[TimeSignature], resolution: int) -> MeasureInfo:
    """The measure containing *tick*. A signature change always starts a new measure."""
    signatures = normalize_time_signatures(time_signatures)
    first_number = 1
    for ts, nxt in zip(signatures, signatures[1:]):
        if tick < nxt.tick:
            return _measure_in(ts, tick, first_number, nxt.tick, resolution)
        first_number += math.ceil((nxt.tick - ts.tick) / measure_ticks(ts, resolution))
    return _measure_in(signatures[-1], tick, first_number, math.inf, resolution)


def annotate_measures(
    segments: list[FillSegment],
    time_signatures: list[TimeSignature],
    resolution: int,
    tempo_map: TempoMap,
) -> list[FillSegment]:
    """Copies of *segments* with the measure their start falls in."""
    annotated = []
    for seg in segments:
        measure = measure_at_tick(seg.start_tick, time_signatures, resolution)
        start_ms, end_ms = tempo_map.tick_range_to_ms(measure.start_tick, measure.end_tick)
        annotated.append(replace(
            seg,
            measure_number=measure.number,
            measure_start_tick=measure.start_tick,
            measure_end_tick=measure.end_tick,
            measure_start_ms=start_ms,
            measure_end_ms=end_ms,
        ))
    return annotated
