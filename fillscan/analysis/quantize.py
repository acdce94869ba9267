"""Grid and beat arithmetic on chart ticks."""

import math


def ticks_to_beats(ticks: float, resolution: int) -> float:
    return ticks / resolution


def beats_to_ticks(beats: float, resolution: int) -> float:
    return beats * resolution


def grid_size(resolution: int, quant_div: int) -> int:
    """Ticks per grid cell when a beat is split into *quant_div* cells."""
    return max(1, resolution // quant_div)


def snap_to_beat(tick: float, resolution: int) -> int:
    """Snap *tick* to the nearest whole beat (ties round up)."""
    return int(math.floor(tick / resolution + 0.5)) * resolution


def snap_span(start_tick: float, end_tick: float, resolution: int) -> tuple[float, float]:
    """Snap both ends of a span to the nearest beat.

    The span is returned as given when snapping would collapse or invert it.
    """
    start = snap_to_beat(start_tick, resolution)
    end = snap_to_beat(end_tick, resolution)
    if end <= start:
        return start_tick, end_tick
    return start, end


def window_boundaries(
    start_tick: float,
    end_tick: float,
    window_beats: float,
    stride_beats: float,
    resolution: int,
) -> list[tuple[float, float]]:
    """(start, end) tick pairs of every window that fits inside [start_tick, end_tick].

    Starts are computed as ``start + k * stride`` rather than accumulated so
    fractional strides do not drift.
    """
    window_ticks = beats_to_ticks(window_beats, resolution)
    stride_ticks = beats_to_ticks(stride_beats, resolution)
    bounds = []
    k = 0
    while True:
        start = start_tick + k * stride_ticks
        end = start + window_ticks
        if end > end_tick:
            break
        bounds.append((start, end))
        k += 1
    return bounds
