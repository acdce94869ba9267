"""Sliding analysis windows over the drum note stream."""

import bisect
import logging

from fillscan.analysis.models import AnalysisWindow, NoteEvent
from fillscan.analysis.quantize import window_boundaries
from fillscan.analysis.tempo import TempoMap

logger = logging.getLogger(__name__)


def build_windows(
    notes: list[NoteEvent],
    start_tick: float,
    end_tick: float,
    window_beats: float,
    stride_beats: float,
    resolution: int,
    tempo_map: TempoMap,
) -> list[AnalysisWindow]:
    """Cut *notes* (sorted by tick) into overlapping windows.

    A window covers ``[start, start + window_beats)`` and only windows that end
    at or before *end_tick* are produced.
    """
    if not notes:
        return []

    ticks = [n.tick for n in notes]
    windows = []
    for start, end in window_boundaries(start_tick, end_tick, window_beats, stride_beats, resolution):
        lo = bisect.bisect_left(ticks, start)
        hi = bisect.bisect_left(ticks, end)
        start_ms, end_ms = tempo_map.tick_range_to_ms(start, end)
        windows.append(AnalysisWindow(
            start_tick=start,
            end_tick=end,
            start_ms=start_ms,
            end_ms=end_ms,
            notes=notes[lo:hi],
        ))

    logger.debug(f"Built {len(windows)} windows over ticks {start_tick}-{end_tick}")
    return windows
