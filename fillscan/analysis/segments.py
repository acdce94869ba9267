"""Turning candidate windows into non-overlapping fill segments."""

import logging
import math
from dataclasses import dataclass, field, replace

import numpy as np

from fillscan.analysis.candidates import candidate_runs, run_extent, run_fits, within_duration
from fillscan.analysis.fill_config import FillConfig, Thresholds
from fillscan.analysis.models import AnalysisWindow, FillSegment
from fillscan.analysis.quantize import beats_to_ticks, snap_span
from fillscan.analysis.tempo import TempoMap

logger = logging.getLogger(__name__)

CONTINUOUS_FIELDS = (
    "note_density",
    "density_z",
    "tom_ratio_jump",
    "hat_dropout",
    "kick_drop",
    "ioi_std_z",
    "ngram_novelty",
    "groove_dist",
)
BOOLEAN_FIELDS = ("same_pad_burst", "crash_resolve")

# Diagnostic limits for validate_fill_segments
LONG_FILL_MS = 10000.0
SHORT_FILL_MS = 100.0

# (start_tick, end_tick, windows)
Span = tuple[float, float, list[AnalysisWindow]]


def merge_close_spans(spans: list[Span], gap_ticks: float) -> list[Span]:
    """Join neighbouring spans separated by at most *gap_ticks*."""
    if not spans:
        return []
    start, end, windows = spans[0]
    merged = [(start, end, list(windows))]
    for start, end, windows in spans[1:]:
        prev_start, prev_end, prev_windows = merged[-1]
        if start - prev_end <= gap_ticks:
            merged[-1] = (prev_start, max(prev_end, end), prev_windows + list(windows))
        else:
            merged.append((start, end, list(windows)))
    return merged


def aggregate_segment(
    windows: list[AnalysisWindow],
    start_tick: float,
    end_tick: float,
    song_id: str,
    tempo_map: TempoMap,
) -> FillSegment:
    """Collapse a group of windows spanning [start_tick, end_tick) into one segment.

    Continuous features are averaged and boolean ones ORed.
    """
    start_ms, end_ms = tempo_map.tick_range_to_ms(start_tick, end_tick)

    values = {
        name: float(np.mean([getattr(w.features, name) for w in windows]))
        for name in CONTINUOUS_FIELDS
    }
    flags = {name: any(getattr(w.features, name) for w in windows) for name in BOOLEAN_FIELDS}

    return FillSegment(
        song_id=song_id,
        start_tick=start_tick,
        end_tick=end_tick,
        start_ms=start_ms,
        end_ms=end_ms,
        confidence=float(np.mean([w.confidence for w in windows])),
        **values,
        **flags,
    )


def refine_boundaries(
    segment: FillSegment,
    resolution: int,
    tempo_map: TempoMap,
    thresholds: Thresholds,
) -> FillSegment:
    """Snap both bounds to the nearest beat.

    The segment is returned unchanged when snapping would collapse it or
    move its length outside the duration bounds.
    """
    start, end = snap_span(segment.start_tick, segment.end_tick, resolution)
    if (start, end) == (segment.start_tick, segment.end_tick):
        return segment
    if not within_duration(start, end, resolution, thresholds):
        return segment
    start_ms, end_ms = tempo_map.tick_range_to_ms(start, end)
    return replace(segment, start_tick=start, end_tick=end, start_ms=start_ms, end_ms=end_ms)


def _sort_key(segment: FillSegment):
    return (segment.song_id, segment.start_tick)


def _outranks(candidate: FillSegment, incumbent: FillSegment) -> bool:
    """True if *candidate* should replace an overlapping *incumbent*."""
    return (candidate.groove_dist, candidate.confidence) > (incumbent.groove_dist, incumbent.confidence)


def remove_overlaps(segments: list[FillSegment]) -> list[FillSegment]:
    """Resolve overlaps within a song, keeping the larger groove distance.

    Equal distances fall back to confidence, then to the earlier segment.
    """
    kept: list[FillSegment] = []
    for segment in sorted(segments, key=_sort_key):
        if kept and kept[-1].song_id == segment.song_id and segment.start_tick < kept[-1].end_tick:
            if _outranks(segment, kept[-1]):
                kept[-1] = segment
            continue
        kept.append(segment)
    return kept


def merge_windows_into_segments(
    windows: list[AnalysisWindow],
    song_id: str,
    resolution: int,
    tempo_map: TempoMap,
    config: FillConfig,
) -> list[FillSegment]:
    """Group, merge, filter, aggregate and tidy candidate windows into fills.

    Runs are measured by their extent (see ``run_extent``), not by the
    outer edges of their overlapping windows.
    """
    thresholds = config.thresholds
    stride_ticks = beats_to_ticks(config.stride_beats, resolution)
    spans = [(*run_extent(run, windows, stride_ticks), run) for run in candidate_runs(windows)]
    spans = merge_close_spans(spans, beats_to_ticks(thresholds.merge_gap_beats, resolution))
    spans = [s for s in spans if run_fits(s[0], s[1], resolution, thresholds)]

    segments = [aggregate_segment(run, start, end, song_id, tempo_map) for start, end, run in spans]
    segments = [refine_boundaries(s, resolution, tempo_map, thresholds) for s in segments]
    segments = remove_overlaps(segments)
    logger.debug(f"{len(segments)} fill segments from {len(spans)} candidate spans")
    return sorted(segments, key=_sort_key)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclass
class SegmentReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_fill_segments(segments: list[FillSegment]) -> SegmentReport:
    """Check a list of fills for structural problems.

    Errors: inverted or negative bounds, overlaps within a song, non-finite
    features. Warnings: unusually long or short fills.
    """
    report = SegmentReport()
    for i, seg in enumerate(segments):
        label = f"Segment {i} ({seg.song_id})"
        if seg.start_tick >= seg.end_tick:
            report.errors.append(f"{label}: start tick {seg.start_tick} >= end tick {seg.end_tick}")
        if seg.start_ms >= seg.end_ms:
            report.errors.append(f"{label}: start ms {seg.start_ms} >= end ms {seg.end_ms}")
        if seg.start_tick < 0 or seg.start_ms < 0:
            report.errors.append(f"{label}: negative start")
        for name in CONTINUOUS_FIELDS + ("confidence",):
            if not math.isfinite(getattr(seg, name)):
                report.errors.append(f"{label}: {name} is not finite")

        duration = seg.duration_ms
        if duration > LONG_FILL_MS:
            report.warnings.append(f"{label}: very long fill ({duration:.0f}ms)")
        elif 0 < duration < SHORT_FILL_MS:
            report.warnings.append(f"{label}: very short fill ({duration:.0f}ms)")

    ordered = sorted(segments, key=_sort_key)
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.song_id == cur.song_id and cur.start_tick < prev.end_tick:
            report.errors.append(
                f"Overlapping fills in {cur.song_id}: {prev.start_tick}-{prev.end_tick} "
                f"and {cur.start_tick}-{cur.end_tick}"
            )
    return report
