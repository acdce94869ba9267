"""Tests for merging candidate windows into fill segments."""

import pytest

from fillscan.analysis.fill_config import DEFAULT_CONFIG, Thresholds
from fillscan.analysis.models import AnalysisWindow, FeatureVector, FillSegment, TempoEvent
from fillscan.analysis.segments import (
    aggregate_segment,
    merge_close_spans,
    merge_windows_into_segments,
    refine_boundaries,
    remove_overlaps,
    validate_fill_segments,
)
from fillscan.analysis.tempo import TempoMap
from tests.conftest import RES

TEMPO_MAP = TempoMap([TempoEvent(0, 120.0)], RES)
THRESHOLDS = DEFAULT_CONFIG.thresholds


def _window(k, candidate=True, **features):
    window = AnalysisWindow(k * 48, k * 48 + RES, 0.0, 0.0, features=FeatureVector(**features))
    window.is_candidate = candidate
    return window


def _segment(start, end, song="song", groove_dist=1.0, confidence=0.5):
    return FillSegment(
        song_id=song,
        start_tick=start,
        end_tick=end,
        start_ms=TEMPO_MAP.tick_to_ms(start),
        end_ms=TEMPO_MAP.tick_to_ms(end),
        groove_dist=groove_dist,
        confidence=confidence,
    )


def test_close_spans_merge():
    a, b, c = _window(0), _window(2), _window(10)
    merged = merge_close_spans([(0, 100, [a]), (120, 200, [b]), (500, 600, [c])], 0.25 * RES)
    assert merged == [(0, 200, [a, b]), (500, 600, [c])]


def test_zero_gap_merges_only_touching_spans():
    a, b, c = _window(0), _window(2), _window(10)
    merged = merge_close_spans([(0, 100, [a]), (100, 200, [b]), (201, 300, [c])], 0)
    assert [(start, end) for start, end, _ in merged] == [(0, 200), (201, 300)]


def test_aggregate_means_and_flags():
    windows = [
        _window(0, note_density=2.0, groove_dist=1.0, same_pad_burst=True),
        _window(1, note_density=4.0, groove_dist=3.0),
    ]
    windows[0].confidence = 0.2
    windows[1].confidence = 0.6
    seg = aggregate_segment(windows, 0, 48 + RES, "song", TEMPO_MAP)
    assert seg.start_tick == 0
    assert seg.end_tick == 48 + RES
    assert seg.end_ms == pytest.approx(625.0)
    assert seg.note_density == pytest.approx(3.0)
    assert seg.groove_dist == pytest.approx(2.0)
    assert seg.confidence == pytest.approx(0.4)
    assert seg.same_pad_burst
    assert not seg.crash_resolve


def test_refine_snaps_to_beats():
    seg = refine_boundaries(_segment(3024, 3792), RES, TEMPO_MAP, THRESHOLDS)
    assert (seg.start_tick, seg.end_tick) == (3072, 3840)
    assert seg.start_ms == pytest.approx(8000.0)
    assert seg.end_ms == pytest.approx(10000.0)


def test_refine_keeps_bounds_when_snap_collapses():
    original = _segment(100, 250)
    assert refine_boundaries(original, RES, TEMPO_MAP, THRESHOLDS) is original


def test_refine_keeps_bounds_when_snap_too_long():
    thresholds = Thresholds(max_beats=3.5)
    # 3.4 beats would snap to 0-768, a full 4 beats
    original = _segment(80, 733)
    assert refine_boundaries(original, RES, TEMPO_MAP, thresholds) is original


def test_overlap_keeps_larger_groove_distance():
    a = _segment(0, 768, groove_dist=1.0)
    b = _segment(384, 1152, groove_dist=4.0)
    assert remove_overlaps([a, b]) == [b]


def test_overlap_tie_uses_confidence_then_order():
    a = _segment(0, 768, confidence=0.5)
    b = _segment(384, 1152, confidence=0.9)
    c = _segment(384, 1152, confidence=0.5)
    assert remove_overlaps([a, b]) == [b]
    assert remove_overlaps([a, c]) == [a]


def test_overlap_only_within_a_song():
    a = _segment(0, 768, song="a")
    b = _segment(384, 1152, song="b")
    assert remove_overlaps([b, a]) == [a, b]


def test_merge_windows_into_segments():
    windows = [_window(k, candidate=False) for k in range(80)]
    for k in list(range(10, 16)) + list(range(40, 48)):
        windows[k].is_candidate = True
    segments = merge_windows_into_segments(windows, "song", RES, TEMPO_MAP, DEFAULT_CONFIG)
    assert [(s.start_tick, s.end_tick) for s in segments] == [(576, 768), (1920, 2304)]
    for seg in segments:
        beats = (seg.end_tick - seg.start_tick) / RES
        assert THRESHOLDS.min_beats <= beats <= THRESHOLDS.max_beats
        assert seg.start_tick % RES == 0


def test_one_bar_fill_flagged_by_overlapping_windows():
    windows = [_window(k, candidate=62 <= k < 80) for k in range(100)]
    segments = merge_windows_into_segments(windows, "song", RES, TEMPO_MAP, DEFAULT_CONFIG)
    assert [(s.start_tick, s.end_tick) for s in segments] == [(3072, 3840)]
    assert segments[0].duration_ms == pytest.approx(2000.0)


def test_validate_accepts_clean_segments():
    report = validate_fill_segments([_segment(0, 768), _segment(768, 1536)])
    assert report.is_valid
    assert report.warnings == []


def test_validate_reports_problems():
    report = validate_fill_segments([
        _segment(0, 768),
        _segment(384, 1152),
        _segment(2000, 1900),
        _segment(3000, 3000 + 50 * RES),
    ])
    assert not report.is_valid
    assert any("Overlapping" in e for e in report.errors)
    assert any("start tick" in e for e in report.errors)
    assert any("very long" in w for w in report.warnings)
