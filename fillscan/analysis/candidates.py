"""Rule-based fill candidate detection over featured windows.

Rules are plain ``(name, weight, predicate)`` records evaluated in order.
A window becomes a candidate when any primary rule fires; every firing rule
adds its weight to the window's confidence, which is clamped to [0, 1].
"""

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np

from fillscan.analysis.fill_config import FillConfig, Thresholds
from fillscan.analysis.features import MIN_RATIO_NOTES
from fillscan.analysis.models import AnalysisWindow
from fillscan.analysis.quantize import beats_to_ticks, snap_span, ticks_to_beats

logger = logging.getLogger(__name__)

VERY_DENSE_NOTES_PER_BEAT = 8.0
TOM_HEAVY_RATIO = 0.6
# Isolated candidates survive only above these
ISOLATED_DENSITY_Z = 2.0
ISOLATED_DENSITY = 10.0
ISOLATED_DIST_FACTOR = 2.0


@dataclass(frozen=True)
class Rule:
    name: str
    weight: float
    predicate: Callable[[AnalysisWindow, Thresholds], bool]
    primary: bool = False


# ---------------------------------------------------------------------------
# Primary rules
# ---------------------------------------------------------------------------

def _dense_and_off_groove(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.density_z > t.density_z and w.features.groove_dist > t.dist


def _tom_jump(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.tom_ratio_jump > t.tom_jump


def _very_dense(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.note_density > VERY_DENSE_NOTES_PER_BEAT


def _tom_heavy_while_dense(w: AnalysisWindow, t: Thresholds) -> bool:
    return (
        w.stats.note_count >= MIN_RATIO_NOTES
        and w.stats.tom_ratio > TOM_HEAVY_RATIO
        and w.features.density_z > 0.5 * t.density_z
    )


# ---------------------------------------------------------------------------
# Secondary rules (confidence only)
# ---------------------------------------------------------------------------

def _hat_dropout(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.hat_dropout > 0.5


def _kick_drop(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.kick_drop > 0.3


def _irregular_timing(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.ioi_std_z > 1.5


def _novel_pattern(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.ngram_novelty > 0.5


def _burst(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.same_pad_burst


def _crash_resolve(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.crash_resolve


def _dense_tom_combo(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.density_z > 0.8 and w.features.tom_ratio_jump > 1.2


def _groove_dropout(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.hat_dropout > 0.3 and w.features.kick_drop > 0.2


def _irregular_burst(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.same_pad_burst and w.features.ioi_std_z > 0.8


def _low_activity(w: AnalysisWindow, t: Thresholds) -> bool:
    return w.features.note_density < 1.0 and w.features.groove_dist < 1.0


RULES: tuple[Rule, ...] = (
    Rule("High density with groove deviation", 0.4, _dense_and_off_groove, primary=True),
    Rule("Tom ratio jump", 0.3, _tom_jump, primary=True),
    Rule("Very high note density", 0.35, _very_dense, primary=True),
    Rule("Tom-heavy dense passage", 0.25, _tom_heavy_while_dense, primary=True),
    Rule("Hi-hat dropout", 0.1, _hat_dropout),
    Rule("Kick drop", 0.1, _kick_drop),
    Rule("Irregular timing", 0.1, _irregular_timing),
    Rule("Novel pattern", 0.1, _novel_pattern),
    Rule("Same-pad burst", 0.2, _burst),
    Rule("Crash resolution", 0.1, _crash_resolve),
    Rule("Density and tom combination", 0.2, _dense_tom_combo),
    Rule("Groove dropout", 0.15, _groove_dropout),
    Rule("Irregular burst", 0.2, _irregular_burst),
    Rule("Low activity", -0.2, _low_activity),
)


def evaluate_window(window: AnalysisWindow, thresholds: Thresholds, rules: tuple[Rule, ...] = RULES) -> None:
    """Apply *rules* to one window, setting ``is_candidate``, ``confidence`` and ``reasons``."""
    is_candidate = False
    confidence = 0.0
    reasons = []
    for rule in rules:
        if not rule.predicate(window, thresholds):
            continue
        confidence += rule.weight
        reasons.append(rule.name)
        if rule.primary:
            is_candidate = True

    window.is_candidate = is_candidate
    window.confidence = float(np.clip(confidence, 0.0, 1.0))
    window.reasons = reasons


def detect_candidates(windows: list[AnalysisWindow], config: FillConfig) -> list[AnalysisWindow]:
    """Evaluate every window; returns the candidates in window order."""
    for window in windows:
        evaluate_window(window, config.thresholds)
    return [w for w in windows if w.is_candidate]


def candidate_runs(windows: list[AnalysisWindow]) -> list[list[AnalysisWindow]]:
    """Maximal runs of consecutive candidate windows."""
    runs = []
    current: list[AnalysisWindow] = []
    for window in windows:
        if window.is_candidate:
            current.append(window)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def _is_extreme(window: AnalysisWindow, thresholds: Thresholds) -> bool:
    f = window.features
    return (
        f.density_z > ISOLATED_DENSITY_Z
        or f.note_density > ISOLATED_DENSITY
        or f.groove_dist > ISOLATED_DIST_FACTOR * thresholds.dist
    )


def run_extent(
    run: list[AnalysisWindow],
    windows: list[AnalysisWindow],
    stride_ticks: float,
) -> tuple[float, float]:
    """Tick span a run of candidate windows stands for.

    Each window stands for the stride-wide cell at its centre, so a run of n
    windows covers n strides. A run touching either end of the song extends
    to the outer edge of its first or last window.
    """
    first, last = run[0], run[-1]
    width = last.end_tick - last.start_tick
    cell = min(stride_ticks, width)
    lead = (width - cell) / 2
    start = first.start_tick if first is windows[0] else first.start_tick + lead
    end = last.end_tick if last is windows[-1] else last.start_tick + lead + cell
    return start, end


def within_duration(start_tick: float, end_tick: float, resolution: int, thresholds: Thresholds) -> bool:
    beats = ticks_to_beats(end_tick - start_tick, resolution)
    return thresholds.min_beats <= beats <= thresholds.max_beats


def run_fits(start_tick: float, end_tick: float, resolution: int, thresholds: Thresholds) -> bool:
    """True if a span is at least ``min_beats`` long as played and within bounds once snapped to beats."""
    if ticks_to_beats(end_tick - start_tick, resolution) < thresholds.min_beats:
        return False
    return within_duration(*snap_span(start_tick, end_tick, resolution), resolution, thresholds)


def drop_isolated_candidates(windows: list[AnalysisWindow], thresholds: Thresholds) -> None:
    """Clear candidates with no candidate neighbour unless they are extreme."""
    isolated = [
        window for i, window in enumerate(windows)
        if window.is_candidate
        and not (i > 0 and windows[i - 1].is_candidate)
        and not (i + 1 < len(windows) and windows[i + 1].is_candidate)
        and not _is_extreme(window, thresholds)
    ]
    for window in isolated:
        window.is_candidate = False


def drop_out_of_bounds_runs(windows: list[AnalysisWindow], config: FillConfig, resolution: int) -> None:
    """Clear whole runs whose extent cannot make a fill of allowed length."""
    stride_ticks = beats_to_ticks(config.stride_beats, resolution)
    for run in candidate_runs(windows):
        start, end = run_extent(run, windows, stride_ticks)
        if not run_fits(start, end, resolution, config.thresholds):
            logger.debug(f"Dropping candidate run {start:.0f}-{end:.0f}: outside duration bounds")
            for window in run:
                window.is_candidate = False


def post_process_candidates(windows: list[AnalysisWindow], config: FillConfig, resolution: int) -> None:
    """Clear candidate flags that cannot form a plausible fill."""
    drop_isolated_candidates(windows, config.thresholds)
    drop_out_of_bounds_runs(windows, config, resolution)


def candidate_statistics(windows: list[AnalysisWindow]) -> dict:
    """Counts and confidence summary of the current candidate flags."""
    candidates = [w for w in windows if w.is_candidate]
    reason_counts: dict[str, int] = {}
    for window in candidates:
        for reason in window.reasons:
            reason_counts[reason] = reason_counts.get(reason, 0) + 1
    return {
        "total_windows": len(windows),
        "candidate_windows": len(candidates),
        "candidate_ratio": len(candidates) / len(windows) if windows else 0.0,
        "mean_confidence": float(np.mean([w.confidence for w in candidates])) if candidates else 0.0,
        "runs": len(candidate_runs(windows)),
        "reasons": reason_counts,
    }
