"""Per-window feature extraction against a causal rolling baseline."""

import logging

import numpy as np

from fillscan.analysis.fill_config import FillConfig
from fillscan.analysis.models import AnalysisWindow, FeatureVector, NoteEvent, WindowStats
from fillscan.analysis.novelty import PatternCache, extract_ngram_patterns, novelty_score
from fillscan.analysis.voices import DrumVoice, count_voices, note_voice

logger = logging.getLogger(__name__)

# Voice ratios of windows with fewer hits than this are left neutral
MIN_RATIO_NOTES = 3
# Stand-in baseline when no toms were heard in the lookback
TOM_BASELINE_FLOOR = 0.05
MIN_BURST_HITS = 3
STD_EPSILON = 1e-9


def compute_window_stats(window: AnalysisWindow, resolution: int) -> WindowStats:
    """Window-local counts, voice fractions and IOI spread."""
    notes = window.notes
    n = len(notes)
    if n == 0:
        return WindowStats()

    beats = (window.end_tick - window.start_tick) / resolution
    voices = count_voices(notes)
    times = [note.ms_time for note in notes]
    iois = [b - a for a, b in zip(times, times[1:]) if b - a > 0]

    return WindowStats(
        note_count=n,
        note_density=n / beats,
        tom_ratio=voices[DrumVoice.TOM] / n,
        hat_ratio=voices[DrumVoice.HAT] / n,
        kick_ratio=voices[DrumVoice.KICK] / n,
        cymbal_count=voices[DrumVoice.CYMBAL],
        ioi_std=float(np.std(iois)) if iois else 0.0,
    )


def zscore(value: float, history: np.ndarray) -> float:
    """Standard score of *value* against *history*; 0 for a flat or empty history."""
    if history.size == 0:
        return 0.0
    std = float(history.std())
    if std < STD_EPSILON:
        return 0.0
    return (value - float(history.mean())) / std


def tom_ratio_jump(stats: WindowStats, baseline: float) -> float:
    if stats.note_count < MIN_RATIO_NOTES:
        return 1.0
    if baseline > STD_EPSILON:
        return stats.tom_ratio / baseline
    if stats.tom_ratio > 0:
        return stats.tom_ratio / TOM_BASELINE_FLOOR
    return 1.0


def voice_dropout(ratio: float, baseline: float, note_count: int) -> float:
    """Fractional drop of a voice's share relative to its baseline share."""
    if note_count < MIN_RATIO_NOTES or baseline <= STD_EPSILON:
        return 0.0
    return max(0.0, 1.0 - ratio / baseline)


def has_same_pad_burst(notes: list[NoteEvent], burst_ms: float) -> bool:
    """True if one voice is hit MIN_BURST_HITS times in a row, each within *burst_ms*."""
    last_time: dict[DrumVoice, float] = {}
    run: dict[DrumVoice, int] = {}
    for note in notes:
        voice = note_voice(note)
        prev = last_time.get(voice)
        if prev is not None and note.ms_time - prev <= burst_ms:
            run[voice] += 1
        else:
            run[voice] = 1
        last_time[voice] = note.ms_time
        if run[voice] >= MIN_BURST_HITS:
            return True
    return False


def extract_features(
    windows: list[AnalysisWindow],
    resolution: int,
    config: FillConfig,
    pattern_cache: PatternCache,
) -> None:
    """Fill ``stats`` and ``features`` of every window in place.

    Rolling statistics only look at the preceding ``lookback`` windows, so a
    window's features never depend on what comes after it. ``groove_dist``
    is left at 0 for the groove model pass.
    """
    if not windows:
        return

    thresholds = config.thresholds
    stats = [compute_window_stats(w, resolution) for w in windows]
    density = np.array([s.note_density for s in stats])
    tom = np.array([s.tom_ratio for s in stats])
    hat = np.array([s.hat_ratio for s in stats])
    kick = np.array([s.kick_ratio for s in stats])
    ioi = np.array([s.ioi_std for s in stats])

    lookback = config.lookback_window_count()
    # Nearest earlier window that does not overlap this one
    predecessor = max(1, int(round(config.window_beats / config.stride_beats)))

    for i, window in enumerate(windows):
        s = stats[i]
        window.stats = s
        features = FeatureVector(note_density=s.note_density)

        lo = max(0, i - lookback)
        if i > lo:
            features.density_z = zscore(s.note_density, density[lo:i])
            features.tom_ratio_jump = tom_ratio_jump(s, float(tom[lo:i].mean()))
            features.hat_dropout = voice_dropout(s.hat_ratio, float(hat[lo:i].mean()), s.note_count)
            features.kick_drop = voice_dropout(s.kick_ratio, float(kick[lo:i].mean()), s.note_count)
            features.ioi_std_z = zscore(s.ioi_std, ioi[lo:i])

        features.same_pad_burst = has_same_pad_burst(window.notes, thresholds.burst_ms)

        patterns = extract_ngram_patterns(
            window.notes,
            window.start_tick,
            window.end_tick,
            resolution,
            ngram_beats=config.ngram_beats,
            stride_beats=config.ngram_stride_beats,
            quant_div=config.quant_div,
        )
        features.ngram_novelty = novelty_score(patterns, pattern_cache)

        if s.cymbal_count and i >= predecessor:
            features.crash_resolve = windows[i - predecessor].features.density_z > thresholds.density_z

        window.features = features

    logger.debug(f"Extracted features for {len(windows)} windows (lookback {lookback})")
