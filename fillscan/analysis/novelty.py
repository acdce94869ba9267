"""Rhythmic n-gram patterns and the novelty score.

A pattern is the grid occupancy of a short slice of notes plus the voice
that first hit each cell. Patterns are hashed and counted in a bounded
``PatternCache``; a window's novelty is the share of its patterns the cache
has not seen yet. The cache is owned by the caller so that a batch job can
carry it across songs, or give each song a fresh one.
"""

import bisect
import hashlib
import logging
from dataclasses import dataclass

import numpy as np

from fillscan.analysis.models import NoteEvent
from fillscan.analysis.quantize import beats_to_ticks, grid_size
from fillscan.analysis.voices import DrumVoice, note_voice

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 1000
PRUNE_FRACTION = 0.25

# Voices counted for pattern diversity
_DIVERSITY_VOICES = (DrumVoice.KICK, DrumVoice.SNARE, DrumVoice.HAT, DrumVoice.TOM, DrumVoice.CYMBAL)


class PatternCache:
    """Bounded pattern-hash -> observation-count map.

    When the cache grows past ``max_size`` the least frequent quarter of the
    entries is evicted (ties keep the older entries first in line). Not
    thread-safe; callers sharing one instance must serialize access.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._counts: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, pattern_hash: str) -> bool:
        return pattern_hash in self._counts

    def contains(self, pattern_hash: str) -> bool:
        return pattern_hash in self._counts

    def frequency(self, pattern_hash: str) -> int:
        return self._counts.get(pattern_hash, 0)

    def add(self, pattern_hash: str) -> None:
        self._counts[pattern_hash] = self._counts.get(pattern_hash, 0) + 1
        if len(self._counts) > self.max_size:
            self._prune()

    def clear(self) -> None:
        self._counts.clear()

    def _prune(self) -> None:
        n_remove = max(1, int(len(self._counts) * PRUNE_FRACTION))
        # sorted() is stable, so equal counts are evicted oldest first
        by_count = sorted(self._counts.items(), key=lambda item: item[1])
        for pattern_hash, _ in by_count[:n_remove]:
            del self._counts[pattern_hash]
        logger.debug(f"Pattern cache pruned {n_remove} entries, {len(self._counts)} left")

    def to_dict(self) -> dict:
        return {"max_size": self.max_size, "patterns": dict(self._counts)}

    @classmethod
    def from_dict(cls, data: dict) -> "PatternCache":
        cache = cls(max_size=int(data.get("max_size", DEFAULT_CACHE_SIZE)))
        for pattern_hash, count in data.get("patterns", {}).items():
            cache._counts[str(pattern_hash)] = int(count)
        if len(cache._counts) > cache.max_size:
            cache._prune()
        return cache


@dataclass
class RhythmPattern:
    """Grid occupancy of a slice of notes."""
    cells: list[bool]
    voices: list[DrumVoice]  # first voice to hit each cell
    hash: str


def pattern_key(cells: list[bool], voices: list[DrumVoice]) -> str:
    activity = "".join("1" if c else "0" for c in cells)
    letters = "".join(v.value[0] for v in voices)
    return hashlib.sha256(f"{activity}_{letters}".encode()).hexdigest()[:16]


def create_rhythm_pattern(
    notes: list[NoteEvent],
    start_tick: float,
    end_tick: float,
    resolution: int,
    quant_div: int = 4,
) -> RhythmPattern:
    """Quantize notes in ``[start_tick, end_tick)`` onto a grid of quant_div cells per beat."""
    size = grid_size(resolution, quant_div)
    n_cells = max(1, int(np.ceil((end_tick - start_tick) / size)))
    cells = [False] * n_cells
    voices = [DrumVoice.UNKNOWN] * n_cells

    for note in notes:
        if note.tick < start_tick or note.tick >= end_tick:
            continue
        idx = int((note.tick - start_tick) // size)
        if idx >= n_cells:
            continue
        cells[idx] = True
        if voices[idx] is DrumVoice.UNKNOWN:
            voices[idx] = note_voice(note)

    return RhythmPattern(cells=cells, voices=voices, hash=pattern_key(cells, voices))


def extract_ngram_patterns(
    notes: list[NoteEvent],
    start_tick: float,
    end_tick: float,
    resolution: int,
    ngram_beats: float = 1.0,
    stride_beats: float = 0.25,
    quant_div: int = 4,
) -> list[RhythmPattern]:
    """Slide an n-gram sub-window across ``[start_tick, end_tick)``.

    Sub-windows without notes are skipped. An n-gram longer than the range
    yields no patterns.
    """
    ngram_ticks = beats_to_ticks(ngram_beats, resolution)
    stride_ticks = beats_to_ticks(stride_beats, resolution)
    ticks = [n.tick for n in notes]

    patterns = []
    k = 0
    while True:
        sub_start = start_tick + k * stride_ticks
        sub_end = sub_start + ngram_ticks
        if sub_end > end_tick:
            break
        lo = bisect.bisect_left(ticks, sub_start)
        hi = bisect.bisect_left(ticks, sub_end)
        if hi > lo:
            patterns.append(create_rhythm_pattern(notes[lo:hi], sub_start, sub_end, resolution, quant_div))
        k += 1
    return patterns


def novelty_score(patterns: list[RhythmPattern], cache: PatternCache) -> float:
    """Fraction of *patterns* unseen by *cache*; every pattern is recorded as it is scored."""
    if not patterns:
        return 0.0
    novel = 0
    for pattern in patterns:
        if pattern.hash not in cache:
            novel += 1
        cache.add(pattern.hash)
    return novel / len(patterns)


def analyze_pattern_complexity(pattern: RhythmPattern, cells_per_beat: int = 4) -> dict[str, float]:
    """Descriptive complexity measures of a pattern, each in [0, 1]."""
    n_cells = len(pattern.cells)
    active = [i for i, c in enumerate(pattern.cells) if c]
    if not active:
        return {"density": 0.0, "diversity": 0.0, "syncopation": 0.0, "irregularity": 0.0}

    density = len(active) / n_cells
    used = {v for v in pattern.voices if v in _DIVERSITY_VOICES}
    diversity = len(used) / len(_DIVERSITY_VOICES)
    syncopation = sum(1 for i in active if i % cells_per_beat != 0) / len(active)

    irregularity = 0.0
    if len(active) >= 3:
        gaps = np.diff(active)
        irregularity = min(1.0, float(np.std(gaps) / np.mean(gaps)))

    return {
        "density": density,
        "diversity": diversity,
        "syncopation": syncopation,
        "irregularity": irregularity,
    }
