"""Core data models for drum-fill detection."""

from dataclasses import dataclass, field

import numpy as np


# ---------------------------------------------------------------------------
# Chart input
# ---------------------------------------------------------------------------

@dataclass
class TempoEvent:
    """A tempo marker in the chart."""
    tick: int
    bpm: float
    ms_time: float = 0.0  # filled by TempoMap


@dataclass
class TimeSignature:
    """A time signature marker. Charts without one are 4/4."""
    tick: int
    numerator: int = 4
    denominator: int = 4


@dataclass
class NoteEvent:
    """A single drum note as produced by the chart parser."""
    tick: int
    type: int  # lane / pad id
    flags: int = 0  # bitmask, see voices.NoteFlags
    ms_time: float | None = None  # None -> derived from the tempo map
    length: int = 0  # ticks
    ms_length: float = 0.0


@dataclass
class TrackData:
    """One instrument/difficulty track."""
    instrument: str  # "drums" for drum tracks
    difficulty: str  # "expert" | "hard" | "medium" | "easy"
    note_event_groups: list[list[NoteEvent]] = field(default_factory=list)


@dataclass
class ParsedChart:
    """An already-parsed chart."""
    resolution: int  # ticks per quarter note
    tempos: list[TempoEvent]
    track_data: list[TrackData]
    name: str | None = None
    artist: str | None = None
    time_signatures: list[TimeSignature] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

# Continuous features used by the groove model, in vector order.
GROOVE_FEATURES = (
    "note_density",
    "density_z",
    "tom_ratio_jump",
    "hat_dropout",
    "kick_drop",
    "ioi_std_z",
    "ngram_novelty",
)


@dataclass
class WindowStats:
    """Raw window-local values that feed the rolling baseline."""
    note_count: int = 0
    note_density: float = 0.0  # notes per beat
    tom_ratio: float = 0.0
    hat_ratio: float = 0.0
    kick_ratio: float = 0.0
    cymbal_count: int = 0
    ioi_std: float = 0.0  # ms


@dataclass
class FeatureVector:
    """Per-window features, relative to the preceding groove."""
    note_density: float = 0.0
    density_z: float = 0.0
    tom_ratio_jump: float = 1.0
    hat_dropout: float = 0.0
    kick_drop: float = 0.0
    ioi_std_z: float = 0.0
    ngram_novelty: float = 0.0  # 0.0-1.0
    same_pad_burst: bool = False
    crash_resolve: bool = False
    groove_dist: float = 0.0

    def groove_vector(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in GROOVE_FEATURES], dtype=float)


@dataclass
class AnalysisWindow:
    """A fixed-length, beat-aligned slice of the note stream."""
    start_tick: float
    end_tick: float
    start_ms: float
    end_ms: float
    notes: list[NoteEvent] = field(default_factory=list)
    stats: WindowStats = field(default_factory=WindowStats)
    features: FeatureVector = field(default_factory=FeatureVector)
    is_candidate: bool = False
    confidence: float = 0.0  # 0.0-1.0
    reasons: list[str] = field(default_factory=list)


@dataclass
class FillSegment:
    """A detected fill."""
    song_id: str
    start_tick: float
    end_tick: float
    start_ms: float
    end_ms: float
    note_density: float = 0.0
    density_z: float = 0.0
    tom_ratio_jump: float = 1.0
    hat_dropout: float = 0.0
    kick_drop: float = 0.0
    ioi_std_z: float = 0.0
    ngram_novelty: float = 0.0
    same_pad_burst: bool = False
    crash_resolve: bool = False
    groove_dist: float = 0.0
    confidence: float = 0.0
    # Measure the fill starts in (1-based), filled by measures.annotate_measures
    measure_number: int | None = None
    measure_start_tick: float | None = None
    measure_end_tick: float | None = None
    measure_start_ms: float | None = None
    measure_end_ms: float | None = None

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms
