"""Drum fill detection for rhythm-game charts."""

from fillscan.analysis import (
    DrumTrackNotFoundError,
    FillConfig,
    FillDetectionError,
    FillDetector,
    FillSegment,
    InvalidChartError,
    InvalidConfigError,
    InvalidTempoError,
    NoteEvent,
    ParsedChart,
    PatternCache,
    TempoEvent,
    TimeSignature,
    TrackData,
    create_extraction_summary,
    extract_fills,
    validate_fill_segments,
)

__all__ = [
    "DrumTrackNotFoundError",
    "FillConfig",
    "FillDetectionError",
    "FillDetector",
    "FillSegment",
    "InvalidChartError",
    "InvalidConfigError",
    "InvalidTempoError",
    "NoteEvent",
    "ParsedChart",
    "PatternCache",
    "TempoEvent",
    "TimeSignature",
    "TrackData",
    "create_extraction_summary",
    "extract_fills",
    "validate_fill_segments",
]
