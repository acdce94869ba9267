"""Fill detection pipeline - one stage per module."""

from fillscan.analysis.engine import FillDetector, create_extraction_summary, extract_fills
from fillscan.analysis.errors import (
    DrumTrackNotFoundError,
    FillDetectionError,
    InvalidChartError,
    InvalidConfigError,
    InvalidTempoError,
)
from fillscan.analysis.fill_config import FillConfig, Thresholds, validate_config
from fillscan.analysis.models import (
    FillSegment,
    NoteEvent,
    ParsedChart,
    TempoEvent,
    TimeSignature,
    TrackData,
)
from fillscan.analysis.novelty import PatternCache
from fillscan.analysis.segments import SegmentReport, validate_fill_segments

__all__ = [
    "FillDetector",
    "create_extraction_summary",
    "extract_fills",
    "DrumTrackNotFoundError",
    "FillDetectionError",
    "InvalidChartError",
    "InvalidConfigError",
    "InvalidTempoError",
    "FillConfig",
    "Thresholds",
    "validate_config",
    "FillSegment",
    "NoteEvent",
    "ParsedChart",
    "TempoEvent",
    "TimeSignature",
    "TrackData",
    "PatternCache",
    "SegmentReport",
    "validate_fill_segments",
]
