"""Fill detection orchestrator - runs the pipeline end to end."""

import logging
from dataclasses import replace
from typing import Any

from fillscan.analysis.candidates import candidate_statistics, detect_candidates, post_process_candidates
from fillscan.analysis.errors import DrumTrackNotFoundError, InvalidChartError
from fillscan.analysis.features import extract_features
from fillscan.analysis.fill_config import FillConfig, validate_config
from fillscan.analysis.groove import GrooveModel, model_confidence, update_groove_distances
from fillscan.analysis.measures import annotate_measures
from fillscan.analysis.models import FillSegment, NoteEvent, ParsedChart, TrackData
from fillscan.analysis.novelty import PatternCache
from fillscan.analysis.segments import merge_windows_into_segments
from fillscan.analysis.tempo import TempoMap
from fillscan.analysis.windows import build_windows
from fillscan.config import settings

logger = logging.getLogger(__name__)

DRUMS = "drums"
UNKNOWN_SONG = "Unknown"


def validate_chart(chart: ParsedChart) -> None:
    """Shape checks done before any processing."""
    resolution = chart.resolution
    if isinstance(resolution, bool) or not isinstance(resolution, int) or resolution <= 0:
        raise InvalidChartError(f"Chart resolution must be a positive integer, got {resolution!r}")
    if not chart.tempos:
        raise InvalidChartError("Chart has no tempo events")
    if not isinstance(chart.track_data, list):
        raise InvalidChartError("Chart has no track data list")


def find_drum_track(chart: ParsedChart, difficulty: str) -> TrackData:
    for track in chart.track_data:
        if track.instrument == DRUMS and track.difficulty == difficulty:
            return track
    raise DrumTrackNotFoundError(difficulty)


def flatten_notes(track: TrackData, tempo_map: TempoMap) -> list[NoteEvent]:
    """All notes of a track in tick order (stable), with ms times filled in.

    Notes missing ``ms_time`` are copied, so the input track is never modified.
    """
    notes = [note for group in track.note_event_groups for note in group]
    notes.sort(key=lambda n: n.tick)
    return [
        n if n.ms_time is not None else replace(n, ms_time=tempo_map.tick_to_ms(n.tick))
        for n in notes
    ]


class FillDetector:
    """Orchestrates the fill detection pipeline.

    The pattern cache persists across ``detect`` calls on the same detector,
    so novelty reflects everything this detector has seen. Use a new detector
    (or ``extract_fills``) for song-independent results.
    """

    def __init__(self, config: FillConfig | dict[str, Any] | None = None, pattern_cache: PatternCache | None = None):
        self.config = validate_config(config)
        self.pattern_cache = pattern_cache if pattern_cache is not None else PatternCache(settings.pattern_cache_size)
        self.groove_model: GrooveModel | None = None  # from the last detect()
        self.candidate_stats: dict | None = None

    def detect(self, chart: ParsedChart, track: TrackData | None = None, song_id: str | None = None) -> list[FillSegment]:
        """Detect fills in the drum track of *chart*."""
        config = self.config
        validate_chart(chart)
        tempo_map = TempoMap(chart.tempos, chart.resolution)

        if track is None:
            track = find_drum_track(chart, config.difficulty)
        elif track.instrument != DRUMS or track.difficulty != config.difficulty:
            raise DrumTrackNotFoundError(config.difficulty)

        song_id = song_id or chart.name or UNKNOWN_SONG
        resolution = chart.resolution
        notes = flatten_notes(track, tempo_map)
        logger.info(f"Detecting fills in {song_id!r}: {len(notes)} notes at resolution {resolution}")
        if not notes:
            return []

        # Step 1: Windows
        windows = build_windows(
            notes,
            notes[0].tick,
            notes[-1].tick,
            config.window_beats,
            config.stride_beats,
            resolution,
            tempo_map,
        )
        if not windows:
            logger.info("  Chart too short for a single window")
            return []

        # Step 2: Features
        extract_features(windows, resolution, config, self.pattern_cache)

        # Step 3: Groove model
        self.groove_model = update_groove_distances(windows, config)
        logger.debug(f"  Groove model confidence {model_confidence(self.groove_model):.2f}")

        # Step 4: Candidates
        detect_candidates(windows, config)
        post_process_candidates(windows, config, resolution)
        self.candidate_stats = candidate_statistics(windows)
        logger.debug(f"  Candidates: {self.candidate_stats}")

        # Step 5: Segments
        segments = merge_windows_into_segments(windows, song_id, resolution, tempo_map, config)
        segments = annotate_measures(segments, chart.time_signatures, resolution, tempo_map)

        logger.info(f"  {len(segments)} fills from {len(windows)} windows")
        return segments


def extract_fills(
    chart: ParsedChart,
    config: FillConfig | dict[str, Any] | None = None,
    *,
    track: TrackData | None = None,
    pattern_cache: PatternCache | None = None,
    song_id: str | None = None,
) -> list[FillSegment]:
    """Detect drum fills in *chart*.

    Args:
        chart: Parsed chart with resolution, tempo map and tracks.
        config: Overrides merged onto the default configuration.
        track: Explicit drum track to analyse instead of looking one up.
        pattern_cache: Cache to carry novelty across calls. A fresh one is
            used when omitted, which makes the result depend only on the
            chart and config.
        song_id: Id stamped on the segments (defaults to the chart name).

    Returns:
        Fill segments sorted by (song_id, start_tick), non-overlapping.

    Raises:
        InvalidConfigError, InvalidChartError, InvalidTempoError,
        DrumTrackNotFoundError.
    """
    detector = FillDetector(config, pattern_cache)
    return detector.detect(chart, track=track, song_id=song_id)


def create_extraction_summary(
    chart: ParsedChart,
    fills: list[FillSegment],
    config: FillConfig | dict[str, Any] | None = None,
    track: TrackData | None = None,
) -> dict:
    """Song info and fill statistics for reports."""
    config = validate_config(config)
    if track is None:
        track = next(
            (t for t in chart.track_data if t.instrument == DRUMS and t.difficulty == config.difficulty),
            None,
        )
    note_count = sum(len(g) for g in track.note_event_groups) if track else 0
    durations = [f.duration_ms for f in fills]
    tempos = [t.bpm for t in chart.tempos]

    return {
        "song": {
            "name": chart.name or UNKNOWN_SONG,
            "artist": chart.artist or UNKNOWN_SONG,
            "resolution": chart.resolution,
            "tempo_changes": len(chart.tempos),
            "bpm_range": [min(tempos), max(tempos)] if tempos else None,
        },
        "detection": {
            "difficulty": config.difficulty,
            "note_count": note_count,
            "fill_count": len(fills),
            "total_fill_ms": sum(durations),
            "mean_fill_ms": sum(durations) / len(durations) if durations else 0.0,
            "mean_confidence": sum(f.confidence for f in fills) / len(fills) if fills else 0.0,
            "with_burst": sum(1 for f in fills if f.same_pad_burst),
            "with_crash_resolve": sum(1 for f in fills if f.crash_resolve),
        },
    }
