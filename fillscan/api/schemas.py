"""Pydantic request/response models for the API."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fillscan.analysis.models import NoteEvent, ParsedChart, TempoEvent, TimeSignature, TrackData


class CamelModel(BaseModel):
    """Accepts the camelCase keys emitted by chart parsers as well as snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests

class TempoEventRequest(CamelModel):
    tick: int
    bpm: float = Field(validation_alias=AliasChoices("bpm", "beatsPerMinute"))
    ms_time: float | None = None


class TimeSignatureRequest(CamelModel):
    tick: int
    numerator: int = 4
    denominator: int = 4


class NoteEventRequest(CamelModel):
    tick: int
    type: int
    flags: int = 0
    ms_time: float | None = None
    length: int = 0
    ms_length: float = 0.0


class TrackDataRequest(CamelModel):
    instrument: str
    difficulty: str
    note_event_groups: list[list[NoteEventRequest]] = []


class ChartRequest(CamelModel):
    name: str | None = None
    artist: str | None = None
    resolution: int
    tempos: list[TempoEventRequest] = []
    time_signatures: list[TimeSignatureRequest] = []
    track_data: list[TrackDataRequest]

    def to_chart(self) -> ParsedChart:
        return ParsedChart(
            resolution=self.resolution,
            # ms times are recomputed by the tempo map
            tempos=[TempoEvent(tick=t.tick, bpm=t.bpm) for t in self.tempos],
            track_data=[
                TrackData(
                    instrument=track.instrument,
                    difficulty=track.difficulty,
                    note_event_groups=[
                        [NoteEvent(**note.model_dump()) for note in group]
                        for group in track.note_event_groups
                    ],
                )
                for track in self.track_data
            ],
            name=self.name,
            artist=self.artist,
            time_signatures=[TimeSignature(**ts.model_dump()) for ts in self.time_signatures],
        )


class FillsRequest(CamelModel):
    chart: ChartRequest
    config: dict[str, Any] | None = None  # overrides, camelCase or snake_case
    song_id: str | None = None


# Responses

class FillSegmentResponse(BaseModel):
    song_id: str
    start_tick: float
    end_tick: float
    start_ms: float
    end_ms: float
    note_density: float
    density_z: float
    tom_ratio_jump: float
    hat_dropout: float
    kick_drop: float
    ioi_std_z: float
    ngram_novelty: float
    same_pad_burst: bool
    crash_resolve: bool
    groove_dist: float
    confidence: float
    measure_number: int | None = None
    measure_start_tick: float | None = None
    measure_end_tick: float | None = None
    measure_start_ms: float | None = None
    measure_end_ms: float | None = None


class FillsResponse(BaseModel):
    fills: list[FillSegmentResponse]
    summary: dict[str, Any] = {}
