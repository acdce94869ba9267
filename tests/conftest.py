"""Shared builders and fixtures for fill detection tests."""

import pytest
from fastapi.testclient import TestClient

from fillscan.analysis.models import NoteEvent, ParsedChart, TempoEvent, TrackData
from fillscan.main import app

RES = 192  # ticks per beat
BAR = 4 * RES

KICK = 0
SNARE = 1
HAT = 2
TOM = 3
CYMBAL = 4


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


def make_note(tick: int, lane: int, flags: int = 0, bpm: float = 120.0, res: int = RES) -> NoteEvent:
    """A note with its ms time at a constant tempo."""
    return NoteEvent(tick=tick, type=lane, flags=flags, ms_time=tick / res * 60000.0 / bpm)


def steady_groove(bars: int, start_tick: int = 0, res: int = RES) -> list[NoteEvent]:
    """Quarter-note kick/snare groove: kick on beats 1 and 3, snare on 2 and 4.

    ms times are left unset so the pipeline derives them from the tempo map.
    """
    notes = []
    for beat in range(bars * 4):
        lane = KICK if beat % 2 == 0 else SNARE
        notes.append(NoteEvent(tick=start_tick + beat * res, type=lane))
    return notes


def hat_groove(bars: int, start_tick: int = 0, res: int = RES) -> list[NoteEvent]:
    """Kick/snare groove with a hi-hat on every beat and offbeat."""
    notes = []
    for note in steady_groove(bars, start_tick, res):
        notes.append(note)
        notes.append(NoteEvent(tick=note.tick, type=HAT))
        notes.append(NoteEvent(tick=note.tick + res // 2, type=HAT))
    return notes


def tom_fill(start_tick: int, count: int = 16, step: int = RES // 4) -> list[NoteEvent]:
    """Run of sixteenth-note toms."""
    return [NoteEvent(tick=start_tick + i * step, type=TOM) for i in range(count)]


def make_chart(
    notes: list[NoteEvent],
    tempos: list[TempoEvent] | None = None,
    resolution: int = RES,
    difficulty: str = "expert",
    name: str | None = "Test Song",
) -> ParsedChart:
    return ParsedChart(
        resolution=resolution,
        tempos=tempos if tempos is not None else [TempoEvent(tick=0, bpm=120.0)],
        track_data=[TrackData(instrument="drums", difficulty=difficulty, note_event_groups=[notes])],
        name=name,
    )


def chart_json(notes: list[NoteEvent], bpm: float = 120.0, difficulty: str = "expert") -> dict:
    """The parser's camelCase JSON form of a single-track chart."""
    return {
        "name": "Test Song",
        "resolution": RES,
        "tempos": [{"tick": 0, "beatsPerMinute": bpm}],
        "trackData": [{
            "instrument": "drums",
            "difficulty": difficulty,
            "noteEventGroups": [[{"tick": n.tick, "type": n.type, "flags": n.flags} for n in notes]],
        }],
    }


@pytest.fixture
def groove_chart():
    """Eight bars of steady groove at 120 BPM."""
    return make_chart(steady_groove(8))


@pytest.fixture
def fill_chart():
    """Four bars of groove followed by one bar of sixteenth-note toms."""
    return make_chart(steady_groove(4) + tom_fill(4 * BAR))
