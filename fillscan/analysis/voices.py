"""Mapping from chart note lanes and flags to drum voices."""

from collections import Counter
from enum import Enum, IntFlag

from fillscan.analysis.models import NoteEvent


class DrumVoice(str, Enum):
    KICK = "kick"
    SNARE = "snare"
    HAT = "hat"
    TOM = "tom"
    CYMBAL = "cymbal"
    UNKNOWN = "unknown"


class NoteFlags(IntFlag):
    """Note modifier bits as emitted by the chart parser."""
    NONE = 0
    DOUBLE_KICK = 8
    TOM = 16
    CYMBAL = 32
    GHOST = 256
    ACCENT = 512


# Lane ids of a 5-lane drum chart
KICK_LANE = 0
RED_LANE = 1
YELLOW_LANE = 2
BLUE_LANE = 3
ORANGE_LANE = 4
GREEN_LANE = 5

LANE_VOICES = {
    KICK_LANE: DrumVoice.KICK,
    RED_LANE: DrumVoice.SNARE,
    YELLOW_LANE: DrumVoice.HAT,
    BLUE_LANE: DrumVoice.TOM,
    ORANGE_LANE: DrumVoice.CYMBAL,
    GREEN_LANE: DrumVoice.TOM,
}

# Pads whose voice depends on the tom/cymbal marker
_PRO_PADS = (YELLOW_LANE, BLUE_LANE, ORANGE_LANE, GREEN_LANE)


def _build_voice_table() -> dict[tuple[int, NoteFlags], DrumVoice]:
    table = {}
    for lane, voice in LANE_VOICES.items():
        table[(lane, NoteFlags.NONE)] = voice
        if lane in _PRO_PADS:
            table[(lane, NoteFlags.TOM)] = DrumVoice.TOM
            table[(lane, NoteFlags.CYMBAL)] = DrumVoice.HAT if lane == YELLOW_LANE else DrumVoice.CYMBAL
        else:
            table[(lane, NoteFlags.TOM)] = voice
            table[(lane, NoteFlags.CYMBAL)] = voice
    return table


VOICE_TABLE = _build_voice_table()


def voice_for(note_type: int, flags: int = 0) -> DrumVoice:
    """Voice of a note. The cymbal marker wins over the tom marker."""
    if flags & NoteFlags.CYMBAL:
        marker = NoteFlags.CYMBAL
    elif flags & NoteFlags.TOM:
        marker = NoteFlags.TOM
    else:
        marker = NoteFlags.NONE
    return VOICE_TABLE.get((note_type, marker), DrumVoice.UNKNOWN)


def note_voice(note: NoteEvent) -> DrumVoice:
    return voice_for(note.type, note.flags)


def count_voices(notes: list[NoteEvent]) -> Counter:
    """Count notes per voice."""
    return Counter(note_voice(n) for n in notes)
