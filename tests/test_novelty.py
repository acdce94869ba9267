"""Tests for rhythm patterns, the pattern cache and novelty scoring."""

import pytest

from fillscan.analysis.models import NoteEvent
from fillscan.analysis.novelty import (
    PatternCache,
    analyze_pattern_complexity,
    create_rhythm_pattern,
    extract_ngram_patterns,
    novelty_score,
    pattern_key,
)
from fillscan.analysis.voices import DrumVoice
from tests.conftest import KICK, RES, SNARE, TOM


def test_cache_counts_observations():
    cache = PatternCache()
    cache.add("a")
    cache.add("a")
    cache.add("b")
    assert len(cache) == 2
    assert "a" in cache and cache.contains("b")
    assert cache.frequency("a") == 2
    assert cache.frequency("missing") == 0
    cache.clear()
    assert len(cache) == 0


def test_cache_evicts_least_frequent_oldest_first():
    cache = PatternCache(max_size=4)
    for key in ("a", "a", "b", "b", "c", "c", "d", "e"):
        cache.add(key)
    assert len(cache) == 4
    assert "d" not in cache
    assert "e" in cache
    assert cache.frequency("a") == 2


def test_cache_snapshot_restores_counts():
    cache = PatternCache(max_size=10)
    for key in ("x", "x", "y"):
        cache.add(key)
    restored = PatternCache.from_dict(cache.to_dict())
    assert restored.max_size == 10
    assert restored.frequency("x") == 2
    assert restored.frequency("y") == 1


def test_cache_rejects_bad_size():
    with pytest.raises(ValueError):
        PatternCache(max_size=0)


def test_rhythm_pattern_grid_and_voices():
    notes = [NoteEvent(0, KICK), NoteEvent(0, SNARE), NoteEvent(96, SNARE)]
    pattern = create_rhythm_pattern(notes, 0, RES, RES, quant_div=4)
    assert pattern.cells == [True, False, True, False]
    # first note in a cell names it
    assert pattern.voices == [DrumVoice.KICK, DrumVoice.UNKNOWN, DrumVoice.SNARE, DrumVoice.UNKNOWN]
    assert pattern.hash == pattern_key(pattern.cells, pattern.voices)
    assert len(pattern.hash) == 16


def test_pattern_hash_depends_on_voice():
    kick = create_rhythm_pattern([NoteEvent(0, KICK)], 0, RES, RES)
    tom = create_rhythm_pattern([NoteEvent(0, TOM)], 0, RES, RES)
    again = create_rhythm_pattern([NoteEvent(0, KICK)], RES, 2 * RES, RES)
    assert kick.hash != tom.hash
    assert again.cells == [False] * 4


def test_ngram_extraction_skips_empty_sub_windows():
    notes = [NoteEvent(10, KICK)]
    patterns = extract_ngram_patterns(notes, 0, 2 * RES, RES, ngram_beats=1.0, stride_beats=0.5)
    assert len(patterns) == 1


def test_ngram_longer_than_range_yields_nothing():
    notes = [NoteEvent(0, KICK)]
    assert extract_ngram_patterns(notes, 0, RES, RES, ngram_beats=2.0) == []


def test_novelty_score_learns():
    cache = PatternCache()
    patterns = [create_rhythm_pattern([NoteEvent(0, TOM)], 0, RES, RES)]
    assert novelty_score(patterns, cache) == 1.0
    assert novelty_score(patterns, cache) == 0.0
    assert novelty_score([], cache) == 0.0


def test_repeated_pattern_within_one_call():
    cache = PatternCache()
    pattern = create_rhythm_pattern([NoteEvent(0, TOM)], 0, RES, RES)
    assert novelty_score([pattern, pattern], cache) == 0.5
    assert cache.frequency(pattern.hash) == 2


def test_pattern_complexity():
    notes = [NoteEvent(0, KICK), NoteEvent(96, SNARE)]
    measures = analyze_pattern_complexity(create_rhythm_pattern(notes, 0, RES, RES))
    assert measures["density"] == pytest.approx(0.5)
    assert measures["diversity"] == pytest.approx(0.4)
    assert measures["syncopation"] == pytest.approx(0.5)
    assert measures["irregularity"] == 0.0

    empty = analyze_pattern_complexity(create_rhythm_pattern([], 0, RES, RES))
    assert empty == {"density": 0.0, "diversity": 0.0, "syncopation": 0.0, "irregularity": 0.0}
