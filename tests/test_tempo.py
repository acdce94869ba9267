"""Tests for tick <-> ms conversion."""

import pytest

from fillscan.analysis.errors import InvalidTempoError
from fillscan.analysis.models import TempoEvent
from fillscan.analysis.tempo import TempoMap, ms_to_duration_ticks, ticks_to_ms_duration, validate_tempos
from tests.conftest import RES


def test_constant_tempo_conversion():
    """At 120 BPM one beat is 500 ms."""
    tempo_map = TempoMap([TempoEvent(0, 120.0)], RES)
    assert tempo_map.tick_to_ms(0) == 0.0
    assert tempo_map.tick_to_ms(RES) == pytest.approx(500.0)
    assert tempo_map.tick_to_ms(RES // 4) == pytest.approx(125.0)


def test_tempo_change_uses_cached_offsets():
    tempo_map = TempoMap([TempoEvent(0, 120.0), TempoEvent(RES, 140.0)], RES)
    assert tempo_map.events[1].ms_time == pytest.approx(500.0)
    assert tempo_map.tick_to_ms(2 * RES) == pytest.approx(500.0 + 60000.0 / 140.0)
    assert tempo_map.bpm_at_tick(RES - 1) == 120.0
    assert tempo_map.bpm_at_tick(RES) == 140.0


def test_input_tempos_not_modified():
    tempos = [TempoEvent(0, 120.0), TempoEvent(RES, 60.0)]
    TempoMap(tempos, RES)
    assert tempos[1].ms_time == 0.0


def test_tick_to_ms_is_monotonic():
    tempo_map = TempoMap([TempoEvent(0, 120.0), TempoEvent(300, 90.0), TempoEvent(1000, 200.0)], RES)
    times = [tempo_map.tick_to_ms(t) for t in range(0, 2000, 7)]
    assert all(a <= b for a, b in zip(times, times[1:]))


def test_ms_to_tick_inverts_tick_to_ms():
    tempo_map = TempoMap([TempoEvent(0, 120.0), TempoEvent(RES, 140.0)], RES)
    for tick in (0, 50, RES, 500, 1234):
        assert tempo_map.ms_to_tick(tempo_map.tick_to_ms(tick)) == pytest.approx(tick)


def test_negative_tick_clamps_to_zero():
    tempo_map = TempoMap([TempoEvent(0, 120.0)], RES)
    assert tempo_map.tick_to_ms(-100) == 0.0


def test_tick_range_helpers():
    tempo_map = TempoMap([TempoEvent(0, 120.0)], RES)
    assert tempo_map.tick_range_to_ms(RES, 3 * RES) == pytest.approx((500.0, 1500.0))
    assert tempo_map.tick_range_duration_ms(RES, 3 * RES) == pytest.approx(1000.0)


def test_fixed_tempo_durations():
    assert ticks_to_ms_duration(RES, 60.0, RES) == pytest.approx(1000.0)
    assert ms_to_duration_ticks(1000.0, 60.0, RES) == pytest.approx(RES)


@pytest.mark.parametrize("tempos", [
    [],
    [TempoEvent(0, -120.0)],
    [TempoEvent(0, 0.0)],
    [TempoEvent(0, 120.0), TempoEvent(400, 100.0), TempoEvent(200, 90.0)],
    [TempoEvent(0, 120.0), TempoEvent(0, 100.0)],
    [TempoEvent(96, 120.0)],
    [TempoEvent(-1, 120.0)],
])
def test_invalid_tempo_maps_rejected(tempos):
    with pytest.raises(InvalidTempoError):
        validate_tempos(tempos)


def test_invalid_resolution_rejected():
    with pytest.raises(InvalidTempoError):
        TempoMap([TempoEvent(0, 120.0)], 0)
