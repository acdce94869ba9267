"""Tests for measure lookup."""

import pytest

from fillscan.analysis.measures import annotate_measures, measure_at_tick
from fillscan.analysis.models import FillSegment, TempoEvent, TimeSignature
from fillscan.analysis.tempo import TempoMap
from tests.conftest import BAR, RES


def test_default_four_four():
    measure = measure_at_tick(4 * BAR, [], RES)
    assert measure.number == 5
    assert (measure.start_tick, measure.end_tick) == (4 * BAR, 5 * BAR)


def test_signature_change_starts_new_measure():
    signatures = [TimeSignature(0, 3, 4), TimeSignature(1152, 4, 4)]
    assert measure_at_tick(600, signatures, RES).number == 2
    later = measure_at_tick(1200, signatures, RES)
    assert later.number == 3
    assert (later.start_tick, later.end_tick) == (1152, 1152 + BAR)


def test_annotate_measures():
    tempo_map = TempoMap([TempoEvent(0, 120.0)], RES)
    seg = FillSegment("song", 3072, 3840, 8000.0, 10000.0)
    (annotated,) = annotate_measures([seg], [], RES, tempo_map)
    assert annotated.measure_number == 5
    assert annotated.measure_start_ms == pytest.approx(8000.0)
    assert annotated.measure_end_ms == pytest.approx(10000.0)
    assert seg.measure_number is None


def test_change_inside_a_bar_cuts_it_short():
    signatures = [TimeSignature(0, 4, 4), TimeSignature(1000, 3, 4)]
    before = measure_at_tick(900, signatures, RES)
    assert before.number == 2
    assert (before.start_tick, before.end_tick) == (BAR, 1000)
    after = measure_at_tick(1000, signatures, RES)
    assert after.number == 3
    assert (after.start_tick, after.end_tick) == (1000, 1000 + 3 * RES)
