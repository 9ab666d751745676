"""
Tests for derived-field recomputation.
"""
import pytest

from beatmap import cache
from beatmap.errors import DanglingReference
from beatmap.models import SingleNote, TimeScale, Timepoint


class TestTimepointRefresh:

    @pytest.mark.parametrize("bpm", [60, 120, 145.5, 222])
    def test_tick_duration_formula(self, bpm):
        tp = Timepoint(id=1, time=0.0, bpm=bpm, bpb=4)
        cache.refresh_timepoint(tp)
        assert tp.tick_duration == 60 / bpm / 48

    def test_120_bpm(self):
        tp = Timepoint(id=1, time=0.0, bpm=120, bpb=4)
        cache.refresh_timepoint(tp)
        assert tp.tick_duration == pytest.approx(0.0104166666)


class TestPositionRefresh:

    def test_real_time_of_one_beat(self, tempo_chart):
        note = SingleNote(id=99, timepoint=1, offset=48, lane=0, tsgroup=-1)
        cache.refresh_position(tempo_chart, note)
        assert note.real_time == pytest.approx(0.5)

    def test_real_time_formula_with_offset_time(self, chart):
        tp_id = chart.add_timepoint(2.25, 150, 4)
        ts = TimeScale(id=1, tsgroup=-1, timescale=1.0, timepoint=tp_id, offset=30)
        cache.refresh_position(chart, ts)
        tp = chart.timepoints[tp_id]
        assert ts.real_time == tp.time + tp.tick_duration * 30

    def test_missing_timepoint(self, chart):
        note = SingleNote(id=1, timepoint=42, offset=0, lane=0, tsgroup=-1)
        with pytest.raises(DanglingReference) as exc_info:
            cache.refresh_position(chart, note)
        assert exc_info.value.category == "timepoint"
        assert exc_info.value.id == 42


class TestCascade:

    def test_refresh_dependents_only_touches_that_timepoint(self, populated_chart):
        chart = populated_chart
        tp = chart.timepoints[1]
        tp.bpm = 60
        cache.refresh_timepoint(tp)
        count = cache.refresh_dependents(chart, 1)

        on_tp1 = [n for n in chart.notes.values() if n.timepoint == 1]
        on_tp1 += [t for t in chart.timescales.values() if t.timepoint == 1]
        assert count == len(on_tp1)
        for entity in on_tp1:
            assert entity.real_time == tp.time + tp.tick_duration * entity.offset

    def test_refresh_all_fixes_every_cache(self, populated_chart):
        chart = populated_chart
        for tp in chart.timepoints.values():
            tp.tick_duration = 0.0
        for note in chart.notes.values():
            note.real_time = -1.0
        assert chart.validate() != []

        cache.refresh_all(chart)
        assert chart.validate() == []
