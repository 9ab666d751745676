"""
Tests for the edit session.
"""
import pytest

from beatmap.chart import Chart
from beatmap.session import EditSession
from beatmap.settings import DEFAULT_SETTINGS


class TestEditSession:

    def test_new_session_has_default_timepoint(self):
        session = EditSession.new()
        assert not session.is_dirty()
        [tp] = session.chart.timepoint_list()
        assert (tp.time, tp.bpm, tp.bpb) == (0.0, 120, 4)

    def test_new_session_uses_editor_settings(self):
        settings = {"editor": {"default_bpm": 200, "default_bpb": 3}}
        [tp] = EditSession.new(settings=settings).chart.timepoint_list()
        assert (tp.bpm, tp.bpb) == (200, 3)

    def test_edits_mark_dirty(self):
        session = EditSession.new()
        session.chart.add_slide(1, 0, 0)
        assert session.is_dirty()

    def test_save_requires_path(self):
        with pytest.raises(ValueError, match="no file path"):
            EditSession().save()

    def test_save_and_open(self, tmp_path):
        session = EditSession.new()
        session.chart.add_single_note(1, 48, 2)
        written = session.save(tmp_path / "chart.json")
        assert not session.is_dirty()
        assert session.file_path == written

        reopened = EditSession.open(written)
        assert reopened.chart == session.chart
        assert not reopened.is_dirty()

    def test_save_packed_by_suffix(self, tmp_path):
        session = EditSession.new()
        written = session.save(tmp_path / "chart.bmap")
        assert EditSession.open(written).chart == session.chart

    def test_set_chart_moves_subscription(self):
        session = EditSession()
        old = session.chart
        session.set_chart(Chart.create())
        old.add_tsgroup("ignored")
        assert not session.is_dirty()
        session.chart.add_tsgroup("tracked")
        assert session.is_dirty()

    def test_auto_save_only_when_dirty(self, tmp_path):
        settings = {"files": {**DEFAULT_SETTINGS["files"], "auto_save_dir": str(tmp_path)}}
        session = EditSession.new(settings=settings)
        assert session.auto_save("song") is False
        session.chart.add_tsgroup("change")
        assert session.auto_save("song") is True
        assert (tmp_path / "song.json").exists()

    def test_close_stops_tracking(self):
        session = EditSession()
        session.close()
        session.chart.add_tsgroup("after close")
        assert not session.is_dirty()
