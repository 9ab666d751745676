"""
Tests for the canonical JSON codec.
"""
import copy
import json

import pytest

from beatmap import codec
from beatmap.api import create_chart, insert_slide_note, load_chart, save_chart
from beatmap.errors import CorruptData


def valid_data():
    """Small canonical chart using every category."""
    return {
        "timepoints": [{"id": 1, "time": 0, "bpm": 120, "bpb": 4}],
        "tsgroups": [
            {"id": -1, "name": "Default", "timescales": [1]},
            {"id": -2, "name": "Disk Note", "timescales": []},
        ],
        "timescales": [
            {"id": 1, "tsgroup": -1, "timescale": 1.0, "timepoint": 1, "offset": 0, "disk": 0},
        ],
        "slides": [{"id": 1, "notes": [2, 3], "flickend": False}],
        "notes": [
            {"id": 1, "type": "single", "timepoint": 1, "offset": 0, "lane": 3,
             "tsgroup": -1, "alt": False, "direction": 0},
            {"id": 2, "type": "slide", "timepoint": 1, "offset": 48, "lane": 1,
             "tsgroup": -1, "slide": 1},
            {"id": 3, "type": "slide", "timepoint": 1, "offset": 96, "lane": 2,
             "tsgroup": -1, "slide": 1, "islaser": True},
        ],
    }


class TestEncode:

    def test_empty_chart(self):
        data = json.loads(codec.encode(create_chart()))
        assert data == {
            "timepoints": [],
            "tsgroups": [
                {"id": -1, "name": "Default", "timescales": []},
                {"id": -2, "name": "Disk Note", "timescales": []},
            ],
            "timescales": [],
            "slides": [],
            "notes": [],
        }

    def test_derived_fields_omitted(self, populated_chart):
        data = json.loads(codec.encode(populated_chart))
        for tp in data["timepoints"]:
            assert "tick_duration" not in tp
        for entry in data["notes"] + data["timescales"]:
            assert "real_time" not in entry

    def test_indent(self, chart):
        assert "\n" in codec.encode(chart, indent=2)
        assert "\n" not in codec.encode(chart)


class TestRoundTrip:

    def test_source_fields_preserved(self, populated_chart):
        loaded = load_chart(save_chart(populated_chart))
        assert loaded == populated_chart
        assert codec.chart_to_dict(loaded) == codec.chart_to_dict(populated_chart)

    def test_derived_fields_recomputed(self, populated_chart):
        loaded = load_chart(save_chart(populated_chart))
        for tp_id, tp in populated_chart.timepoints.items():
            assert loaded.timepoints[tp_id].tick_duration == tp.tick_duration
        for note_id, note in populated_chart.notes.items():
            assert loaded.notes[note_id].real_time == note.real_time
        for ts_id, ts in populated_chart.timescales.items():
            assert loaded.timescales[ts_id].real_time == ts.real_time

    def test_encoding_is_stable(self, populated_chart):
        text = save_chart(populated_chart)
        assert save_chart(load_chart(text)) == text

    def test_loaded_chart_allocates_fresh_ids(self):
        chart = load_chart(json.dumps(valid_data()))
        new_id = insert_slide_note(chart, 1, 1, 24, 0)
        assert new_id == 4
        assert chart.slides[1].notes == [new_id, 2, 3]


class TestDecode:

    def test_valid(self):
        chart = codec.decode(json.dumps(valid_data()))
        assert chart.timepoints[1].tick_duration == 60 / 120 / 48
        assert chart.notes[2].real_time == pytest.approx(0.5)
        assert chart.notes[3].islaser is True
        assert chart.validate() == []

    def test_out_of_order_members_are_sorted(self):
        data = valid_data()
        data["slides"][0]["notes"] = [3, 2]
        chart = codec.decode(json.dumps(data))
        assert chart.slides[1].notes == [2, 3]

    @pytest.mark.parametrize("text", ["", "{", "[]", "null", '"chart"'])
    def test_not_a_chart(self, text):
        with pytest.raises(CorruptData):
            codec.decode(text)

    def test_missing_section(self):
        data = valid_data()
        del data["slides"]
        with pytest.raises(CorruptData, match="slides"):
            codec.decode(json.dumps(data))

    def test_unknown_note_type(self):
        data = valid_data()
        data["notes"][0]["type"] = "hold"
        with pytest.raises(CorruptData):
            codec.decode(json.dumps(data))

    def test_duplicate_id(self):
        data = valid_data()
        data["timepoints"].append(dict(data["timepoints"][0]))
        with pytest.raises(CorruptData, match="duplicates id 1"):
            codec.decode(json.dumps(data))

    @pytest.mark.parametrize("bpm", [0, -120, "120"])
    def test_bad_bpm(self, bpm):
        data = valid_data()
        data["timepoints"][0]["bpm"] = bpm
        with pytest.raises(CorruptData, match="bpm"):
            codec.decode(json.dumps(data))

    def test_lane_out_of_range(self):
        data = valid_data()
        data["notes"][0]["lane"] = 9
        with pytest.raises(CorruptData):
            codec.decode(json.dumps(data))

    @pytest.mark.parametrize("lane", [True, 2.5, "3"])
    def test_lane_must_be_integer(self, lane):
        data = valid_data()
        data["notes"][2]["lane"] = lane
        with pytest.raises(CorruptData, match="Lane"):
            codec.decode(json.dumps(data))

    @pytest.mark.parametrize("section, index, field, value", [
        ("timepoints", 0, "bpb", 4.5),
        ("timepoints", 0, "time", float("inf")),
        ("timepoints", 0, "bpm", float("nan")),
        ("slides", 0, "flickend", "yes"),
        ("notes", 0, "alt", 1),
        ("notes", 0, "direction", 0.5),
        ("notes", 2, "islaser", "no"),
    ])
    def test_bad_field_type(self, section, index, field, value):
        data = valid_data()
        data[section][index][field] = value
        with pytest.raises(CorruptData, match=field):
            codec.decode(json.dumps(data))

    @pytest.mark.parametrize("section", ["notes", "timescales"])
    def test_offset_too_large_to_place(self, section):
        data = valid_data()
        data[section][0]["offset"] = 10 ** 400
        with pytest.raises(CorruptData, match="out of range"):
            codec.decode(json.dumps(data))

    def test_time_too_large_to_place(self):
        data = valid_data()
        data["timepoints"][0]["time"] = 10 ** 400
        with pytest.raises(CorruptData, match="out of range"):
            codec.decode(json.dumps(data))


class TestDecodeIntegrity:
    """Every dangling reference must reject the whole chart."""

    @pytest.mark.parametrize("mutate, message", [
        (lambda d: d["slides"][0]["notes"].append(99), "slide 1 lists missing note 99"),
        (lambda d: d["tsgroups"][0]["timescales"].append(99), "tsgroup -1 lists missing timescale 99"),
        (lambda d: d["notes"][1].update(slide=99), "slide note 2 references missing slide 99"),
        (lambda d: d["notes"][0].update(timepoint=99), "note 1 references missing timepoint 99"),
        (lambda d: d["timescales"][0].update(tsgroup=99), "timescale 1 references missing tsgroup 99"),
        (lambda d: d["timescales"][0].update(timepoint=99), "timescale 1 references missing timepoint 99"),
        (lambda d: d["notes"][0].update(tsgroup=99), "note 1 references missing tsgroup 99"),
        (lambda d: d["slides"][0]["notes"].append(1), "slide 1 lists single note 1"),
        (lambda d: d["tsgroups"][1]["timescales"].append(1),
         "tsgroup -2 lists timescale 1 owned by tsgroup -1"),
        (lambda d: d["slides"][0]["notes"].insert(0, 2), "slide 1 lists note 2 more than once"),
        (lambda d: d["tsgroups"][0]["timescales"].append(1),
         "tsgroup -1 lists timescale 1 more than once"),
        (lambda d: d["slides"][0]["notes"].remove(3), "slide note 3 is not listed by slide 1"),
        (lambda d: d["tsgroups"][0]["timescales"].clear(), "timescale 1 is not listed by tsgroup -1"),
    ])
    def test_dangling_reference(self, mutate, message):
        data = copy.deepcopy(valid_data())
        mutate(data)
        with pytest.raises(CorruptData) as exc_info:
            codec.decode(json.dumps(data))
        assert message in exc_info.value.problems

    def test_problems_reported_in_check_order(self):
        data = valid_data()
        data["timescales"][0]["timepoint"] = 50
        data["slides"][0]["notes"].append(60)
        with pytest.raises(CorruptData) as exc_info:
            codec.decode(json.dumps(data))
        assert exc_info.value.problems == [
            "slide 1 lists missing note 60",
            "timescale 1 references missing timepoint 50",
        ]

    def test_member_owned_by_other_slide(self):
        data = valid_data()
        data["slides"].append({"id": 2, "notes": [3], "flickend": False})
        with pytest.raises(CorruptData) as exc_info:
            codec.decode(json.dumps(data))
        assert "slide 2 lists note 3 owned by slide 1" in exc_info.value.problems

    def test_mismatched_membership_rejected_as_a_whole(self):
        data = valid_data()
        data["tsgroups"][1]["timescales"] = [1]
        data["slides"][0]["notes"] = [2, 2]
        with pytest.raises(CorruptData) as exc_info:
            codec.decode(json.dumps(data))
        assert exc_info.value.problems == [
            "tsgroup -2 lists timescale 1 owned by tsgroup -1",
            "slide 1 lists note 2 more than once",
            "slide note 3 is not listed by slide 1",
        ]

    def test_live_chart_reports_mismatched_membership(self, populated_chart):
        group = next(g for g in populated_chart.tsgroups.values() if g.timescales)
        populated_chart.tsgroups[-2].timescales.append(group.timescales[0])
        assert populated_chart.validate() == [
            f"tsgroup -2 lists timescale {group.timescales[0]} owned by tsgroup {group.id}",
        ]
