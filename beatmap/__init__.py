"""
Data model for rhythm-game chart editing.

Modules:
- models: Entities (timepoints, notes, slides, time-scale groups, timescales)
- cache: Derived-field recomputation (tick duration, real time)
- ordering: Time ordering of slides and time-scale groups, tie detection
- chart: The Chart aggregate and its mutation API
- codec: Canonical JSON encode/decode with integrity validation
- persistence: Chart file I/O (JSON text and msgpack)
- session: Edit session holding the open chart
- settings: User settings file
"""
from beatmap.api import create_chart, insert_slide_note, load_chart, save_chart
from beatmap.chart import ChangeEvent, Chart
from beatmap.errors import ChartError, CorruptData, DanglingReference, InvariantViolation
from beatmap.models import (
    FlickNote,
    Note,
    NoteType,
    SingleNote,
    Slide,
    SlideNote,
    TimeScale,
    TimeScaleGroup,
    Timepoint,
)

__version__ = "0.1.0"

__all__ = [
    "create_chart",
    "load_chart",
    "save_chart",
    "insert_slide_note",
    "Chart",
    "ChangeEvent",
    "ChartError",
    "CorruptData",
    "DanglingReference",
    "InvariantViolation",
    "Note",
    "NoteType",
    "SingleNote",
    "FlickNote",
    "SlideNote",
    "Slide",
    "Timepoint",
    "TimeScale",
    "TimeScaleGroup",
]
