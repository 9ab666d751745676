"""
Canonical chart text format.

A chart is stored as one JSON object holding five flat arrays:

    {
      "timepoints": [{id, time, bpm, bpb}, ...],
      "tsgroups":   [{id, name, timescales: [id, ...]}, ...],
      "timescales": [{id, tsgroup, timescale, timepoint, offset, disk}, ...],
      "slides":     [{id, notes: [id, ...], flickend}, ...],
      "notes":      [{id, type, timepoint, offset, lane, tsgroup, ...}, ...]
    }

Derived fields (tick_duration, real_time) are never written. Decoding is
all-or-nothing: any malformed entry or dangling reference raises
CorruptData and no chart is produced.
"""
import json
import logging
import math
from numbers import Real
from typing import Any, Dict, List, Optional

from beatmap import cache
from beatmap.chart import Chart
from beatmap.errors import CorruptData
from beatmap.integrity import find_problems
from beatmap.models import (
    NoteType,
    Slide,
    TimeScale,
    TimeScaleGroup,
    Timepoint,
    note_from_dict,
)

logger = logging.getLogger(__name__)

# Array key => entity loader, in the order registries are rebuilt
SECTIONS = (
    ("timepoints", Timepoint.from_dict),
    ("tsgroups", TimeScaleGroup.from_dict),
    ("timescales", TimeScale.from_dict),
    ("slides", Slide.from_dict),
    ("notes", note_from_dict),
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _is_flag(value: Any) -> bool:
    return isinstance(value, bool)


def _field_problems(section: str, entity) -> List[str]:
    """Type checks that the dataclass constructors don't do."""
    problems = []
    where = f"{section} entry {entity.id!r}"

    def expect(ok: bool, message: str):
        if not ok:
            problems.append(f"{where}: {message}")

    expect(_is_int(entity.id), "id must be an integer")
    if section == "timepoints":
        expect(_is_number(entity.time), "time must be a number")
        expect(_is_number(entity.bpm) and entity.bpm > 0, "bpm must be a positive number")
        expect(_is_int(entity.bpb) and entity.bpb > 0, "bpb must be a positive integer")
    elif section == "tsgroups":
        expect(isinstance(entity.name, str), "name must be a string")
        expect(all(_is_int(x) for x in entity.timescales), "timescales must be integer ids")
    elif section == "timescales":
        expect(_is_int(entity.tsgroup), "tsgroup must be an integer id")
        expect(_is_int(entity.timepoint), "timepoint must be an integer id")
        expect(_is_number(entity.timescale), "timescale must be a number")
        expect(_is_number(entity.disk), "disk must be a number")
    elif section == "slides":
        expect(all(_is_int(x) for x in entity.notes), "notes must be integer ids")
        expect(_is_flag(entity.flickend), "flickend must be a boolean")
    elif section == "notes":
        expect(_is_int(entity.timepoint), "timepoint must be an integer id")
        expect(_is_int(entity.tsgroup), "tsgroup must be an integer id")
        if entity.type is NoteType.SLIDE:
            expect(_is_int(entity.slide), "slide must be an integer id")
            expect(entity.islaser is None or _is_flag(entity.islaser), "islaser must be a boolean")
            expect(entity.direction is None or _is_int(entity.direction),
                   "direction must be an integer")
        else:
            expect(_is_flag(entity.alt), "alt must be a boolean")
            expect(_is_int(entity.direction), "direction must be an integer")
    return problems


def chart_to_dict(chart: Chart) -> Dict[str, List[Dict[str, Any]]]:
    """Convert a chart to its canonical dictionary (registry order, no derived fields)."""
    return {
        "timepoints": [tp.to_dict() for tp in chart.timepoints.values()],
        "tsgroups": [g.to_dict() for g in chart.tsgroups.values()],
        "timescales": [ts.to_dict() for ts in chart.timescales.values()],
        "slides": [s.to_dict() for s in chart.slides.values()],
        "notes": [n.to_dict() for n in chart.notes.values()],
    }


def chart_from_dict(data: Any) -> Chart:
    """
    Rebuild a chart from its canonical dictionary.

    Derived fields are recomputed (timepoints first, then timescales and
    notes) and chains are re-sorted by time; a stable sort keeps the stored
    order of valid data.

    Args:
        data: Parsed chart object

    Returns:
        Fully validated chart

    Raises:
        CorruptData: If any entry is malformed or any reference dangles
    """
    if not isinstance(data, dict):
        raise _reject([f"chart must be an object, got {type(data).__name__}"])

    problems: List[str] = []
    registries: Dict[str, Dict[int, Any]] = {}

    for section, loader in SECTIONS:
        entries = data.get(section)
        if not isinstance(entries, list):
            problems.append(f'"{section}" must be a list')
            continue
        registry: Dict[int, Any] = {}
        for index, entry in enumerate(entries):
            try:
                entity = loader(entry)
            except (KeyError, TypeError, ValueError) as e:
                problems.append(f"{section}[{index}] is malformed: {e!r}")
                continue
            entity_problems = _field_problems(section, entity)
            if entity_problems:
                problems.extend(entity_problems)
                continue
            if entity.id in registry:
                problems.append(f"{section}[{index}] duplicates id {entity.id}")
                continue
            registry[entity.id] = entity
        registries[section] = registry

    if problems:
        raise _reject(problems)

    problems = find_problems(
        timepoints=registries["timepoints"],
        tsgroups=registries["tsgroups"],
        timescales=registries["timescales"],
        slides=registries["slides"],
        notes=registries["notes"],
    )
    if problems:
        raise _reject(problems)

    chart = Chart(
        timepoints=registries["timepoints"],
        notes=registries["notes"],
        slides=registries["slides"],
        tsgroups=registries["tsgroups"],
        timescales=registries["timescales"],
    )
    try:
        cache.refresh_all(chart)
    except OverflowError as e:
        raise _reject([f"positions out of range: {e}"]) from e
    problems = _out_of_range(chart)
    if problems:
        raise _reject(problems)
    chart.resort_chains()
    logger.debug("Decoded %r", chart)
    return chart


def _out_of_range(chart: Chart) -> List[str]:
    problems = []
    for category, registry in (("timescale", chart.timescales), ("note", chart.notes)):
        for entity in registry.values():
            if not math.isfinite(entity.real_time):
                problems.append(f"{category} {entity.id} has real time out of range")
    return problems


def _reject(problems: List[str]) -> CorruptData:
    logger.warning("Rejected chart data with %d problem(s): %s", len(problems), problems[0])
    return CorruptData(problems)


def encode(chart: Chart, indent: Optional[int] = None) -> str:
    """
    Serialize a chart to canonical JSON text.

    Args:
        chart: Chart to encode
        indent: Pretty-print indent (compact when None)

    Returns:
        JSON text
    """
    return json.dumps(chart_to_dict(chart), indent=indent, ensure_ascii=False)


def decode(text: str) -> Chart:
    """
    Parse canonical JSON text into a validated chart.

    Raises:
        CorruptData: If the text is not valid JSON or fails validation
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise _reject([f"not valid JSON: {e}"]) from e
    return chart_from_dict(data)
