"""
Referential-integrity checks shared by decode and Chart.validate().
"""
from typing import Dict, List, Mapping

from beatmap.constants import tick_duration
from beatmap.models import Note, NoteType, Slide, TimeScale, TimeScaleGroup, Timepoint


def find_problems(timepoints: Mapping[int, Timepoint],
                  tsgroups: Mapping[int, TimeScaleGroup],
                  timescales: Mapping[int, TimeScale],
                  slides: Mapping[int, Slide],
                  notes: Mapping[int, Note]) -> List[str]:
    """
    Check that every id reference between registries resolves.

    Checks run in a fixed order: slide members, group members, slide
    back-references, note timepoints, timescale groups, timescale
    timepoints, note groups, slide member variants, group member owners,
    repeated members, then entities missing from their owner's list.

    Returns:
        Human-readable description of every violation (empty if consistent)
    """
    problems: List[str] = []

    for slide in slides.values():
        for note_id in slide.notes:
            if note_id not in notes:
                problems.append(f"slide {slide.id} lists missing note {note_id}")

    for group in tsgroups.values():
        for ts_id in group.timescales:
            if ts_id not in timescales:
                problems.append(f"tsgroup {group.id} lists missing timescale {ts_id}")

    for note in notes.values():
        if note.type is NoteType.SLIDE and note.slide not in slides:
            problems.append(f"slide note {note.id} references missing slide {note.slide}")

    for note in notes.values():
        if note.timepoint not in timepoints:
            problems.append(f"note {note.id} references missing timepoint {note.timepoint}")

    for ts in timescales.values():
        if ts.tsgroup not in tsgroups:
            problems.append(f"timescale {ts.id} references missing tsgroup {ts.tsgroup}")

    for ts in timescales.values():
        if ts.timepoint not in timepoints:
            problems.append(f"timescale {ts.id} references missing timepoint {ts.timepoint}")

    for note in notes.values():
        if note.tsgroup not in tsgroups:
            problems.append(f"note {note.id} references missing tsgroup {note.tsgroup}")

    for slide in slides.values():
        for note_id in slide.notes:
            note = notes.get(note_id)
            if note is None:
                continue
            if note.type is not NoteType.SLIDE:
                problems.append(f"slide {slide.id} lists {note.type.value} note {note_id}")
            elif note.slide != slide.id:
                problems.append(f"slide {slide.id} lists note {note_id} owned by slide {note.slide}")

    for group in tsgroups.values():
        for ts_id in group.timescales:
            ts = timescales.get(ts_id)
            if ts is not None and ts.tsgroup != group.id:
                problems.append(
                    f"tsgroup {group.id} lists timescale {ts_id} owned by tsgroup {ts.tsgroup}")

    for slide in slides.values():
        for note_id in _repeated(slide.notes):
            problems.append(f"slide {slide.id} lists note {note_id} more than once")
    for group in tsgroups.values():
        for ts_id in _repeated(group.timescales):
            problems.append(f"tsgroup {group.id} lists timescale {ts_id} more than once")

    for note in notes.values():
        slide = slides.get(note.slide) if note.type is NoteType.SLIDE else None
        if slide is not None and note.id not in slide.notes:
            problems.append(f"slide note {note.id} is not listed by slide {slide.id}")

    for ts in timescales.values():
        group = tsgroups.get(ts.tsgroup)
        if group is not None and ts.id not in group.timescales:
            problems.append(f"timescale {ts.id} is not listed by tsgroup {group.id}")

    return problems


def _repeated(ids: List[int]) -> List[int]:
    seen = set()
    repeated = []
    for member in ids:
        if member in seen and member not in repeated:
            repeated.append(member)
        seen.add(member)
    return repeated


def find_stale_caches(timepoints: Dict[int, Timepoint],
                      timescales: Dict[int, TimeScale],
                      notes: Dict[int, Note]) -> List[str]:
    """List derived fields that no longer match their source fields."""
    problems: List[str] = []
    for tp in timepoints.values():
        if tp.tick_duration != tick_duration(tp.bpm):
            problems.append(f"timepoint {tp.id} has stale tick_duration")
    for category, registry in (("timescale", timescales), ("note", notes)):
        for entity in registry.values():
            tp = timepoints.get(entity.timepoint)
            if tp is not None and entity.real_time != tp.time + tp.tick_duration * entity.offset:
                problems.append(f"{category} {entity.id} has stale real_time")
    return problems
