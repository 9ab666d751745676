"""
Chart aggregate.

A Chart owns the five registries (timepoints, notes, slides, time-scale
groups, timescales) and is the only place entities are created, changed or
removed. Every mutation runs as one step:

    validate ids -> change registries -> refresh caches -> re-sort chains -> notify

so a failed validation leaves the chart untouched and listeners only ever
see a consistent chart.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from beatmap import cache, ordering
from beatmap.constants import (
    BPB_DEFAULT,
    DEFAULT_TSGROUP_ID,
    LANE_MAX,
    LANE_MIN,
    RESERVED_TSGROUPS,
    is_valid_lane,
)
from beatmap.errors import DanglingReference, InvariantViolation
from beatmap.integrity import find_problems, find_stale_caches
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

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIMEPOINT = "timepoint"
NOTE = "note"
SLIDE = "slide"
TSGROUP = "tsgroup"
TIMESCALE = "timescale"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Notification sent to chart listeners after a mutation completes.

    Attributes:
        kind: "add", "update" or "delete"
        category: Registry that changed ("timepoint", "note", ...)
        id: Id of the entity the mutation was requested for
        version: Chart version after the mutation
    """
    kind: str
    category: str
    id: int
    version: int


ChangeListener = Callable[[ChangeEvent], None]


def _next_id(ids, floor: int = 0) -> int:
    return max([floor, *ids]) + 1


def _check_offset(offset: int):
    if not isinstance(offset, int) or isinstance(offset, bool):
        raise ValueError(f"Offset must be an integer tick count, got {offset!r}")
    try:
        float(offset)
    except OverflowError:
        raise ValueError("Offset is too large to place in time") from None


def _check_lane(lane: int):
    if not is_valid_lane(lane):
        raise ValueError(f"Lane must be an integer {LANE_MIN}-{LANE_MAX}, got {lane!r}")


def _check_tempo(bpm: Optional[float], bpb: Optional[int]):
    if bpm is not None and not bpm > 0:
        raise ValueError(f"BPM must be positive, got {bpm}")
    if bpb is not None and (not isinstance(bpb, int) or isinstance(bpb, bool) or bpb <= 0):
        raise ValueError(f"Beats per bar must be a positive integer, got {bpb!r}")


class Chart:
    """
    Editable chart: registries plus the mutation API that keeps them consistent.

    Attributes:
        timepoints: id => Timepoint
        notes: id => Note
        slides: id => Slide
        tsgroups: id => TimeScaleGroup
        timescales: id => TimeScale
        version: Incremented after every completed mutation
    """

    def __init__(self,
                 timepoints: Dict[int, Timepoint],
                 notes: Dict[int, Note],
                 slides: Dict[int, Slide],
                 tsgroups: Dict[int, TimeScaleGroup],
                 timescales: Dict[int, TimeScale]):
        """
        Wrap already-validated registries. Use Chart.create() or
        codec.decode() instead of calling this directly.
        """
        self.timepoints = timepoints
        self.notes = notes
        self.slides = slides
        self.tsgroups = tsgroups
        self.timescales = timescales
        self.version = 0
        self._listeners: List[ChangeListener] = []
        self._next_ids = {
            TIMEPOINT: _next_id(timepoints),
            NOTE: _next_id(notes),
            SLIDE: _next_id(slides),
            TSGROUP: _next_id(tsgroups),
            TIMESCALE: _next_id(timescales),
        }

    @classmethod
    def create(cls) -> "Chart":
        """Create an empty chart with the reserved time-scale groups."""
        tsgroups = {
            group_id: TimeScaleGroup(id=group_id, name=name, timescales=[])
            for group_id, name in RESERVED_TSGROUPS.items()
        }
        return cls(timepoints={}, notes={}, slides={}, tsgroups=tsgroups, timescales={})

    def __eq__(self, other) -> bool:
        """Charts are equal when all source-of-truth fields are equal."""
        if not isinstance(other, Chart):
            return NotImplemented
        return (
            self.timepoints == other.timepoints
            and self.notes == other.notes
            and self.slides == other.slides
            and self.tsgroups == other.tsgroups
            and self.timescales == other.timescales
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"Chart(timepoints={len(self.timepoints)}, notes={len(self.notes)}, "
            f"slides={len(self.slides)}, tsgroups={len(self.tsgroups)}, "
            f"timescales={len(self.timescales)}, version={self.version})"
        )

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a listener called after every completed mutation.

        Args:
            listener: Callable receiving a ChangeEvent

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self, kind: str, category: str, entity_id: int):
        self.version += 1
        logger.debug("Chart v%d: %s %s %d", self.version, kind, category, entity_id)
        event = ChangeEvent(kind=kind, category=category, id=entity_id, version=self.version)
        for listener in list(self._listeners):
            listener(event)

    def _allocate_id(self, category: str) -> int:
        new_id = self._next_ids[category]
        self._next_ids[category] = new_id + 1
        return new_id

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_timepoint(self, timepoint_id: int) -> Optional[Timepoint]:
        return self.timepoints.get(timepoint_id)

    def get_note(self, note_id: int) -> Optional[Note]:
        return self.notes.get(note_id)

    def get_slide(self, slide_id: int) -> Optional[Slide]:
        return self.slides.get(slide_id)

    def get_tsgroup(self, tsgroup_id: int) -> Optional[TimeScaleGroup]:
        return self.tsgroups.get(tsgroup_id)

    def get_timescale(self, timescale_id: int) -> Optional[TimeScale]:
        return self.timescales.get(timescale_id)

    @staticmethod
    def _require(registry: Dict[int, T], category: str, entity_id: int) -> T:
        entity = registry.get(entity_id)
        if entity is None:
            raise DanglingReference(category, entity_id)
        return entity

    @staticmethod
    def _assume(registry: Dict[int, T], category: str, entity_id: int) -> T:
        entity = registry.get(entity_id)
        if entity is None:
            raise InvariantViolation(f"{category} {entity_id} should exist but does not")
        return entity

    def require_timepoint(self, timepoint_id: int) -> Timepoint:
        """Get a timepoint, raising DanglingReference if absent."""
        return self._require(self.timepoints, TIMEPOINT, timepoint_id)

    def require_note(self, note_id: int) -> Note:
        """Get a note, raising DanglingReference if absent."""
        return self._require(self.notes, NOTE, note_id)

    def require_slide(self, slide_id: int) -> Slide:
        """Get a slide, raising DanglingReference if absent."""
        return self._require(self.slides, SLIDE, slide_id)

    def require_tsgroup(self, tsgroup_id: int) -> TimeScaleGroup:
        """Get a time-scale group, raising DanglingReference if absent."""
        return self._require(self.tsgroups, TSGROUP, tsgroup_id)

    def require_timescale(self, timescale_id: int) -> TimeScale:
        """Get a timescale, raising DanglingReference if absent."""
        return self._require(self.timescales, TIMESCALE, timescale_id)

    def timepoint_list(self) -> List[Timepoint]:
        return list(self.timepoints.values())

    def note_list(self) -> List[Note]:
        return list(self.notes.values())

    def slide_list(self) -> List[Slide]:
        return list(self.slides.values())

    def tsgroup_list(self) -> List[TimeScaleGroup]:
        return list(self.tsgroups.values())

    def timescale_list(self) -> List[TimeScale]:
        return list(self.timescales.values())

    def slide_notes(self, slide_id: int) -> List[SlideNote]:
        """Notes of a slide from first to last."""
        slide = self.require_slide(slide_id)
        return [self._assume(self.notes, NOTE, n) for n in slide.notes]

    def slide_bars(self) -> Iterator[Tuple[SlideNote, SlideNote]]:
        """
        Yield each pair of consecutive notes of every slide.

        This is the shape a timeline draws slide bars from.
        """
        for slide in self.slides.values():
            members = [self._assume(self.notes, NOTE, n) for n in slide.notes]
            for from_note, to_note in zip(members, members[1:]):
                yield from_note, to_note

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def validate(self) -> List[str]:
        """
        Check referential integrity and cache freshness of the live chart.

        Returns:
            Description of every problem found (empty if consistent)
        """
        problems = find_problems(self.timepoints, self.tsgroups, self.timescales,
                                 self.slides, self.notes)
        problems.extend(find_stale_caches(self.timepoints, self.timescales, self.notes))
        return problems

    def ambiguous_slides(self) -> List[int]:
        """Ids of slides holding notes with equal real time."""
        result = []
        for slide in self.slides.values():
            _, has_equal = ordering.sort_by_time(
                slide.notes, lambda n: self._assume(self.notes, NOTE, n).real_time, NOTE)
            if has_equal:
                result.append(slide.id)
        return result

    def ambiguous_tsgroups(self) -> List[int]:
        """Ids of time-scale groups holding timescales with equal real time."""
        result = []
        for group in self.tsgroups.values():
            _, has_equal = ordering.sort_by_time(
                group.timescales, lambda t: self._assume(self.timescales, TIMESCALE, t).real_time,
                TIMESCALE)
            if has_equal:
                result.append(group.id)
        return result

    def resort_chains(self, timepoint_id: Optional[int] = None):
        """Re-sort every chain, or only chains with a member on timepoint_id."""
        for slide in self.slides.values():
            if timepoint_id is None or any(
                    self._assume(self.notes, NOTE, n).timepoint == timepoint_id for n in slide.notes):
                ordering.resort_slide(self, slide)
        for group in self.tsgroups.values():
            if timepoint_id is None or any(
                    self._assume(self.timescales, TIMESCALE, t).timepoint == timepoint_id
                    for t in group.timescales):
                ordering.resort_tsgroup(self, group)

    # ------------------------------------------------------------------
    # Timepoints
    # ------------------------------------------------------------------

    def add_timepoint(self, time: float, bpm: float, bpb: int = BPB_DEFAULT) -> int:
        """
        Add a tempo anchor.

        Args:
            time: Start time in seconds
            bpm: Beats per minute (positive)
            bpb: Beats per bar (positive)

        Returns:
            Id of the new timepoint

        Raises:
            ValueError: If bpm is not positive or bpb is not a positive integer
        """
        _check_tempo(bpm, bpb)
        tp = Timepoint(id=self._allocate_id(TIMEPOINT), time=time, bpm=bpm, bpb=bpb)
        self.timepoints[tp.id] = tp
        cache.refresh_timepoint(tp)
        self._changed("add", TIMEPOINT, tp.id)
        return tp.id

    def update_timepoint(self, timepoint_id: int, time: Optional[float] = None,
                         bpm: Optional[float] = None, bpb: Optional[int] = None):
        """
        Change a timepoint's time, tempo or bar length.

        Every note and timescale measured from the timepoint gets its real
        time refreshed and the chains they belong to are re-sorted.

        Raises:
            DanglingReference: If the timepoint does not exist
            ValueError: If bpm or bpb is not positive
        """
        tp = self.require_timepoint(timepoint_id)
        _check_tempo(bpm, bpb)
        if time is not None:
            tp.time = time
        if bpm is not None:
            tp.bpm = bpm
        if bpb is not None:
            tp.bpb = bpb
        cache.refresh_timepoint(tp)
        cache.refresh_dependents(self, timepoint_id)
        self.resort_chains(timepoint_id)
        self._changed("update", TIMEPOINT, timepoint_id)

    def delete_timepoint(self, timepoint_id: int):
        """
        Remove a timepoint nothing is measured from.

        Raises:
            DanglingReference: If the timepoint does not exist
            ValueError: If a note or timescale still references it
        """
        self.require_timepoint(timepoint_id)
        users = sum(1 for n in self.notes.values() if n.timepoint == timepoint_id)
        users += sum(1 for t in self.timescales.values() if t.timepoint == timepoint_id)
        if users:
            raise ValueError(f"Timepoint {timepoint_id} is still referenced by {users} entities")
        del self.timepoints[timepoint_id]
        self._changed("delete", TIMEPOINT, timepoint_id)

    # ------------------------------------------------------------------
    # Time-scale groups and timescales
    # ------------------------------------------------------------------

    def add_tsgroup(self, name: str) -> int:
        """Add an empty time-scale group and return its id."""
        group = TimeScaleGroup(id=self._allocate_id(TSGROUP), name=name, timescales=[])
        self.tsgroups[group.id] = group
        self._changed("add", TSGROUP, group.id)
        return group.id

    def delete_tsgroup(self, tsgroup_id: int):
        """
        Remove a time-scale group together with its timescales.

        Raises:
            DanglingReference: If the group does not exist
            ValueError: If the group is reserved or notes still use it
        """
        group = self.require_tsgroup(tsgroup_id)
        if tsgroup_id in RESERVED_TSGROUPS:
            raise ValueError(f"Time-scale group {tsgroup_id} ({group.name}) is reserved")
        users = sum(1 for n in self.notes.values() if n.tsgroup == tsgroup_id)
        if users:
            raise ValueError(f"Time-scale group {tsgroup_id} is still used by {users} notes")
        for ts_id in group.timescales:
            del self.timescales[ts_id]
        del self.tsgroups[tsgroup_id]
        self._changed("delete", TSGROUP, tsgroup_id)

    def add_timescale(self, tsgroup: int, timepoint: int, offset: int,
                      timescale: float = 1.0, disk: float = 0) -> int:
        """
        Add a time-scale change to a group.

        Args:
            tsgroup: Owning group id
            timepoint: Timepoint the offset is measured from
            offset: 1/48 beats from the timepoint
            timescale: Scroll speed factor
            disk: Disk display parameter

        Returns:
            Id of the new timescale

        Raises:
            DanglingReference: If the group or timepoint does not exist
        """
        group = self.require_tsgroup(tsgroup)
        self.require_timepoint(timepoint)
        _check_offset(offset)

        ts = TimeScale(id=self._allocate_id(TIMESCALE), tsgroup=tsgroup, timescale=timescale,
                       timepoint=timepoint, offset=offset, disk=disk)
        self.timescales[ts.id] = ts
        cache.refresh_position(self, ts)
        group.timescales.append(ts.id)
        ordering.resort_tsgroup(self, group)
        self._changed("add", TIMESCALE, ts.id)
        return ts.id

    def move_timescale(self, timescale_id: int, timepoint: Optional[int] = None,
                       offset: Optional[int] = None):
        """
        Re-anchor a timescale and re-sort its group.

        Raises:
            DanglingReference: If the timescale or new timepoint does not exist
        """
        ts = self.require_timescale(timescale_id)
        if timepoint is not None:
            self.require_timepoint(timepoint)
        if offset is not None:
            _check_offset(offset)

        if timepoint is not None:
            ts.timepoint = timepoint
        if offset is not None:
            ts.offset = offset
        cache.refresh_position(self, ts)
        ordering.resort_tsgroup(self, self._assume(self.tsgroups, TSGROUP, ts.tsgroup))
        self._changed("update", TIMESCALE, timescale_id)

    def delete_timescale(self, timescale_id: int):
        """Remove a timescale from its group and the chart."""
        ts = self.require_timescale(timescale_id)
        group = self._assume(self.tsgroups, TSGROUP, ts.tsgroup)
        if timescale_id not in group.timescales:
            raise InvariantViolation(f"timescale {timescale_id} is not listed by tsgroup {group.id}")
        group.timescales.remove(timescale_id)
        del self.timescales[timescale_id]
        self._changed("delete", TIMESCALE, timescale_id)

    # ------------------------------------------------------------------
    # Notes and slides
    # ------------------------------------------------------------------

    def _check_position(self, timepoint: int, offset: int, lane: int, tsgroup: int):
        self.require_timepoint(timepoint)
        self.require_tsgroup(tsgroup)
        _check_offset(offset)
        _check_lane(lane)

    def _insert_note(self, note: Note):
        self.notes[note.id] = note
        cache.refresh_position(self, note)

    def add_single_note(self, timepoint: int, offset: int, lane: int, alt: bool = False,
                        direction: int = 0, tsgroup: int = DEFAULT_TSGROUP_ID) -> int:
        """
        Add a tap note.

        Returns:
            Id of the new note

        Raises:
            DanglingReference: If the timepoint or tsgroup does not exist
            ValueError: If lane or offset is invalid
        """
        self._check_position(timepoint, offset, lane, tsgroup)
        note = SingleNote(id=self._allocate_id(NOTE), timepoint=timepoint, offset=offset,
                          lane=lane, tsgroup=tsgroup, alt=alt, direction=direction)
        self._insert_note(note)
        self._changed("add", NOTE, note.id)
        return note.id

    def add_flick_note(self, timepoint: int, offset: int, lane: int, alt: bool = False,
                       direction: int = 0, tsgroup: int = DEFAULT_TSGROUP_ID) -> int:
        """
        Add a flick note.

        Returns:
            Id of the new note

        Raises:
            DanglingReference: If the timepoint or tsgroup does not exist
            ValueError: If lane or offset is invalid
        """
        self._check_position(timepoint, offset, lane, tsgroup)
        note = FlickNote(id=self._allocate_id(NOTE), timepoint=timepoint, offset=offset,
                         lane=lane, tsgroup=tsgroup, alt=alt, direction=direction)
        self._insert_note(note)
        self._changed("add", NOTE, note.id)
        return note.id

    def add_slide(self, timepoint: int, offset: int, lane: int, flickend: bool = False,
                  tsgroup: int = DEFAULT_TSGROUP_ID, islaser: Optional[bool] = None) -> int:
        """
        Start a new slide with its first note.

        Returns:
            Id of the new slide (its first note is slide.notes[0])

        Raises:
            DanglingReference: If the timepoint or tsgroup does not exist
            ValueError: If lane or offset is invalid
        """
        self._check_position(timepoint, offset, lane, tsgroup)
        slide = Slide(id=self._allocate_id(SLIDE), notes=[], flickend=flickend)
        note = SlideNote(id=self._allocate_id(NOTE), timepoint=timepoint, offset=offset,
                         lane=lane, tsgroup=tsgroup, slide=slide.id, islaser=islaser)
        self.slides[slide.id] = slide
        self._insert_note(note)
        slide.notes.append(note.id)
        self._changed("add", SLIDE, slide.id)
        return slide.id

    def insert_slide_note(self, slide_id: int, timepoint: int, offset: int, lane: int,
                          tsgroup: int = DEFAULT_TSGROUP_ID, islaser: Optional[bool] = None,
                          direction: Optional[int] = None) -> int:
        """
        Add a note to an existing slide.

        The note's place in the chain is decided by its real time alone. A
        note landing at the same time as an existing member goes after it,
        and the slide is reported as ambiguous.

        Args:
            slide_id: Slide to extend
            timepoint: Timepoint the offset is measured from
            offset: 1/48 beats from the timepoint
            lane: Lane 0-6
            tsgroup: Time-scale group for the note

        Returns:
            Id of the new note

        Raises:
            DanglingReference: If the slide, timepoint or tsgroup does not exist
            ValueError: If lane or offset is invalid
        """
        slide = self.require_slide(slide_id)
        self._check_position(timepoint, offset, lane, tsgroup)
        note = SlideNote(id=self._allocate_id(NOTE), timepoint=timepoint, offset=offset,
                         lane=lane, tsgroup=tsgroup, slide=slide_id, islaser=islaser,
                         direction=direction)
        self._insert_note(note)
        slide.notes.append(note.id)
        ordering.resort_slide(self, slide)
        self._changed("add", NOTE, note.id)
        return note.id

    def move_note(self, note_id: int, timepoint: Optional[int] = None,
                  offset: Optional[int] = None, lane: Optional[int] = None):
        """
        Move a note in time and/or across lanes.

        Raises:
            DanglingReference: If the note or new timepoint does not exist
            ValueError: If lane or offset is invalid
        """
        note = self.require_note(note_id)
        if timepoint is not None:
            self.require_timepoint(timepoint)
        if offset is not None:
            _check_offset(offset)
        if lane is not None:
            _check_lane(lane)

        if timepoint is not None:
            note.timepoint = timepoint
        if offset is not None:
            note.offset = offset
        if lane is not None:
            note.lane = lane
        cache.refresh_position(self, note)
        if note.type is NoteType.SLIDE:
            ordering.resort_slide(self, self._assume(self.slides, SLIDE, note.slide))
        self._changed("update", NOTE, note_id)

    def delete_note(self, note_id: int):
        """
        Remove a note. A slide left without notes is removed too.

        Raises:
            DanglingReference: If the note does not exist
            InvariantViolation: If a slide note is not listed by its slide
        """
        note = self.require_note(note_id)
        slide = None
        if note.type is NoteType.SLIDE:
            slide = self._assume(self.slides, SLIDE, note.slide)
            if note_id not in slide.notes:
                raise InvariantViolation(f"note {note_id} is not listed by slide {slide.id}")

        del self.notes[note_id]
        if slide is not None:
            slide.notes.remove(note_id)
            if not slide.notes:
                del self.slides[slide.id]
                logger.debug("Slide %d removed with its last note", slide.id)
        self._changed("delete", NOTE, note_id)

    def delete_slide(self, slide_id: int):
        """
        Remove a slide and all of its notes.

        Raises:
            DanglingReference: If the slide does not exist
        """
        slide = self.require_slide(slide_id)
        for note_id in slide.notes:
            self._assume(self.notes, NOTE, note_id)
            del self.notes[note_id]
        del self.slides[slide_id]
        self._changed("delete", SLIDE, slide_id)
