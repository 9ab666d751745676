"""
Data models for beatmap charts.

Entities are plain mutable dataclasses owned by a Chart:
- Source-of-truth fields are set by the Chart mutation API or by decode
- Derived cache fields (tick_duration, real_time) are excluded from
  __init__ and from equality, and never serialized
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from beatmap.constants import LANE_MAX, LANE_MIN, is_valid_lane


class NoteType(str, Enum):
    """Discriminator stored in the "type" field of a serialized note."""
    SINGLE = "single"
    FLICK = "flick"
    SLIDE = "slide"


@dataclass
class Timepoint:
    """
    Tempo anchor.

    Attributes:
        id: Unique timepoint id
        time: Start time of this timepoint in seconds
        bpm: Beats per minute
        bpb: Beats per bar (one beat = 1/4)
        tick_duration: Cached duration of 1/48 beat in seconds (derived)
    """
    id: int
    time: float
    bpm: float
    bpb: int
    tick_duration: float = field(default=0.0, init=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "time": self.time,
            "bpm": self.bpm,
            "bpb": self.bpb,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Timepoint":
        """Create Timepoint from dictionary."""
        return cls(
            id=data["id"],
            time=data["time"],
            bpm=data["bpm"],
            bpb=data["bpb"],
        )


@dataclass
class TimedPosition:
    """
    Position of a note relative to a timepoint.

    Attributes:
        id: Unique note id
        timepoint: Id of the timepoint time is measured from
        offset: Count of 1/48 beats from that timepoint
        lane: Lane the note lays on (left most: 0, right most: 6)
        tsgroup: Id of the time-scale group used for visual scaling
        real_time: Cached real time in seconds (derived)
    """
    type: ClassVar[NoteType]

    id: int
    timepoint: int
    offset: int
    lane: int
    tsgroup: int
    real_time: float = field(default=0.0, init=False, compare=False)

    def __post_init__(self):
        """Validate position."""
        if not isinstance(self.offset, int) or isinstance(self.offset, bool):
            raise ValueError(f"Offset must be an integer tick count, got {self.offset!r}")
        if not is_valid_lane(self.lane):
            raise ValueError(f"Lane must be an integer {LANE_MIN}-{LANE_MAX}, got {self.lane!r}")

    def _position_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "timepoint": self.timepoint,
            "offset": self.offset,
            "lane": self.lane,
            "tsgroup": self.tsgroup,
        }


@dataclass
class SingleNote(TimedPosition):
    """Tap note."""
    type: ClassVar[NoteType] = NoteType.SINGLE

    alt: bool = False
    direction: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = self._position_dict()
        result["alt"] = self.alt
        result["direction"] = self.direction
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SingleNote":
        """Create SingleNote from dictionary."""
        return cls(
            id=data["id"],
            timepoint=data["timepoint"],
            offset=data["offset"],
            lane=data["lane"],
            tsgroup=data["tsgroup"],
            alt=data.get("alt", False),
            direction=data.get("direction", 0),
        )


@dataclass
class FlickNote(TimedPosition):
    """Flick note."""
    type: ClassVar[NoteType] = NoteType.FLICK

    alt: bool = False
    direction: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = self._position_dict()
        result["alt"] = self.alt
        result["direction"] = self.direction
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlickNote":
        """Create FlickNote from dictionary."""
        return cls(
            id=data["id"],
            timepoint=data["timepoint"],
            offset=data["offset"],
            lane=data["lane"],
            tsgroup=data["tsgroup"],
            alt=data.get("alt", False),
            direction=data.get("direction", 0),
        )


@dataclass
class SlideNote(TimedPosition):
    """
    Member of a slide chain.

    Attributes:
        slide: Id of the owning slide
        islaser: Optional laser flag
        direction: Optional end direction
    """
    type: ClassVar[NoteType] = NoteType.SLIDE

    slide: int = 0
    islaser: Optional[bool] = None
    direction: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = self._position_dict()
        result["slide"] = self.slide
        if self.islaser is not None:
            result["islaser"] = self.islaser
        if self.direction is not None:
            result["direction"] = self.direction
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlideNote":
        """Create SlideNote from dictionary."""
        return cls(
            id=data["id"],
            timepoint=data["timepoint"],
            offset=data["offset"],
            lane=data["lane"],
            tsgroup=data["tsgroup"],
            slide=data["slide"],
            islaser=data.get("islaser"),
            direction=data.get("direction"),
        )


Note = Union[SingleNote, FlickNote, SlideNote]

NOTE_CLASSES = {
    NoteType.SINGLE: SingleNote,
    NoteType.FLICK: FlickNote,
    NoteType.SLIDE: SlideNote,
}


def note_from_dict(data: Dict[str, Any]) -> Note:
    """
    Create the note variant named by data["type"].

    Raises:
        KeyError: If "type" is missing
        ValueError: If "type" is not a known note variant
    """
    note_type = NoteType(data["type"])
    return NOTE_CLASSES[note_type].from_dict(data)


@dataclass
class Slide:
    """
    Chain of slide notes forming one gesture.

    Attributes:
        id: Unique slide id
        notes: Note ids from first to last, ordered by real time
        flickend: Whether the chain ends with a flick
    """
    id: int
    notes: List[int] = field(default_factory=list)
    flickend: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "notes": list(self.notes),
            "flickend": self.flickend,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Slide":
        """Create Slide from dictionary."""
        return cls(
            id=data["id"],
            notes=list(data["notes"]),
            flickend=data.get("flickend", False),
        )


@dataclass
class TimeScaleGroup:
    """
    Named group of time-scale changes.

    Attributes:
        id: Unique group id (-1 and -2 are reserved)
        name: Display name
        timescales: TimeScale ids ordered by real time
    """
    id: int
    name: str
    timescales: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "timescales": list(self.timescales),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeScaleGroup":
        """Create TimeScaleGroup from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            timescales=list(data["timescales"]),
        )


@dataclass
class TimeScale:
    """
    Visual time-scale change.

    Attributes:
        id: Unique timescale id
        tsgroup: Id of the owning group
        timescale: Scroll speed factor
        timepoint: Id of the timepoint time is measured from
        offset: Count of 1/48 beats from that timepoint
        disk: Disk display parameter
        real_time: Cached real time in seconds (derived)
    """
    id: int
    tsgroup: int
    timescale: float
    timepoint: int
    offset: int
    disk: float = 0
    real_time: float = field(default=0.0, init=False, compare=False)

    def __post_init__(self):
        """Validate offset."""
        if not isinstance(self.offset, int) or isinstance(self.offset, bool):
            raise ValueError(f"Offset must be an integer tick count, got {self.offset!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "tsgroup": self.tsgroup,
            "timescale": self.timescale,
            "timepoint": self.timepoint,
            "offset": self.offset,
            "disk": self.disk,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeScale":
        """Create TimeScale from dictionary."""
        return cls(
            id=data["id"],
            tsgroup=data["tsgroup"],
            timescale=data["timescale"],
            timepoint=data["timepoint"],
            offset=data["offset"],
            disk=data.get("disk", 0),
        )
