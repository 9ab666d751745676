"""
Time ordering of slide chains and time-scale groups.

Members are kept sorted by real_time. Two neighbours with the same
real_time are an ambiguous order: reported, never rejected.
"""
import logging
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Tuple

from beatmap.errors import InvariantViolation
from beatmap.models import Slide, TimeScaleGroup

if TYPE_CHECKING:
    from beatmap.chart import Chart

logger = logging.getLogger(__name__)


def sort_by_time(ids: Sequence[int], real_time_of: Callable[[int], Optional[float]],
                 category: str = "entity") -> Tuple[List[int], bool]:
    """
    Sort ids ascending by real time.

    The sort is stable, so members with equal time keep their current
    relative order.

    Args:
        ids: Member ids to sort
        real_time_of: Returns the cached real time of an id, or None if absent
        category: Registry name used in error messages

    Returns:
        (sorted ids, whether any two neighbours share the same real time)

    Raises:
        InvariantViolation: If a member id does not resolve
    """
    keyed = []
    for member in ids:
        t = real_time_of(member)
        if t is None:
            raise InvariantViolation(f"Member {category} {member} does not exist")
        keyed.append((t, member))

    keyed.sort(key=lambda pair: pair[0])

    has_equal = any(a[0] == b[0] for a, b in zip(keyed, keyed[1:]))
    return [member for _, member in keyed], has_equal


def resort_slide(chart: "Chart", slide: Slide) -> bool:
    """
    Re-sort a slide's notes in place.

    Returns:
        True if the slide has notes with equal real time
    """
    def real_time_of(note_id: int) -> Optional[float]:
        note = chart.notes.get(note_id)
        return None if note is None else note.real_time

    slide.notes, has_equal = sort_by_time(slide.notes, real_time_of, "note")
    if has_equal:
        logger.warning("Slide %d has notes at the same time; order is ambiguous", slide.id)
    return has_equal


def resort_tsgroup(chart: "Chart", tsgroup: TimeScaleGroup) -> bool:
    """
    Re-sort a time-scale group's members in place.

    Returns:
        True if the group has timescales with equal real time
    """
    def real_time_of(ts_id: int) -> Optional[float]:
        ts = chart.timescales.get(ts_id)
        return None if ts is None else ts.real_time

    tsgroup.timescales, has_equal = sort_by_time(tsgroup.timescales, real_time_of, "timescale")
    if has_equal:
        logger.warning("Time-scale group %d (%s) has timescales at the same time; order is ambiguous",
                       tsgroup.id, tsgroup.name)
    return has_equal
