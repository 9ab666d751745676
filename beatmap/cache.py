"""
Derived-field recomputation.

Timepoint.tick_duration depends on bpm; Note.real_time and
TimeScale.real_time depend on their timepoint and offset. These functions
are the only writers of derived fields.
"""
import logging
from typing import TYPE_CHECKING, Union

from beatmap.constants import tick_duration
from beatmap.errors import DanglingReference
from beatmap.models import Note, TimeScale, Timepoint

if TYPE_CHECKING:
    from beatmap.chart import Chart

logger = logging.getLogger(__name__)

Positioned = Union[Note, TimeScale]


def refresh_timepoint(tp: Timepoint) -> None:
    """Recompute tick_duration from bpm. Call after every bpm change."""
    tp.tick_duration = tick_duration(tp.bpm)


def refresh_position(chart: "Chart", entity: Positioned) -> None:
    """
    Recompute real_time of a note or timescale.

    Args:
        chart: Chart owning the entity's timepoint
        entity: Note or TimeScale to refresh

    Raises:
        DanglingReference: If the entity's timepoint does not exist
    """
    tp = chart.timepoints.get(entity.timepoint)
    if tp is None:
        raise DanglingReference("timepoint", entity.timepoint)
    entity.real_time = tp.time + tp.tick_duration * entity.offset


def refresh_dependents(chart: "Chart", timepoint_id: int) -> int:
    """
    Refresh every note and timescale measured from a timepoint.

    Returns:
        Number of entities refreshed
    """
    count = 0
    for ts in chart.timescales.values():
        if ts.timepoint == timepoint_id:
            refresh_position(chart, ts)
            count += 1
    for note in chart.notes.values():
        if note.timepoint == timepoint_id:
            refresh_position(chart, note)
            count += 1
    logger.debug("Refreshed %d entities after timepoint %d changed", count, timepoint_id)
    return count


def refresh_all(chart: "Chart") -> None:
    """Recompute every derived field, timepoints first."""
    for tp in chart.timepoints.values():
        refresh_timepoint(tp)
    for ts in chart.timescales.values():
        refresh_position(chart, ts)
    for note in chart.notes.values():
        refresh_position(chart, note)
