"""
Chart constants and tick utilities.

Tick resolution, lane range, reserved time-scale groups, tempo defaults.
"""

# Ticks (offset units) per beat
TICKS_PER_BEAT = 48

# Lanes, left most to right most
LANE_MIN = 0
LANE_MAX = 6

# Reserved time-scale groups present in every chart
DEFAULT_TSGROUP_ID = -1
DEFAULT_TSGROUP_NAME = "Default"
DISK_NOTE_TSGROUP_ID = -2
DISK_NOTE_TSGROUP_NAME = "Disk Note"

RESERVED_TSGROUPS = {
    DEFAULT_TSGROUP_ID: DEFAULT_TSGROUP_NAME,
    DISK_NOTE_TSGROUP_ID: DISK_NOTE_TSGROUP_NAME,
}

# Tempo of a new chart's first timepoint
BPM_DEFAULT = 120
BPB_DEFAULT = 4


def tick_duration(bpm: float) -> float:
    """
    Seconds per tick (1/48 beat) at the given tempo.

    Args:
        bpm: Beats per minute

    Returns:
        Duration of one tick in seconds

    Example:
        >>> tick_duration(120)
        0.010416666666666666
    """
    return 60 / bpm / TICKS_PER_BEAT


def is_valid_lane(lane: int) -> bool:
    """Check if lane is an integer within the playfield."""
    if not isinstance(lane, int) or isinstance(lane, bool):
        return False
    return LANE_MIN <= lane <= LANE_MAX
