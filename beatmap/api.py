"""
Entry points used by editor front ends.

Front ends hold the Chart handle themselves and pass it to every call.
"""
from beatmap.chart import Chart
from beatmap.codec import decode, encode


def create_chart() -> Chart:
    """Create an empty chart with the reserved "Default" and "Disk Note" groups."""
    return Chart.create()


def load_chart(text: str) -> Chart:
    """
    Parse a saved chart.

    Raises:
        CorruptData: If the text is malformed or references dangle
    """
    return decode(text)


def save_chart(chart: Chart) -> str:
    """Serialize a chart to canonical JSON text."""
    return encode(chart)


def insert_slide_note(chart: Chart, slide_id: int, timepoint_id: int, offset: int, lane: int) -> int:
    """
    Add a note to a slide at the given position.

    The note is placed in the chain by real time.

    Returns:
        Id of the new note

    Raises:
        DanglingReference: If the slide or timepoint does not exist
        ValueError: If lane or offset is invalid
    """
    return chart.insert_slide_note(slide_id, timepoint_id, offset, lane)
