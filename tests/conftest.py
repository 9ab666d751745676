"""
Shared fixtures for beatmap tests.
"""
import pytest

from beatmap.chart import Chart


@pytest.fixture
def chart() -> Chart:
    """Empty chart with the reserved groups."""
    return Chart.create()


@pytest.fixture
def tempo_chart(chart: Chart) -> Chart:
    """Chart with one 120 BPM timepoint (id 1) at time 0."""
    chart.add_timepoint(0.0, 120, 4)
    return chart


@pytest.fixture
def populated_chart(tempo_chart: Chart) -> Chart:
    """
    Chart using every entity category.

    - Timepoints 1 (120 BPM at 0s) and 2 (180 BPM at 4s)
    - One single, one flick and a three-note slide
    - A custom tsgroup with two timescales
    """
    chart = tempo_chart
    tp2 = chart.add_timepoint(4.0, 180, 3)
    chart.add_single_note(1, 0, 3)
    chart.add_flick_note(1, 96, 0, alt=True, direction=1)
    slide_id = chart.add_slide(1, 48, 2, flickend=True)
    chart.insert_slide_note(slide_id, 1, 144, 4)
    chart.insert_slide_note(slide_id, tp2, 24, 6)
    group = chart.add_tsgroup("Speed up")
    chart.add_timescale(group, 1, 0, timescale=1.5)
    chart.add_timescale(group, tp2, 0, timescale=0.5, disk=2)
    return chart
