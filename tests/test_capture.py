import pytest

from roofing.capture import CAPTURING_AREA, CAPTURING_LINES, IDLE, CaptureState
from roofing.constants import CaptureMode
from roofing.geometry import ZERO_METRICS, Point, PolygonMetrics

SQUARE = [Point(0, 0), Point(100, 0), Point(100, 100), Point(0, 100)]


@pytest.fixture
def capture():
    return CaptureState(drawing_enabled=True)


def test_clicks_are_ignored_while_drawing_is_off():
    capture = CaptureState()
    assert capture.state == IDLE
    assert capture.click(Point(10, 10)) is False
    assert capture.points == []


def test_out_of_bounds_click_is_ignored(capture):
    assert capture.click(Point(700, 10)) is False
    assert capture.points == []


def test_area_metrics_follow_every_vertex(capture):
    assert capture.state == CAPTURING_AREA
    for point in SQUARE[:2]:
        capture.click(point)
    assert capture.metrics == ZERO_METRICS
    capture.click(SQUARE[2])
    triangle_area = capture.area_ft2
    assert triangle_area > 0
    capture.click(SQUARE[3])
    assert capture.area_ft2 == pytest.approx(2 * triangle_area)


def test_two_clicks_commit_one_line(capture):
    capture.set_mode(CaptureMode.LINES)
    assert capture.state == CAPTURING_LINES
    capture.click(Point(0, 0))
    assert capture.is_drawing_line
    capture.click(Point(0, 50))
    assert not capture.is_drawing_line
    assert len(capture.lines) == 1
    assert capture.lines[0].length_m == pytest.approx(5.1376, rel=1e-4)
    assert capture.total_line_length_m == pytest.approx(capture.lines[0].length_m)


def test_third_click_starts_a_new_segment(capture):
    capture.set_mode(CaptureMode.LINES)
    for point in (Point(0, 0), Point(0, 50), Point(10, 10)):
        capture.click(point)
    assert len(capture.lines) == 1
    assert capture.pending == Point(10, 10)


def test_disabling_drawing_drops_pending_endpoint(capture):
    capture.set_mode("lines")
    capture.click(Point(1, 1))
    capture.toggle_drawing()
    assert capture.pending is None
    assert capture.state == IDLE


def test_mode_switch_drops_pending_endpoint(capture):
    capture.set_mode(CaptureMode.LINES)
    capture.click(Point(1, 1))
    capture.set_mode(CaptureMode.AREA)
    assert capture.pending is None


def test_next_and_previous_mode_clear_lines_but_keep_vertices(capture):
    for point in SQUARE:
        capture.click(point)
    assert capture.next_mode() is True
    assert capture.next_mode() is False
    capture.click(Point(0, 0))
    capture.click(Point(0, 50))
    area = capture.area_ft2

    assert capture.previous_mode() is True
    assert capture.mode is CaptureMode.AREA
    assert capture.lines == []
    assert capture.points == SQUARE
    assert capture.area_ft2 == area
    assert capture.previous_mode() is False


def test_clear_drawing_keeps_lines(capture):
    for point in SQUARE:
        capture.click(point)
    capture.set_mode(CaptureMode.LINES)
    capture.click(Point(0, 0))
    capture.click(Point(0, 50))
    capture.clear_drawing()
    assert capture.points == []
    assert capture.metrics == ZERO_METRICS
    assert len(capture.lines) == 1


def test_restore_recomputes_from_vertices():
    capture = CaptureState()
    stale = PolygonMetrics(area_ft2=1.0, perimeter_ft=1.0, area_m2=1.0, perimeter_m=1.0)
    capture.restore(SQUARE, [], stale)
    assert capture.area_ft2 > 1.0


def test_restore_keeps_stored_metrics_without_vertices():
    capture = CaptureState()
    stored = PolygonMetrics(area_ft2=1200.0, perimeter_ft=140.0, area_m2=111.5, perimeter_m=42.7)
    capture.restore([], [], stored)
    assert capture.metrics == stored
