"""Click-driven capture of the roof outline and ridge/hip line segments."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from roofing.constants import CaptureMode
from roofing.drawing import DEFAULT_SURFACE, SurfaceSize, within_bounds
from roofing.geometry import (
    ZERO_METRICS,
    LineMeasurement,
    Point,
    PolygonMetrics,
    line_measurement,
    polygon_metrics,
    total_line_length,
    total_line_length_meters,
)

LOG = logging.getLogger(__name__)

IDLE = "idle"
CAPTURING_AREA = "capturing_area"
CAPTURING_LINES = "capturing_lines"


@dataclass
class CaptureState:
    """Live vertex and line lists for the drawing in progress.

    Metrics are recomputed in full after every vertex mutation and line totals
    are derived on read, so they always match the current geometry. At most one
    segment endpoint is ever pending.
    """

    mode: CaptureMode = CaptureMode.AREA
    drawing_enabled: bool = False
    points: List[Point] = field(default_factory=list)
    lines: List[LineMeasurement] = field(default_factory=list)
    pending: Optional[Point] = None
    metrics: PolygonMetrics = ZERO_METRICS

    @property
    def state(self) -> str:
        if not self.drawing_enabled:
            return IDLE
        return CAPTURING_AREA if self.mode is CaptureMode.AREA else CAPTURING_LINES

    @property
    def is_drawing_line(self) -> bool:
        return self.pending is not None

    @property
    def area_ft2(self) -> float:
        return self.metrics.area_ft2

    @property
    def perimeter_ft(self) -> float:
        return self.metrics.perimeter_ft

    @property
    def total_line_length_ft(self) -> float:
        return total_line_length(self.lines)

    @property
    def total_line_length_m(self) -> float:
        return total_line_length_meters(self.lines)

    def click(self, point: Point, size: SurfaceSize = DEFAULT_SURFACE) -> bool:
        """Apply a surface click; returns False when the click was ignored."""
        if not self.drawing_enabled:
            return False
        if not within_bounds(point, size):
            LOG.debug("Ignoring out-of-bounds click at (%.1f, %.1f)", point.x, point.y)
            return False
        if self.mode is CaptureMode.AREA:
            self.add_point(point)
        else:
            self.add_line_point(point)
        return True

    def add_point(self, point: Point) -> None:
        self.points = [*self.points, point]
        self._recompute()

    def add_line_point(self, point: Point) -> None:
        if self.pending is None:
            self.pending = point
            return
        self.lines = [*self.lines, line_measurement(self.pending, point)]
        self.pending = None

    def set_drawing(self, enabled: bool) -> None:
        if not enabled:
            self.pending = None
        self.drawing_enabled = enabled

    def toggle_drawing(self) -> bool:
        self.set_drawing(not self.drawing_enabled)
        return self.drawing_enabled

    def set_mode(self, mode: CaptureMode) -> None:
        mode = CaptureMode(mode)
        if mode is not self.mode:
            self.pending = None
        self.mode = mode

    def clear_drawing(self) -> None:
        self.points = []
        self.metrics = ZERO_METRICS

    def clear_lines(self) -> None:
        self.lines = []
        self.pending = None

    def next_mode(self) -> bool:
        # Line data is scoped to one visit of line mode.
        if self.mode is not CaptureMode.AREA:
            return False
        self.set_mode(CaptureMode.LINES)
        self.clear_lines()
        return True

    def previous_mode(self) -> bool:
        if self.mode is not CaptureMode.LINES:
            return False
        self.set_mode(CaptureMode.AREA)
        self.clear_lines()
        return True

    def restore(
        self,
        points: Iterable[Point],
        lines: Iterable[LineMeasurement],
        metrics: Optional[PolygonMetrics] = None,
    ) -> None:
        """Load geometry from a stored snapshot.

        With three or more vertices the metrics are recomputed; otherwise the
        stored metrics (if any) are kept, since older records carry no vertices.
        """
        self.points = list(points)
        self.lines = list(lines)
        self.pending = None
        if len(self.points) >= 3 or metrics is None:
            self._recompute()
        else:
            self.metrics = metrics

    def reset(self) -> None:
        self.mode = CaptureMode.AREA
        self.drawing_enabled = False
        self.points = []
        self.lines = []
        self.pending = None
        self.metrics = ZERO_METRICS

    def _recompute(self) -> None:
        self.metrics = polygon_metrics(self.points)
