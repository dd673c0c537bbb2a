"""Pixel-space polygon and line metrics converted to real-world units.

All conversions go through ``METERS_PER_PIXEL`` first and then the fixed
metric-to-imperial factors, so the feet and meter values of one measurement
always come from the same pixel quantity.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence

from shapely.geometry import Polygon

from roofing.constants import FEET_PER_METER, METERS_PER_PIXEL, SQFT_PER_SQM


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, payload: Dict[str, object]) -> "Point":
        return cls(x=float(payload["x"]), y=float(payload["y"]))


@dataclass(frozen=True)
class Distance:
    feet: float
    meters: float


@dataclass(frozen=True)
class LineMeasurement:
    """A committed segment. Build it with :func:`line_measurement`."""

    start: Point
    end: Point
    length_ft: float
    length_m: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "length": self.length_ft,
            "lengthMeters": self.length_m,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, object]) -> "LineMeasurement":
        # Stored lengths are ignored; they are re-derived from the endpoints.
        return line_measurement(Point.from_dict(payload["start"]), Point.from_dict(payload["end"]))


@dataclass(frozen=True)
class PolygonMetrics:
    area_ft2: float
    perimeter_ft: float
    area_m2: float
    perimeter_m: float


ZERO_METRICS = PolygonMetrics(area_ft2=0.0, perimeter_ft=0.0, area_m2=0.0, perimeter_m=0.0)


def polygon_metrics(points: Sequence[Point]) -> PolygonMetrics:
    """Area and perimeter of the closed ring through ``points``.

    Fewer than three vertices measure as zero. Winding direction and starting
    vertex do not change the result. The ring is measured as given, without
    validation or repair.
    """
    if len(points) < 3:
        return ZERO_METRICS

    ring = Polygon([(p.x, p.y) for p in points])
    area_px = ring.area
    perimeter_px = ring.length

    area_m2 = area_px * (METERS_PER_PIXEL * METERS_PER_PIXEL)
    perimeter_m = perimeter_px * METERS_PER_PIXEL
    return PolygonMetrics(
        area_ft2=area_m2 * SQFT_PER_SQM,
        perimeter_ft=perimeter_m * FEET_PER_METER,
        area_m2=area_m2,
        perimeter_m=perimeter_m,
    )


def distance(a: Point, b: Point) -> Distance:
    meters = math.hypot(b.x - a.x, b.y - a.y) * METERS_PER_PIXEL
    return Distance(feet=meters * FEET_PER_METER, meters=meters)


def line_measurement(start: Point, end: Point) -> LineMeasurement:
    span = distance(start, end)
    return LineMeasurement(start=start, end=end, length_ft=span.feet, length_m=span.meters)


def total_line_length(lines: Iterable[LineMeasurement]) -> float:
    """Summed length in feet."""
    return sum(line.length_ft for line in lines)


def total_line_length_meters(lines: Iterable[LineMeasurement]) -> float:
    return sum(line.length_m for line in lines)
