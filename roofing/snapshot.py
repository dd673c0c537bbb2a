"""The durable, address-keyed measurement record."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from roofing.capture import CaptureState
from roofing.geometry import (
    ZERO_METRICS,
    LineMeasurement,
    Point,
    PolygonMetrics,
    total_line_length,
    total_line_length_meters,
)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _number(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class SavedMeasurementSnapshot:
    address: str
    coordinates: Coordinates
    metrics: PolygonMetrics = ZERO_METRICS
    points: List[Point] = field(default_factory=list)
    lines: List[LineMeasurement] = field(default_factory=list)
    total_line_length_ft: float = 0.0
    total_line_length_m: float = 0.0
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def is_meaningful(self) -> bool:
        return self.metrics.area_ft2 > 0 or len(self.lines) > 0

    @classmethod
    def capture(
        cls,
        address: str,
        coordinates: Coordinates,
        capture: CaptureState,
        timestamp: Optional[str] = None,
    ) -> "SavedMeasurementSnapshot":
        """Materialise a snapshot from live capture state without mutating it."""
        return cls(
            address=address,
            coordinates=coordinates,
            metrics=capture.metrics,
            points=list(capture.points),
            lines=list(capture.lines),
            total_line_length_ft=capture.total_line_length_ft,
            total_line_length_m=capture.total_line_length_m,
            timestamp=timestamp or utc_timestamp(),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "address": self.address,
            "coordinates": self.coordinates.to_dict(),
            "area": self.metrics.area_ft2,
            "perimeter": self.metrics.perimeter_ft,
            "areaMeters": self.metrics.area_m2,
            "perimeterMeters": self.metrics.perimeter_m,
            "points": [p.to_dict() for p in self.points],
            "lines": [line.to_dict() for line in self.lines],
            "totalLineLength": self.total_line_length_ft,
            "totalLineLengthMeters": self.total_line_length_m,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SavedMeasurementSnapshot":
        coords = payload.get("coordinates") or {}
        lines = [LineMeasurement.from_dict(item) for item in payload.get("lines") or []]
        metrics = PolygonMetrics(
            area_ft2=_number(payload.get("area")),
            perimeter_ft=_number(payload.get("perimeter")),
            area_m2=_number(payload.get("areaMeters")),
            perimeter_m=_number(payload.get("perimeterMeters")),
        )
        return cls(
            address=str(payload.get("address") or ""),
            coordinates=Coordinates(lat=_number(coords.get("lat")), lng=_number(coords.get("lng"))),
            metrics=metrics,
            points=[Point.from_dict(item) for item in payload.get("points") or []],
            lines=lines,
            total_line_length_ft=total_line_length(lines),
            total_line_length_m=total_line_length_meters(lines),
            timestamp=str(payload.get("timestamp") or utc_timestamp()),
        )
