"""Pointer-to-surface coordinate mapping and renderer-facing capture state."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from roofing.constants import SURFACE_HEIGHT, SURFACE_WIDTH
from roofing.errors import InputValidationError
from roofing.geometry import Point

if TYPE_CHECKING:  # pragma: no cover
    from roofing.capture import CaptureState


@dataclass(frozen=True)
class SurfaceSize:
    """Logical pixel resolution of the drawing surface."""

    width: float = SURFACE_WIDTH
    height: float = SURFACE_HEIGHT


@dataclass(frozen=True)
class SurfaceRect:
    """Bounding box of the surface as rendered in the viewport."""

    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class PointerEvent:
    client_x: float
    client_y: float


DEFAULT_SURFACE = SurfaceSize()


def to_surface_coordinates(
    event: PointerEvent,
    rect: SurfaceRect,
    size: SurfaceSize = DEFAULT_SURFACE,
) -> Point:
    """Map viewport coordinates onto the logical surface, undoing display scaling."""
    if rect.width <= 0 or rect.height <= 0:
        raise InputValidationError(
            "Rendered surface has no area.",
            {"width": rect.width, "height": rect.height},
        )
    scale_x = size.width / rect.width
    scale_y = size.height / rect.height
    return Point(
        x=(event.client_x - rect.left) * scale_x,
        y=(event.client_y - rect.top) * scale_y,
    )


def within_bounds(point: Point, size: SurfaceSize = DEFAULT_SURFACE) -> bool:
    return 0 <= point.x <= size.width and 0 <= point.y <= size.height


def surface_state(capture: "CaptureState") -> Dict[str, object]:
    """Everything a renderer needs to redraw the current capture."""
    pending: Optional[Point] = capture.pending
    return {
        "mode": capture.mode.value,
        "drawing_enabled": capture.drawing_enabled,
        "vertices": [p.to_dict() for p in capture.points],
        "closed": len(capture.points) >= 3,
        "lines": [line.to_dict() for line in capture.lines],
        "pending": pending.to_dict() if pending is not None else None,
    }
