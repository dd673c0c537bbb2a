"""Calibration values and enumerations shared by the measurement core."""
from __future__ import annotations

from enum import Enum, IntEnum

# Ground distance covered by one pixel of a 640x640 satellite image at zoom 20.
# Changing the zoom level or image size invalidates this value.
METERS_PER_PIXEL = 0.10275229357

SQFT_PER_SQM = 10.7639
FEET_PER_METER = 3.28084

SURFACE_WIDTH = 640
SURFACE_HEIGHT = 640
AERIAL_ZOOM = 20
AERIAL_MAPTYPE = "satellite"

CACHE_KEY = "roofing-measurements"


class WorkflowStep(IntEnum):
    ADDRESS = 1
    AERIAL_VIEW = 2
    MEASURE = 3
    REVIEW = 4


class CaptureMode(str, Enum):
    AREA = "area"
    LINES = "lines"
