from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GeocodeRequest(BaseModel):
    address: Optional[str] = Field(default=None, description="Free-form property address")


class GeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    formatted_address: str


class AerialImageRequest(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    zoom: int = Field(default=20, description="Static map zoom level; the pixel scale assumes 20")


class AerialImageResponse(BaseModel):
    image_url: str
    latitude: float
    longitude: float
    zoom: int
    size: str


class PointModel(BaseModel):
    x: float
    y: float


class CoordinatesModel(BaseModel):
    lat: float
    lng: float


class LineModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: PointModel
    end: PointModel
    length: float = 0.0
    length_meters: float = Field(default=0.0, alias="lengthMeters")


class SnapshotModel(BaseModel):
    """Wire shape of a saved measurement snapshot (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., min_length=1)
    coordinates: CoordinatesModel
    area: float = 0.0
    perimeter: float = 0.0
    area_meters: float = Field(default=0.0, alias="areaMeters")
    perimeter_meters: float = Field(default=0.0, alias="perimeterMeters")
    points: List[PointModel] = Field(default_factory=list)
    lines: List[LineModel] = Field(default_factory=list)
    total_line_length: float = Field(default=0.0, alias="totalLineLength")
    total_line_length_meters: float = Field(default=0.0, alias="totalLineLengthMeters")
    timestamp: Optional[str] = None


class MeasurementRecord(BaseModel):
    id: str
    property_address: str
    created_at: datetime
    updated_at: datetime
    snapshot: Dict[str, Any]


class SaveResponse(BaseModel):
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None


class SearchRequest(BaseModel):
    address: str = ""


class SurfaceRectModel(BaseModel):
    left: float
    top: float
    width: float
    height: float


class ClickRequest(BaseModel):
    client_x: float
    client_y: float
    rect: Optional[SurfaceRectModel] = Field(
        default=None,
        description="Rendered surface box; omit when the coordinates are already surface pixels",
    )


class DrawingRequest(BaseModel):
    enabled: Optional[bool] = Field(default=None, description="Omit to toggle")


class ScrapeRequest(BaseModel):
    url: Optional[str] = None


class ProductResponse(BaseModel):
    url: str
    name: str
    price: float
    unit_type: str
    coverage_area: float
    currency: str
    sku: Optional[str] = None
    last_updated: Optional[str] = None
    stale: bool = False
