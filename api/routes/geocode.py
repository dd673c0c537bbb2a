from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

import roof_lookup
from api import models
from api.errors import to_http_error
from roofing.errors import MeasurementError

LOG = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=models.GeocodeResponse)
async def geocode(payload: models.GeocodeRequest) -> models.GeocodeResponse:
    """Resolve a free-form address to coordinates and a formatted address."""
    if not (payload.address or "").strip():
        raise HTTPException(status_code=400, detail="Address is required")
    try:
        result = roof_lookup.geocode_address(payload.address)
    except MeasurementError as exc:
        LOG.warning("Geocode failed for %s: %s", payload.address, exc)
        raise to_http_error(exc) from exc
    return models.GeocodeResponse(
        latitude=result.latitude,
        longitude=result.longitude,
        formatted_address=result.formatted_address,
    )


@router.post("", response_model=models.GeocodeResponse)
async def geocode_no_slash(payload: models.GeocodeRequest) -> models.GeocodeResponse:
    return await geocode(payload)
