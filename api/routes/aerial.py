from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

import roof_lookup
from api import models
from api.errors import to_http_error
from roofing.errors import MeasurementError

LOG = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=models.AerialImageResponse)
async def aerial_image(payload: models.AerialImageRequest) -> models.AerialImageResponse:
    if payload.latitude is None or payload.longitude is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude are required")
    try:
        image = roof_lookup.build_aerial_image(payload.latitude, payload.longitude, payload.zoom)
    except MeasurementError as exc:
        LOG.warning("Aerial image failed for %s,%s: %s", payload.latitude, payload.longitude, exc)
        raise to_http_error(exc) from exc
    return models.AerialImageResponse(
        image_url=image.image_url,
        latitude=image.latitude,
        longitude=image.longitude,
        zoom=image.zoom,
        size=image.size,
    )


@router.post("", response_model=models.AerialImageResponse)
async def aerial_image_no_slash(payload: models.AerialImageRequest) -> models.AerialImageResponse:
    return await aerial_image(payload)
