from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from api import models
from api.errors import to_http_error
from api.services import storage
from api.services.materials import estimate_materials
from api.services.storage import snapshot_from_record
from roofing.errors import MeasurementError
from roofing.snapshot import SavedMeasurementSnapshot

LOG = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[models.MeasurementRecord])
async def list_measurements() -> list[dict[str, object]]:
    try:
        return storage.MEASUREMENTS.list()
    except MeasurementError as exc:
        raise to_http_error(exc) from exc


@router.get("", response_model=list[models.MeasurementRecord])
async def list_measurements_no_slash() -> list[dict[str, object]]:
    return await list_measurements()


@router.post("/", response_model=models.SaveResponse)
async def save_measurements(payload: models.SnapshotModel) -> models.SaveResponse:
    snapshot = SavedMeasurementSnapshot.from_dict(payload.model_dump(by_alias=True))
    try:
        record_id = storage.MEASUREMENTS.upsert(snapshot)
    except MeasurementError as exc:
        LOG.warning("Saving measurements for %s failed: %s", snapshot.address, exc)
        return models.SaveResponse(success=False, error=str(exc))
    return models.SaveResponse(success=True, id=record_id)


@router.post("", response_model=models.SaveResponse)
async def save_measurements_no_slash(payload: models.SnapshotModel) -> models.SaveResponse:
    return await save_measurements(payload)


@router.get("/lookup", response_model=models.SnapshotModel)
async def lookup_measurements(address: str) -> dict[str, object]:
    if not address.strip():
        raise HTTPException(status_code=400, detail="Address is required.")
    try:
        snapshot = storage.MEASUREMENTS.find_by_address(address)
    except MeasurementError as exc:
        raise to_http_error(exc) from exc
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No measurements saved for this address.")
    return snapshot.to_dict()


@router.get("/{record_id}", response_model=models.MeasurementRecord)
async def read_measurements(record_id: str) -> dict[str, object]:
    record = storage.MEASUREMENTS.get(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Measurements not found.")
    return record


@router.delete("/{record_id}")
async def delete_measurements(record_id: str) -> dict[str, object]:
    if not storage.MEASUREMENTS.delete(record_id):
        raise HTTPException(status_code=404, detail="Measurements not found.")
    return {"deleted": True, "id": record_id}


@router.get("/{record_id}/materials")
async def read_materials(record_id: str) -> dict[str, object]:
    """Material quantities and fallback-priced costs for a saved record."""
    record = storage.MEASUREMENTS.get(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Measurements not found.")
    try:
        snapshot = snapshot_from_record(record)
    except MeasurementError as exc:
        raise to_http_error(exc) from exc
    estimate = estimate_materials(
        snapshot.metrics.area_ft2,
        snapshot.metrics.perimeter_ft,
        snapshot.total_line_length_ft,
    )
    estimate["id"] = record_id
    estimate["property_address"] = record.get("property_address")
    return estimate
