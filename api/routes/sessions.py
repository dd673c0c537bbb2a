from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, HTTPException

import roof_lookup
from api import models
from api.errors import to_http_error
from api.services import storage
from roofing.cache import JsonFileSnapshotStore
from roofing.drawing import PointerEvent, SurfaceRect
from roofing.errors import InputValidationError, MeasurementError
from roofing.geometry import Point
from roofing.workflow import AerialImage, GeocodeResult, WorkflowController

LOG = logging.getLogger(__name__)
router = APIRouter()

SESSION_CACHE_ROOT = Path(os.getenv("SESSION_CACHE_ROOT", Path("storage") / "sessions"))

# naive in-memory session store; each session caches its snapshot on disk
SESSIONS: dict[str, WorkflowController] = {}


def _resolve_address(address: str) -> GeocodeResult:
    return roof_lookup.geocode_address(address)


def _fetch_aerial_image(latitude: float, longitude: float, zoom: int) -> AerialImage:
    return roof_lookup.build_aerial_image(latitude, longitude, zoom)


def build_controller(session_id: str) -> WorkflowController:
    return WorkflowController(
        _resolve_address,
        _fetch_aerial_image,
        storage.MEASUREMENTS,
        JsonFileSnapshotStore(SESSION_CACHE_ROOT / session_id),
    )


def _get(session_id: str) -> WorkflowController:
    controller = SESSIONS.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


def _state(session_id: str, controller: WorkflowController) -> dict[str, object]:
    payload = controller.session.to_dict()
    payload["id"] = session_id
    return payload


@router.post("/")
async def create_session() -> dict[str, object]:
    session_id = uuid4().hex
    controller = build_controller(session_id)
    SESSIONS[session_id] = controller
    LOG.info("Created measurement session %s", session_id)
    return _state(session_id, controller)


@router.post("")
async def create_session_no_slash() -> dict[str, object]:
    return await create_session()


@router.get("/{session_id}")
async def read_session(session_id: str) -> dict[str, object]:
    return _state(session_id, _get(session_id))


@router.delete("/{session_id}")
async def close_session(session_id: str) -> dict[str, object]:
    controller = SESSIONS.pop(session_id, None)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    controller.clear_all_measurements()
    session_dir = SESSION_CACHE_ROOT / session_id
    if session_dir.exists():
        shutil.rmtree(session_dir)
    LOG.info("Closed measurement session %s", session_id)
    return {"closed": True, "id": session_id}


@router.post("/{session_id}/search")
async def search_address(session_id: str, payload: models.SearchRequest) -> dict[str, object]:
    controller = _get(session_id)
    try:
        controller.search(payload.address)
    except MeasurementError as exc:
        raise to_http_error(exc) from exc
    return _state(session_id, controller)


@router.post("/{session_id}/clicks")
async def click(session_id: str, payload: models.ClickRequest) -> dict[str, object]:
    controller = _get(session_id)
    try:
        if payload.rect is None:
            applied = controller.click_point(Point(payload.client_x, payload.client_y))
        else:
            rect = SurfaceRect(**payload.rect.model_dump())
            applied = controller.click(PointerEvent(payload.client_x, payload.client_y), rect)
    except InputValidationError as exc:
        raise to_http_error(exc) from exc
    state = _state(session_id, controller)
    state["applied"] = applied
    return state


@router.post("/{session_id}/drawing")
async def set_drawing(session_id: str, payload: models.DrawingRequest) -> dict[str, object]:
    controller = _get(session_id)
    if payload.enabled is None:
        controller.toggle_drawing()
    else:
        controller.set_drawing(payload.enabled)
    return _state(session_id, controller)


@router.post("/{session_id}/next")
async def next_step(session_id: str) -> dict[str, object]:
    controller = _get(session_id)
    controller.go_to_next_step()
    return _state(session_id, controller)


@router.post("/{session_id}/previous")
async def previous_step(session_id: str) -> dict[str, object]:
    controller = _get(session_id)
    controller.go_to_previous_step()
    return _state(session_id, controller)


@router.delete("/{session_id}/drawing")
async def clear_drawing(session_id: str) -> dict[str, object]:
    controller = _get(session_id)
    controller.clear_drawing()
    return _state(session_id, controller)


@router.delete("/{session_id}/lines")
async def clear_lines(session_id: str) -> dict[str, object]:
    controller = _get(session_id)
    controller.clear_lines()
    return _state(session_id, controller)


@router.post("/{session_id}/reset")
async def clear_all(session_id: str) -> dict[str, object]:
    controller = _get(session_id)
    controller.clear_all_measurements()
    return _state(session_id, controller)


@router.post("/{session_id}/reload")
async def reload(session_id: str) -> dict[str, object]:
    controller = _get(session_id)
    controller.reload_measurements()
    return _state(session_id, controller)


@router.post("/{session_id}/save", response_model=models.SaveResponse)
async def save(session_id: str) -> models.SaveResponse:
    controller = _get(session_id)
    try:
        result = controller.save()
    except InputValidationError as exc:
        raise to_http_error(exc) from exc
    return models.SaveResponse(success=result.success, id=result.id, error=result.error)
