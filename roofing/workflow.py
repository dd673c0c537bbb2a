"""Workflow sequencing and persistence for one measurement session.

The controller owns a :class:`MeasurementSession` aggregate and keeps three
representations consistent: the live capture state, the locally cached
snapshot, and the remote store keyed by property address. External services
are injected; the controller itself never performs network I/O.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from roofing.cache import LocalSnapshotStore
from roofing.capture import CaptureState
from roofing.constants import AERIAL_ZOOM, CACHE_KEY, CaptureMode, WorkflowStep
from roofing.drawing import DEFAULT_SURFACE, PointerEvent, SurfaceRect, SurfaceSize, surface_state, to_surface_coordinates
from roofing.errors import InputValidationError, MeasurementError, ServiceError, ServiceTimeout
from roofing.geometry import Point
from roofing.snapshot import Coordinates, SavedMeasurementSnapshot

LOG = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "The request timed out. Please try again."
LOADED_MESSAGE = "Previous measurements loaded for this address!"


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "formattedAddress": self.formatted_address,
        }


@dataclass(frozen=True)
class AerialImage:
    image_url: str
    latitude: float
    longitude: float
    zoom: int = AERIAL_ZOOM
    size: str = "640x640"

    def to_dict(self) -> Dict[str, object]:
        return {
            "imageUrl": self.image_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "zoom": self.zoom,
            "size": self.size,
        }


class SnapshotRepository(Protocol):
    def find_by_address(self, address: str) -> Optional[SavedMeasurementSnapshot]:
        ...

    def upsert(self, snapshot: SavedMeasurementSnapshot) -> str:
        ...


AddressResolver = Callable[[str], GeocodeResult]
AerialImageFetcher = Callable[[float, float, int], AerialImage]


@dataclass
class SaveResult:
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class MeasurementSession:
    address: str = ""
    location: Optional[GeocodeResult] = None
    aerial_image: Optional[AerialImage] = None
    step: WorkflowStep = WorkflowStep.ADDRESS
    capture: CaptureState = field(default_factory=CaptureState)
    snapshot: Optional[SavedMeasurementSnapshot] = None
    saved_id: Optional[str] = None
    loading: bool = False
    error: str = ""
    notice: str = ""

    def advance_to(self, step: WorkflowStep) -> None:
        if step > self.step:
            self.step = step

    def to_dict(self) -> Dict[str, Any]:
        capture = self.capture
        return {
            "address": self.address,
            "location": self.location.to_dict() if self.location else None,
            "aerial_image": self.aerial_image.to_dict() if self.aerial_image else None,
            "step": int(self.step),
            "step_name": self.step.name,
            "capture_state": capture.state,
            "surface": surface_state(capture),
            "area_ft2": capture.metrics.area_ft2,
            "perimeter_ft": capture.metrics.perimeter_ft,
            "area_m2": capture.metrics.area_m2,
            "perimeter_m": capture.metrics.perimeter_m,
            "total_line_length_ft": capture.total_line_length_ft,
            "total_line_length_m": capture.total_line_length_m,
            "is_drawing_line": capture.is_drawing_line,
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "saved_id": self.saved_id,
            "loading": self.loading,
            "error": self.error,
            "notice": self.notice,
        }


class WorkflowController:
    def __init__(
        self,
        resolve_address: AddressResolver,
        fetch_aerial_image: AerialImageFetcher,
        remote_store: SnapshotRepository,
        cache: LocalSnapshotStore,
        *,
        cache_key: str = CACHE_KEY,
        surface: SurfaceSize = DEFAULT_SURFACE,
        session: Optional[MeasurementSession] = None,
    ):
        self._resolve_address = resolve_address
        self._fetch_aerial_image = fetch_aerial_image
        self._remote_store = remote_store
        self._cache = cache
        self._cache_key = cache_key
        self._generation = 0
        self.surface = surface
        self.session = session or MeasurementSession()
        self._restore_from_cache()

    # ------------------------------------------------------------------
    # Address search
    # ------------------------------------------------------------------
    def search(self, address: str) -> MeasurementSession:
        """Resolve ``address`` and load any stored measurements for it.

        Everything from the previous search is discarded before the geocode
        request is issued. If another search or a reset starts while this one
        is waiting on a collaborator, this search's results are dropped.
        """
        address = (address or "").strip()
        if not address:
            raise InputValidationError("Address is required.")

        self.clear_all_measurements()
        generation = self._generation
        session = self.session
        session.address = address
        session.loading = True

        try:
            location = self._resolve_address(address)
            if not self._is_current(generation):
                return session
            session.location = location

            record = self._lookup_snapshot(address, location.formatted_address)
            if not self._is_current(generation):
                return session
            if record is not None:
                self._materialize(record)

            image = self._fetch_aerial_image(location.latitude, location.longitude, AERIAL_ZOOM)
            if not self._is_current(generation):
                return session
            session.aerial_image = image
            if record is None:
                session.advance_to(WorkflowStep.AERIAL_VIEW)
            self._sync_cache()
        except ServiceTimeout as exc:
            LOG.warning("Search for %r timed out: %s", address, exc)
            if self._is_current(generation):
                self._roll_back_search(address, TIMEOUT_MESSAGE)
            raise
        except MeasurementError as exc:
            LOG.warning("Search for %r failed: %s", address, exc)
            if self._is_current(generation):
                self._roll_back_search(address, str(exc))
            raise
        finally:
            if self._is_current(generation):
                session.loading = False
        return session

    def _lookup_snapshot(self, address: str, formatted_address: str) -> Optional[SavedMeasurementSnapshot]:
        candidates = [address]
        if formatted_address and formatted_address.strip().lower() != address.lower():
            candidates.append(formatted_address)
        for candidate in candidates:
            try:
                record = self._remote_store.find_by_address(candidate)
            except ServiceError as exc:
                LOG.warning("Snapshot lookup for %r failed: %s", candidate, exc)
                continue
            if record is not None:
                LOG.info("Found stored measurements for %r", candidate)
                return record
        return None

    def _materialize(self, record: SavedMeasurementSnapshot) -> None:
        session = self.session
        capture = session.capture
        capture.restore(record.points, record.lines, record.metrics)
        capture.set_mode(CaptureMode.LINES if record.lines else CaptureMode.AREA)
        session.snapshot = record
        session.step = WorkflowStep.MEASURE
        session.notice = LOADED_MESSAGE

    def _roll_back_search(self, address: str, message: str) -> None:
        self._reset_session()
        self._cache.delete(self._cache_key)
        self.session.address = address
        self.session.error = message

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    def click(self, event: PointerEvent, rect: SurfaceRect) -> bool:
        return self.click_point(to_surface_coordinates(event, rect, self.surface))

    def click_point(self, point: Point) -> bool:
        capture = self.session.capture
        if not capture.click(point, self.surface):
            return False
        if capture.mode is CaptureMode.AREA and len(capture.points) >= 3:
            self.session.advance_to(WorkflowStep.MEASURE)
        self._sync_cache()
        return True

    def set_drawing(self, enabled: bool) -> MeasurementSession:
        self.session.capture.set_drawing(enabled)
        return self.session

    def toggle_drawing(self) -> MeasurementSession:
        self.session.capture.toggle_drawing()
        return self.session

    def go_to_next_step(self) -> MeasurementSession:
        session = self.session
        if session.capture.next_mode():
            if session.step >= WorkflowStep.MEASURE:
                session.step = WorkflowStep.REVIEW
            self._sync_cache()
        return session

    def go_to_previous_step(self) -> MeasurementSession:
        session = self.session
        if session.capture.previous_mode():
            if session.step == WorkflowStep.REVIEW:
                session.step = WorkflowStep.MEASURE
            self._sync_cache()
        return session

    def clear_drawing(self) -> MeasurementSession:
        self.session.capture.clear_drawing()
        self._sync_cache()
        return self.session

    def clear_lines(self) -> MeasurementSession:
        self.session.capture.clear_lines()
        self._sync_cache()
        return self.session

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def clear_all_measurements(self) -> MeasurementSession:
        self._generation += 1
        self._cache.delete(self._cache_key)
        self._reset_session()
        return self.session

    def reload_measurements(self) -> MeasurementSession:
        snapshot = self._read_cache()
        if snapshot is None:
            return self.session
        session = self.session
        session.capture.restore(snapshot.points, snapshot.lines, snapshot.metrics)
        session.snapshot = snapshot
        if snapshot.is_meaningful:
            session.advance_to(WorkflowStep.MEASURE)
            if snapshot.lines:
                session.capture.set_mode(CaptureMode.LINES)
        return session

    def save(self) -> SaveResult:
        session = self.session
        snapshot = session.snapshot
        if snapshot is None or not snapshot.is_meaningful:
            raise InputValidationError("There are no measurements to save.")
        try:
            record_id = self._remote_store.upsert(snapshot)
        except MeasurementError as exc:
            LOG.warning("Saving measurements for %r failed: %s", snapshot.address, exc)
            return SaveResult(success=False, error=str(exc) or "Failed to save measurements")
        LOG.info("Saved measurements for %r as %s", snapshot.address, record_id)
        session.saved_id = record_id
        session.error = ""
        if session.capture.mode is CaptureMode.LINES:
            session.advance_to(WorkflowStep.REVIEW)
        return SaveResult(success=True, id=record_id)

    def _sync_cache(self) -> None:
        """Mirror the live measurements to the cache and the snapshot pointer.

        Meaningful measurements overwrite the whole cached blob. Once the
        measurements stop being meaningful the cached copy and the pointer are
        dropped so a stale snapshot cannot be saved later.
        """
        session = self.session
        location = session.location
        if location is None:
            return
        snapshot = SavedMeasurementSnapshot.capture(
            address=location.formatted_address,
            coordinates=Coordinates(lat=location.latitude, lng=location.longitude),
            capture=session.capture,
        )
        if snapshot.is_meaningful:
            self._cache.set(self._cache_key, snapshot.to_dict())
            session.snapshot = snapshot
        elif session.snapshot is not None:
            self._cache.delete(self._cache_key)
            session.snapshot = None

    def _read_cache(self) -> Optional[SavedMeasurementSnapshot]:
        blob = self._cache.get(self._cache_key)
        if not blob:
            return None
        try:
            return SavedMeasurementSnapshot.from_dict(blob)
        except (KeyError, TypeError, ValueError) as exc:
            LOG.warning("Discarding malformed cached measurements: %s", exc)
            return None

    def _restore_from_cache(self) -> None:
        # The snapshot pointer is only set by a search or an explicit reload.
        snapshot = self._read_cache()
        if snapshot is None:
            return
        has_area = snapshot.metrics.area_ft2 > 0
        self.session.capture.restore(
            snapshot.points if has_area else [],
            snapshot.lines,
            snapshot.metrics if has_area else None,
        )

    def _reset_session(self) -> None:
        session = self.session
        session.address = ""
        session.location = None
        session.aerial_image = None
        session.step = WorkflowStep.ADDRESS
        session.capture.reset()
        session.snapshot = None
        session.saved_id = None
        session.loading = False
        session.error = ""
        session.notice = ""
