"""
Pytest configuration and shared fixtures.

External services are replaced with in-process fakes; nothing here touches
the network. HTTP-level tests mock requests with the ``responses`` library.
"""
from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from roofing.cache import MemorySnapshotStore
from roofing.errors import ServiceError
from roofing.snapshot import SavedMeasurementSnapshot
from roofing.workflow import AerialImage, GeocodeResult, WorkflowController


class FakeGeocoder:
    """Resolves every address to a fixed coordinate, recording the calls."""

    def __init__(self, formatted: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.formatted = formatted or {}
        self.error = error
        self.calls: List[str] = []
        self.before_return = None

    def __call__(self, address: str) -> GeocodeResult:
        self.calls.append(address)
        if self.before_return is not None:
            self.before_return(address)
        if self.error is not None:
            raise self.error
        return GeocodeResult(
            latitude=43.65,
            longitude=-79.38,
            formatted_address=self.formatted.get(address, address),
        )


class FakeImageFetcher:
    def __init__(self):
        self.calls: List[tuple] = []

    def __call__(self, latitude: float, longitude: float, zoom: int) -> AerialImage:
        self.calls.append((latitude, longitude, zoom))
        return AerialImage(
            image_url=f"https://maps.example.test/static?center={latitude},{longitude}&zoom={zoom}",
            latitude=latitude,
            longitude=longitude,
            zoom=zoom,
        )


class FakeRepository:
    """Exact, case-insensitive address store that records lookups and saves."""

    def __init__(self):
        self.records: Dict[str, SavedMeasurementSnapshot] = {}
        self.lookups: List[str] = []
        self.saved: List[SavedMeasurementSnapshot] = []
        self.lookup_error: Optional[Exception] = None
        self.save_error: Optional[Exception] = None

    def add(self, snapshot: SavedMeasurementSnapshot) -> None:
        self.records[snapshot.address.lower()] = snapshot

    def find_by_address(self, address: str) -> Optional[SavedMeasurementSnapshot]:
        self.lookups.append(address)
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.records.get(address.lower())

    def upsert(self, snapshot: SavedMeasurementSnapshot) -> str:
        if self.save_error is not None:
            raise self.save_error
        self.saved.append(snapshot)
        self.add(snapshot)
        return f"rec-{len(self.saved)}"


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def image_fetcher():
    return FakeImageFetcher()


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def cache():
    return MemorySnapshotStore()


@pytest.fixture
def make_controller(geocoder, image_fetcher, repository, cache):
    def _make(**kwargs) -> WorkflowController:
        return WorkflowController(
            kwargs.pop("resolve_address", geocoder),
            kwargs.pop("fetch_aerial_image", image_fetcher),
            kwargs.pop("remote_store", repository),
            kwargs.pop("cache", cache),
            **kwargs,
        )

    return _make


@pytest.fixture
def failing_repository():
    repo = FakeRepository()
    repo.save_error = ServiceError("disk full")
    return repo
