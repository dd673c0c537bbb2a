"""JSON-file stores for saved roof measurements and scraped product prices.

Each record lives in its own ``<slug>.json`` file. Measurements are keyed by
property address and products by URL, so saving twice replaces the record in
place instead of adding a second one.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from roofing.errors import ServiceError
from roofing.snapshot import SavedMeasurementSnapshot, utc_timestamp

LOG = logging.getLogger(__name__)

MEASUREMENT_ROOT = Path(os.getenv("MEASUREMENT_STORAGE_ROOT", Path("storage") / "measurements"))
PRODUCT_ROOT = Path(os.getenv("PRODUCT_STORAGE_ROOT", Path("storage") / "products"))


def _now() -> str:
    return utc_timestamp()


def _normalize_address(address: str) -> str:
    return re.sub(r"\s+", " ", (address or "").strip()).lower()


def _slugify(value: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", value.strip()).strip("-").lower()
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()[:8]
    return f"{slug[:80]}-{digest}" if slug else digest


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, path)
    except OSError as exc:
        raise ServiceError("Failed to write record.", {"path": str(path), "error": str(exc)}) from exc


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        LOG.warning("Skipping corrupted record %s", path)
        return None
    except OSError as exc:
        raise ServiceError("Failed to read record.", {"path": str(path), "error": str(exc)}) from exc


def snapshot_from_record(record: Dict[str, Any]) -> SavedMeasurementSnapshot:
    try:
        return SavedMeasurementSnapshot.from_dict(record["snapshot"])
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ServiceError("Stored measurement record is malformed.", {"id": record.get("id")}) from exc


class MeasurementRepository:
    """Remote snapshot store with upsert-by-address semantics."""

    def __init__(self, root: Path = MEASUREMENT_ROOT):
        self.root = Path(root)

    def _path(self, address: str) -> Path:
        return self.root / f"{_slugify(_normalize_address(address))}.json"

    def _records(self) -> List[Dict[str, Any]]:
        if not self.root.exists():
            return []
        records: List[Dict[str, Any]] = []
        for path in sorted(self.root.glob("*.json")):
            payload = _read_json(path)
            if payload is not None:
                records.append(payload)
        return records

    def upsert(self, snapshot: SavedMeasurementSnapshot) -> str:
        if not snapshot.address.strip():
            raise ServiceError("Measurements need a property address to be saved.")
        path = self._path(snapshot.address)
        existing = _read_json(path) if path.exists() else None
        now = _now()
        record = {
            "id": existing.get("id") if existing else uuid4().hex,
            "property_address": snapshot.address,
            "created_at": existing.get("created_at", now) if existing else now,
            "updated_at": now,
            "snapshot": snapshot.to_dict(),
        }
        _write_json(path, record)
        LOG.info("Upserted measurements %s for %s", record["id"], snapshot.address)
        return record["id"]

    def find_by_address(self, address: str) -> Optional[SavedMeasurementSnapshot]:
        """Exact match first, then case-insensitive, then substring; first hit wins."""
        needle = _normalize_address(address)
        if not needle:
            return None
        path = self._path(address)
        if path.exists():
            record = _read_json(path)
            if record is not None:
                return snapshot_from_record(record)

        records = self._records()
        for record in records:
            if _normalize_address(record.get("property_address", "")) == needle:
                return snapshot_from_record(record)
        for record in records:
            if needle in _normalize_address(record.get("property_address", "")):
                return snapshot_from_record(record)
        return None

    def list(self) -> List[Dict[str, Any]]:
        return sorted(self._records(), key=lambda item: item.get("updated_at") or "", reverse=True)

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self._records():
            if record.get("id") == record_id:
                return record
        return None

    def delete(self, record_id: str) -> bool:
        if not self.root.exists():
            return False
        for path in self.root.glob("*.json"):
            record = _read_json(path)
            if record and record.get("id") == record_id:
                path.unlink()
                LOG.info("Deleted measurements %s", record_id)
                return True
        return False


class ProductRepository:
    """Scraped product prices keyed by product URL."""

    def __init__(self, root: Path = PRODUCT_ROOT):
        self.root = Path(root)

    def _path(self, url: str) -> Path:
        return self.root / f"{hashlib.sha1(url.encode('utf-8')).hexdigest()}.json"

    def upsert(self, product: Dict[str, Any]) -> Dict[str, Any]:
        url = product["url"]
        path = self._path(url)
        existing = _read_json(path) if path.exists() else None
        now = _now()
        record = dict(product)
        record["id"] = existing.get("id") if existing else uuid4().hex
        record["created_at"] = existing.get("created_at", now) if existing else now
        record["last_updated"] = now
        _write_json(path, record)
        return record

    def get(self, url: str) -> Optional[Dict[str, Any]]:
        path = self._path(url)
        if not path.exists():
            return None
        return _read_json(path)


MEASUREMENTS = MeasurementRepository()
PRODUCTS = ProductRepository()
