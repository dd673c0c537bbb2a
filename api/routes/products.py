from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from api import models
from api.services import products, storage
from roofing.errors import InputValidationError, ServiceError, ServiceTimeout

LOG = logging.getLogger(__name__)
router = APIRouter()


def _to_response(record: dict[str, object]) -> models.ProductResponse:
    last_updated = record.get("last_updated")
    stale = products.is_product_stale(last_updated) if isinstance(last_updated, str) else False
    return models.ProductResponse(
        url=record["url"],
        name=record["name"],
        price=record["price"],
        unit_type=record["unit_type"],
        coverage_area=record["coverage_area"],
        currency=record["currency"],
        sku=record.get("sku"),
        last_updated=last_updated,
        stale=stale,
    )


@router.post("/scrape", response_model=models.ProductResponse)
def scrape_product(payload: models.ScrapeRequest) -> models.ProductResponse:
    url = (payload.url or "").strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")
    try:
        result = products.SCRAPER.scrape(url)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ServiceTimeout as exc:
        LOG.warning("Scrape timed out for %s", url)
        raise HTTPException(status_code=408, detail=str(exc)) from exc
    except ServiceError as exc:
        LOG.warning("Scrape upstream error for %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=f"Website error: {exc}") from exc
    except products.ExtractionError as exc:
        LOG.warning("Scrape extraction failed for %s: %s", url, exc)
        raise HTTPException(status_code=500, detail=f"Scraping failed: {exc}") from exc
    record = storage.PRODUCTS.upsert(result.to_dict())
    return _to_response(record)


@router.get("/", response_model=models.ProductResponse)
async def read_product(url: str) -> models.ProductResponse:
    record = storage.PRODUCTS.get(url)
    if not record:
        raise HTTPException(status_code=404, detail="Product not found.")
    return _to_response(record)
