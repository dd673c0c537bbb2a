"""Best-effort product price extraction for roofing material pages.

Kept apart from the measurement core. A page is fetched once per call, then
an ordered chain of extractors is tried and the first complete product wins.
"""
from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from roofing.errors import InputValidationError, MeasurementError, ServiceError, ServiceTimeout

LOG = logging.getLogger(__name__)

SCRAPE_TIMEOUT = float(os.getenv("SCRAPE_TIMEOUT", "15"))
SCRAPE_MIN_INTERVAL = float(os.getenv("SCRAPE_MIN_INTERVAL", "2.0"))
MAX_SEARCH_DEPTH = 10
MAX_PRICE = 10000
STALE_AFTER_DAYS = 7
DEFAULT_CURRENCY = "CAD"

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120 Safari/537.36",
    "Accept-Language": "en-CA,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

UNIT_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"([\d.]+)\s*lin\.?\s*ft", re.IGNORECASE), "linear_foot"),
    (re.compile(r"([\d.]+)\s*sq\.?\s*ft", re.IGNORECASE), "sqft"),
    (re.compile(r"([\d.]+)\s*ft\.?\s*(?:long|lin|linear)", re.IGNORECASE), "linear_foot"),
    (re.compile(r"([\d.]+)\s*ft", re.IGNORECASE), "sqft"),
]


class ExtractionError(MeasurementError):
    """Raised when no extractor yields a product with a name and a price."""


@dataclass
class ProductFact:
    name: str
    price: float
    currency: str = DEFAULT_CURRENCY
    sku: Optional[str] = None


@dataclass
class ProductResult:
    url: str
    name: str
    price: float
    unit_type: str
    coverage_area: float
    currency: str
    sku: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _valid_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price != price or price <= 0 or price > MAX_PRICE:
        return None
    return price


def extract_json_ld(soup: BeautifulSoup) -> Optional[ProductFact]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for item in candidates:
            if not isinstance(item, dict) or item.get("@type") != "Product":
                continue
            offers = item.get("offers") or {}
            if isinstance(offers, list):
                offers = offers[0] if offers else {}
            price = _valid_price(offers.get("price"))
            name = item.get("name")
            if isinstance(name, str) and price is not None:
                return ProductFact(
                    name=name,
                    price=price,
                    currency=offers.get("priceCurrency") or DEFAULT_CURRENCY,
                    sku=item.get("sku"),
                )
    return None


def find_product_object(obj: Any, depth: int = 0) -> Optional[Dict[str, Any]]:
    """Depth-first search for a dict that looks like a product."""
    if depth > MAX_SEARCH_DEPTH:
        return None
    if isinstance(obj, dict):
        if isinstance(obj.get("name"), str) and (obj.get("price") or obj.get("pricing") or obj.get("currentPrice")):
            return obj
        children = list(obj.values())
    elif isinstance(obj, list):
        children = obj
    else:
        return None
    for child in children:
        found = find_product_object(child, depth + 1)
        if found is not None:
            return found
    return None


def extract_next_data(soup: BeautifulSoup) -> Optional[ProductFact]:
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None:
        return None
    try:
        data = json.loads(script.string or script.get_text() or "")
    except json.JSONDecodeError:
        return None
    page_props = ((data or {}).get("props") or {}).get("pageProps")
    product = find_product_object(page_props)
    if product is None:
        return None
    pricing = product.get("pricing") if isinstance(product.get("pricing"), dict) else {}
    raw_price = product.get("price")
    if raw_price is None:
        raw_price = product.get("currentPrice")
    if raw_price is None:
        raw_price = pricing.get("currentPrice", pricing.get("price"))
    price = _valid_price(raw_price)
    if price is None:
        return None
    return ProductFact(name=product["name"], price=price, sku=product.get("sku"))


EXTRACTORS: List[Callable[[BeautifulSoup], Optional[ProductFact]]] = [
    extract_json_ld,
    extract_next_data,
]


def extract_product(html: str) -> Optional[ProductFact]:
    soup = BeautifulSoup(html, "html.parser")
    for extractor in EXTRACTORS:
        fact = extractor(soup)
        if fact is not None:
            LOG.debug("Product extracted by %s", extractor.__name__)
            return fact
    return None


def infer_unit(name: str) -> Tuple[str, float]:
    """Guess the selling unit and coverage from a product name."""
    for pattern, unit in UNIT_PATTERNS:
        match = pattern.search(name)
        if not match:
            continue
        try:
            return unit, float(match.group(1))
        except ValueError:
            continue
    return "unit", 1.0


def is_product_stale(last_updated: str, *, now: Optional[datetime] = None) -> bool:
    stamp = datetime.fromisoformat(last_updated.replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - stamp).total_seconds() / 86400 > STALE_AFTER_DAYS


class ProductScraper:
    """Fetches product pages with a per-domain request spacing gate."""

    def __init__(
        self,
        *,
        min_interval: float = SCRAPE_MIN_INTERVAL,
        timeout: float = SCRAPE_TIMEOUT,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self.timeout = timeout
        self.session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep
        self._last_request: Dict[str, float] = {}

    def _wait_for_slot(self, domain: str) -> None:
        last = self._last_request.get(domain)
        if last is not None:
            elapsed = self._clock() - last
            if elapsed < self.min_interval:
                wait = self.min_interval - elapsed
                LOG.debug("Spacing requests to %s, waiting %.2fs", domain, wait)
                self._sleep(wait)
        self._last_request[domain] = self._clock()

    def fetch(self, url: str) -> str:
        domain = urlparse(url).hostname
        if not domain:
            raise InputValidationError("URL is required", {"url": url})
        self._wait_for_slot(domain)
        try:
            response = self.session.get(url, headers=BROWSER_HEADERS, timeout=self.timeout)
        except requests.Timeout as exc:
            raise ServiceTimeout(
                "Request timeout - website took too long to respond", {"url": url}
            ) from exc
        except requests.RequestException as exc:
            raise ServiceError(f"Request failed: {exc}", {"url": url}) from exc
        if not response.ok:
            raise ServiceError(f"HTTP {response.status_code}: {response.reason}", {"url": url})
        return response.text

    def scrape(self, url: str) -> ProductResult:
        html = self.fetch(url)
        fact = extract_product(html)
        if fact is None:
            raise ExtractionError("Could not extract product data", {"url": url})
        unit_type, coverage = infer_unit(fact.name.lower())
        LOG.info("Scraped %s: %s at %.2f %s", url, fact.name, fact.price, fact.currency)
        return ProductResult(
            url=url,
            name=fact.name,
            price=fact.price,
            unit_type=unit_type,
            coverage_area=coverage,
            currency=fact.currency or DEFAULT_CURRENCY,
            sku=fact.sku,
        )


SCRAPER = ProductScraper()
