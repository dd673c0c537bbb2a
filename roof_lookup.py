#!/usr/bin/env python3
"""Resolve a property address and fetch the aerial image used for roof tracing.

Workflow:
    1. Geocode an input address with the Google Geocoding API.
    2. Build the Google Static Maps satellite image reference for the
       coordinate at zoom 20 and 640x640 pixels. The pixel scale used by the
       measurement core is calibrated for exactly this zoom and size.
    3. Optionally download the image and verify its dimensions.

You need network access and the following Python packages installed:
    pip install requests pillow

The API key is read from the GOOGLE_MAPS_API_KEY environment variable or
supplied with --api-key.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional, Sequence
from urllib.parse import urlencode

import requests
from PIL import Image

from roofing.constants import AERIAL_MAPTYPE, AERIAL_ZOOM, SURFACE_HEIGHT, SURFACE_WIDTH
from roofing.errors import AddressNotFound, InputValidationError, ServiceError, ServiceTimeout
from roofing.workflow import AerialImage, GeocodeResult

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
GEOCODE_TIMEOUT = float(os.getenv("GEOCODE_TIMEOUT", "10"))
AERIAL_IMAGE_TIMEOUT = float(os.getenv("AERIAL_IMAGE_TIMEOUT", "20"))

HTTP_SESSION = requests.Session()
BASE_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "roof-lookup/1.0",
}


def _api_key(explicit: Optional[str] = None) -> str:
    key = explicit or os.getenv("GOOGLE_MAPS_API_KEY")
    if not key:
        raise ServiceError("Google Maps API key not configured")
    return key


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Geocode an address and fetch its aerial roof image.")
    parser.add_argument("address", help="Street address to geocode (free-form string).")
    parser.add_argument(
        "--api-key",
        type=str,
        default=os.getenv("GOOGLE_MAPS_API_KEY"),
        help="Google Maps API key. Overrides the GOOGLE_MAPS_API_KEY env var.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Optional PNG path to download the aerial image to.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose HTTP logging.",
    )
    return parser.parse_args(argv)


def setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def geocode_address(address: str, *, api_key: Optional[str] = None) -> GeocodeResult:
    address = (address or "").strip()
    if not address:
        raise InputValidationError("Address is required.")
    params = {"address": address, "key": _api_key(api_key)}
    logging.info("Geocoding address: %s", address)
    try:
        response = HTTP_SESSION.get(GEOCODE_URL, params=params, headers=BASE_HEADERS, timeout=GEOCODE_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except requests.Timeout as exc:
        raise ServiceTimeout("Geocoding request timed out.", {"address": address}) from exc
    except requests.RequestException as exc:
        raise ServiceError("Failed to geocode address.", {"address": address, "error": str(exc)}) from exc
    except ValueError as exc:
        raise ServiceError("Geocoder returned invalid JSON.", {"address": address}) from exc

    if not isinstance(data, dict):
        raise ServiceError("Geocoder returned an unexpected result.", {"address": address})
    status = data.get("status")
    results = data.get("results") or []
    if status == "ZERO_RESULTS" or (status == "OK" and not results):
        raise AddressNotFound("No results found for this address", {"address": address})
    if status != "OK":
        detail = data.get("error_message")
        message = f"Geocoding failed: {status}"
        raise ServiceError(message, {"address": address, "status": status, "detail": detail})

    try:
        result = results[0]
        location = result["geometry"]["location"]
        geocoded = GeocodeResult(
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
            formatted_address=result.get("formatted_address") or address,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ServiceError("Geocoder returned an unexpected result.", {"address": address}) from exc
    logging.info(
        "Resolved '%s' to %.6f, %.6f", geocoded.formatted_address, geocoded.latitude, geocoded.longitude
    )
    return geocoded


def build_aerial_image(
    latitude: Optional[float],
    longitude: Optional[float],
    zoom: int = AERIAL_ZOOM,
    *,
    api_key: Optional[str] = None,
) -> AerialImage:
    """Return the static satellite image reference centred on the coordinate."""
    if latitude is None or longitude is None:
        raise InputValidationError("Latitude and longitude are required")
    size = f"{SURFACE_WIDTH}x{SURFACE_HEIGHT}"
    query = urlencode(
        {
            "center": f"{latitude},{longitude}",
            "zoom": zoom,
            "size": size,
            "maptype": AERIAL_MAPTYPE,
            "scale": 1,
            "key": _api_key(api_key),
        }
    )
    return AerialImage(
        image_url=f"{STATIC_MAP_URL}?{query}",
        latitude=float(latitude),
        longitude=float(longitude),
        zoom=zoom,
        size=size,
    )


def download_aerial_image(image: AerialImage, dest: Path) -> Path:
    """Download the aerial image and check it matches the drawing surface."""
    try:
        response = HTTP_SESSION.get(
            image.image_url,
            headers={"User-Agent": BASE_HEADERS["User-Agent"]},
            timeout=AERIAL_IMAGE_TIMEOUT,
        )
        response.raise_for_status()
    except requests.Timeout as exc:
        raise ServiceTimeout("Aerial image request timed out.", {"url": STATIC_MAP_URL}) from exc
    except requests.RequestException as exc:
        raise ServiceError("Failed to download aerial image.", {"error": str(exc)}) from exc

    try:
        img = Image.open(BytesIO(response.content))
        img.load()
    except OSError as exc:
        raise ServiceError("Aerial image response is not a readable image.") from exc
    if img.size != (SURFACE_WIDTH, SURFACE_HEIGHT):
        logging.warning(
            "Aerial image is %sx%s, expected %sx%s; measurements will be off scale.",
            img.size[0],
            img.size[1],
            SURFACE_WIDTH,
            SURFACE_HEIGHT,
        )

    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    img.save(dest, format="PNG")
    logging.info("Saved aerial image to %s", dest)
    return dest


def lookup(address: str, *, api_key: Optional[str] = None, output: Optional[Path] = None) -> Dict[str, object]:
    location = geocode_address(address, api_key=api_key)
    image = build_aerial_image(location.latitude, location.longitude, api_key=api_key)
    record: Dict[str, object] = {
        "location": location.to_dict(),
        "aerial_image": image.to_dict(),
    }
    if output is not None:
        record["image_path"] = str(download_aerial_image(image, output))
    return record


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.debug)
    try:
        record = lookup(args.address, api_key=args.api_key, output=args.output)
    except ServiceTimeout as exc:
        logging.error("Timed out: %s", exc)
        return 2
    except (AddressNotFound, InputValidationError) as exc:
        logging.error("%s", exc)
        return 1
    except ServiceError as exc:
        logging.error("Lookup failed: %s %s", exc, exc.context or "")
        return 1
    print(json.dumps(record, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
