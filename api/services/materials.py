"""Material quantities and cost estimate derived from saved roof measurements."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

BUFFER_FACTOR = 1.2


@dataclass(frozen=True)
class CatalogItem:
    key: str
    name: str
    price: float
    unit_type: str  # "sqft" or "linear_foot"
    coverage: float
    waste: float
    unit: str
    basis: str  # "area", "perimeter" or "lines"
    url: str


CATALOG: List[CatalogItem] = [
    CatalogItem(
        key="shingles",
        name="GAF Timberline HDZ Weathered Wood High Definition Roof Shingles",
        price=45.11,
        unit_type="sqft",
        coverage=33.3,
        waste=1.05,
        unit="bundles",
        basis="area",
        url="https://www.homedepot.ca/product/gaf-timberline-hdz-weathered-wood-high-definition-roof-shingles-33-3-sq-ft-per-bdl-21-pcs-/1000730987",
    ),
    CatalogItem(
        key="underlayment",
        name="GAF FeltBuster Synthetic Roofing Underlayment",
        price=151.0,
        unit_type="sqft",
        coverage=1000,
        waste=1.1,
        unit="rolls",
        basis="area",
        url="https://www.homedepot.ca/product/gaf-1000-sq-ft-feltbuster-synthetic-roofing-underlayment-roll/1000800427",
    ),
    CatalogItem(
        key="leak_barrier",
        name="GAF WeatherWatch Mineral Surfaced Peel and Stick Roof Leak Barrier",
        price=97.96,
        unit_type="sqft",
        coverage=200,
        waste=1.05,
        unit="rolls",
        basis="area",
        url="https://www.homedepot.ca/product/gaf-200-sq-ft-weatherwatch-mineral-surfaced-peel-and-stick-roof-leak-barrier-roll/1000731325",
    ),
    CatalogItem(
        key="starter_strip",
        name="GAF WeatherBlocker Premium Eave and Rake Roof Starter Strip Shingles",
        price=65.75,
        unit_type="linear_foot",
        coverage=50,
        waste=1.05,
        unit="units",
        basis="perimeter",
        url="https://www.homedepot.ca/product/gaf-weatherblocker-50-lin-ft-premium-eave-and-rake-roof-starter-strip-shingles/1000731326",
    ),
    CatalogItem(
        key="ridge_cap",
        name="GAF Timbertex Charcoal Premium Hip and Ridge Cap Roof Shingles",
        price=59.75,
        unit_type="linear_foot",
        coverage=20,
        waste=1.05,
        unit="bundles",
        basis="lines",
        url="https://www.homedepot.ca/product/gaf-timbertex-charcoal-premium-hip-and-ridge-cap-roof-shingles-20-lin-ft-per-bundle-30-pieces-/1001016707",
    ),
]


def estimate_materials(area_ft2: float, perimeter_ft: float, total_line_length_ft: float) -> Dict[str, Any]:
    """Quantities rounded up to whole units after the per-item waste factor."""
    if area_ft2 <= 0:
        return {"items": [], "total_cost": 0.0, "total_cost_buffered": 0.0}

    basis = {"area": area_ft2, "perimeter": perimeter_ft, "lines": total_line_length_ft}
    items: List[Dict[str, Any]] = []
    for entry in CATALOG:
        # Rounded before ceil so float noise cannot add a unit.
        quantity = math.ceil(round(basis[entry.basis] * entry.waste / entry.coverage, 6))
        buffered = math.ceil(round(quantity * BUFFER_FACTOR, 6))
        item = asdict(entry)
        item.update(
            {
                "quantity": quantity,
                "total_cost": round(quantity * entry.price, 2),
                "quantity_buffered": buffered,
                "total_cost_buffered": round(buffered * entry.price, 2),
            }
        )
        items.append(item)

    return {
        "items": items,
        "total_cost": round(sum(item["total_cost"] for item in items), 2),
        "total_cost_buffered": round(sum(item["total_cost_buffered"] for item in items), 2),
    }
