import pytest

from api.services.materials import estimate_materials


def quantities(estimate):
    return {item["key"]: (item["quantity"], item["quantity_buffered"]) for item in estimate["items"]}


def test_quantities_round_up_after_waste():
    estimate = estimate_materials(1000, 130, 40)
    assert quantities(estimate) == {
        "shingles": (32, 39),
        "underlayment": (2, 3),
        "leak_barrier": (6, 8),
        "starter_strip": (3, 4),
        "ridge_cap": (3, 4),
    }
    assert estimate["total_cost"] == pytest.approx(2709.78)


def test_no_area_means_no_materials():
    assert estimate_materials(0, 50, 20) == {"items": [], "total_cost": 0.0, "total_cost_buffered": 0.0}


def test_exact_multiples_do_not_gain_a_unit():
    estimate = estimate_materials(1000 / 1.1, 0, 0)
    assert quantities(estimate)["underlayment"] == (1, 2)
