"""
Tests for the FastAPI application.

The database dependency is overridden with a seeded in-memory SQLite
factory so every test starts from the same catalog.
"""

import pytest
from fastapi.testclient import TestClient

from fuelplanner.api.deps import get_db_factory
from fuelplanner.api.main import app
from fuelplanner.config import Settings, get_settings
from fuelplanner.database import ProductCatalogRepository, init_database


# Fixtures

@pytest.fixture
def client(catalog_products):
    factory = init_database("sqlite://")
    ProductCatalogRepository(factory).upsert_products(catalog_products)

    app.dependency_overrides[get_db_factory] = lambda: factory
    app.dependency_overrides[get_settings] = lambda: Settings(
        database_url="sqlite://", save_debounce_seconds=0
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def plan_payload():
    return {
        "user_id": "user-1",
        "duration_hours": 4,
        "athlete": {"weight_kg": 75},
        "weather": {"temperature_f": 90, "humidity_percent": 70},
        "items": [
            {"product_id": "gel-dual", "hour_number": 1, "quantity": 2},
            {"product_id": "drink-mix", "hour_number": 2, "fluid_ml": 750, "source": "crew"},
            {"product_id": "discontinued-gel", "hour_number": 2},
            {"product_id": "banana", "hour_number": 9},
        ],
        "water": [{"hour_number": 3, "water_ml": 400}],
    }


# Service

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "fuelplanner-api"}


def test_root(client):
    assert client.get("/").json()["health"] == "/health"


# Targets

def test_targets_for_hot_ultra(client):
    response = client.post(
        "/api/targets",
        json={
            "race": {"race_plan_id": "race-1", "duration_hours": 8},
            "athlete": {"weight_kg": 75},
            "weather": {"temperature_f": 90, "humidity_percent": 70},
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["hourly_targets"]["carbs_grams_target"] == 80
    assert data["hourly_targets"]["fluid_ml_target"] == 1100
    assert data["hourly_targets"]["sodium_mg_target"] == 850
    assert data["total_targets"]["carbs"] == 640
    assert any("Hot conditions" in w for w in data["warnings"])


def test_targets_with_invalid_inputs_are_unconfigured(client):
    response = client.post(
        "/api/targets",
        json={"race": {"duration_hours": 0}, "athlete": {"weight_kg": 75}},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["hourly_targets"]["is_configured"] is False
    assert data["total_targets"]["carbs"] == 0
    assert data["warnings"] == []


def test_validate_hour(client):
    response = client.post(
        "/api/validate-hour",
        json={
            "actual": {"carbs": 45, "fluid": 800, "sodium": 500},
            "targets": {
                "carbs_grams_target": 60,
                "fluid_ml_target": 750,
                "sodium_mg_target": 600,
            },
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["carbs_status"] == "on-target"
    assert data["carbs_percent"] == 75
    assert data["overall_status"] == "on-target"


# Products

def test_list_products(client):
    data = client.get("/api/products").json()

    assert data["count"] == 6
    assert data["products"][0]["brand"] == "GU"


def test_list_products_with_filters(client):
    response = client.get(
        "/api/products",
        params={"category": ["gel"], "caffeine_free": "true"},
    )

    data = response.json()
    assert [p["id"] for p in data["products"]] == ["gel-glucose", "gel-dual"]


def test_favorites_only_without_user_is_empty(client):
    data = client.get("/api/products", params={"favorites_only": "true"}).json()

    assert data["count"] == 0


# Plans

def test_replace_plan_then_read_it(client, plan_payload):
    response = client.put("/api/plans/race-1", json=plan_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["saved"] is True
    assert data["plan_id"]
    assert data["skipped_items"] == 2
    assert data["running_totals"]["carbs"]["current"] == 2 * 25 + 50
    assert data["running_totals"]["fluid"]["current"] == 750 + 400
    assert len(data["validation"]["hours"]) == 4

    saved = client.get("/api/plans/race-1").json()
    assert saved["id"] == data["plan_id"]
    assert [(i["product_id"], i["quantity"]) for i in saved["items"]] == [
        ("gel-dual", 2),
        ("drink-mix", 1),
    ]
    assert saved["items"][1]["fluid_ml"] == 750
    assert saved["items"][1]["source"] == "crew"
    assert saved["water"] == [{"hour_number": 3, "water_ml": 400.0, "source": "personal_stock"}]


def test_replacing_with_same_plan_is_not_saved(client, plan_payload):
    first = client.put("/api/plans/race-1", json=plan_payload).json()
    second = client.put("/api/plans/race-1", json=plan_payload).json()

    assert first["saved"] is True
    assert second["saved"] is False
    assert second["plan_id"] == first["plan_id"]


def test_replace_plan_rejects_bad_start_time(client, plan_payload):
    plan_payload["start_time_of_day"] = "25:99"

    response = client.put("/api/plans/race-1", json=plan_payload)

    assert response.status_code == 422


def test_missing_plan_is_404(client):
    response = client.get("/api/plans/unknown-race")

    assert response.status_code == 404
    assert "unknown-race" in response.json()["message"]
    assert client.get("/api/plans/unknown-race/stickers").status_code == 404


# Exports

def test_stickers(client, plan_payload):
    client.put("/api/plans/race-1", json=plan_payload)

    data = client.get("/api/plans/race-1/stickers").json()

    assert [h["hour_number"] for h in data["hours"]] == [1, 2, 3]
    assert data["hours"][0]["elapsed_time"] == "0:00"
    assert data["hours"][0]["start_time"] == "6:00 AM"
    assert data["hours"][0]["products"][0]["quantity"] == 2
    assert data["hours"][2]["products"] == []
    assert data["hours"][2]["water_ml"] == 400


def test_stickers_with_explicit_duration(client, plan_payload):
    client.put("/api/plans/race-1", json=plan_payload)

    data = client.get(
        "/api/plans/race-1/stickers", params={"duration_hours": 5, "start_time": "07:30"}
    ).json()

    assert len(data["hours"]) == 5
    assert data["hours"][0]["start_time"] == "7:30 AM"


def test_packing_list(client, plan_payload):
    client.put("/api/plans/race-1", json=plan_payload)

    groups = client.get("/api/plans/race-1/packing-list").json()["groups"]

    assert [g["source"] for g in groups] == ["personal_stock", "crew"]
    assert groups[0]["totals"]["carbs"] == 50
    assert groups[1]["items"][0]["product"]["id"] == "drink-mix"
