"""
Tests for SQLAlchemy storage and repositories (in-memory SQLite).
"""

import pytest

from fuelplanner.database import (
    FavoritesRepository,
    NutritionProductRecord,
    ProductCatalogRepository,
    SqlPlanStorage,
    init_database,
)
from fuelplanner.schemas import ProductSource, SavedPlanItem, SavedPlanWater


# Fixtures

@pytest.fixture
def session_factory():
    """Fresh in-memory database per test."""
    return init_database("sqlite://")


@pytest.fixture
def catalog(session_factory, catalog_products):
    repo = ProductCatalogRepository(session_factory)
    repo.upsert_products(catalog_products)
    return repo


@pytest.fixture
def storage(session_factory):
    return SqlPlanStorage(session_factory)


# Catalog

def test_catalog_round_trips_products(catalog, dual_gel):
    products = {p.id: p for p in catalog.list_active_products()}

    assert len(products) == 6
    assert products[dual_gel.id] == dual_gel


def test_catalog_ordered_by_brand_then_name(catalog):
    pairs = [(p.brand, p.name) for p in catalog.list_active_products()]

    assert pairs[0] == ("GU", "Energy Gel")
    assert pairs[1:3] == [("Maurten", "Gel 100"), ("Maurten", "Gel 100 CAF 100")]


def test_upsert_updates_existing(catalog, dual_gel):
    changed = dual_gel.model_copy(update={"sodium_mg": 85})
    written = catalog.upsert_products([changed, changed])

    products = {p.id: p for p in catalog.list_active_products()}
    assert written == 1
    assert products[dual_gel.id].sodium_mg == 85
    assert len(products) == 6


def test_inactive_products_hidden(catalog, session_factory, banana):
    with session_factory() as db:
        db.get(NutritionProductRecord, banana.id).is_active = False
        db.commit()

    assert banana.id not in {p.id for p in catalog.list_active_products()}


# Favorites

def test_favorites_set_and_get(session_factory):
    favorites = FavoritesRepository(session_factory)

    assert favorites.get_favorites("user-1") == []

    favorites.set_favorites("user-1", ["banana", "gel-dual", "banana"])
    favorites.set_favorites("user-2", ["drink-mix"])

    assert favorites.get_favorites("user-1") == ["banana", "gel-dual"]

    favorites.set_favorites("user-1", ["salt-cap"])
    assert favorites.get_favorites("user-1") == ["salt-cap"]
    assert favorites.get_favorites("user-2") == ["drink-mix"]


# Plans

def test_get_or_create_plan_is_idempotent(storage):
    first = storage.get_or_create_plan("race-1", "user-1")
    second = storage.get_or_create_plan("race-1", "user-1")

    assert first == second
    assert storage.get_or_create_plan("race-2") != first


def test_load_missing_plan(storage):
    assert storage.load_plan("nope") is None


def test_replace_items_and_water(storage):
    plan_id = storage.get_or_create_plan("race-1", "user-1")
    storage.replace_items(
        plan_id,
        [
            SavedPlanItem(product_id="gel-dual", hour_number=2, quantity=3, sort_order=0),
            SavedPlanItem(
                product_id="drink-mix",
                hour_number=1,
                fluid_ml=750,
                source=ProductSource.AID_STATION,
                source_name="Mile 12",
            ),
        ],
    )
    storage.replace_water(plan_id, [SavedPlanWater(hour_number=1, water_ml=250)])

    saved = storage.load_plan("race-1")

    assert saved.id == plan_id
    assert [(i.hour_number, i.product_id) for i in saved.items] == [(1, "drink-mix"), (2, "gel-dual")]
    assert saved.items[0].fluid_ml == 750
    assert saved.items[0].source == ProductSource.AID_STATION
    assert saved.items[1].quantity == 3
    assert saved.water[0].water_ml == 250


def test_replace_discards_previous_rows(storage):
    plan_id = storage.get_or_create_plan("race-1")
    storage.replace_items(plan_id, [SavedPlanItem(product_id="gel-dual", hour_number=1)])
    storage.replace_water(plan_id, [SavedPlanWater(hour_number=1, water_ml=250)])

    storage.replace_items(plan_id, [SavedPlanItem(product_id="banana", hour_number=3)])
    storage.replace_water(plan_id, [])

    saved = storage.load_plan("race-1")
    assert [i.product_id for i in saved.items] == ["banana"]
    assert saved.water == []


def test_plans_are_isolated(storage):
    first = storage.get_or_create_plan("race-1")
    second = storage.get_or_create_plan("race-2")
    storage.replace_items(first, [SavedPlanItem(product_id="gel-dual", hour_number=1)])
    storage.replace_items(second, [])

    assert len(storage.load_plan("race-1").items) == 1
    assert storage.load_plan("race-2").items == []
