"""
Tests for the plan-editing session: intents, selection, contexts and
auto-save through real SQLite storage.
"""

import asyncio

import pytest

from fuelplanner.config import Settings
from fuelplanner.database import (
    FavoritesRepository,
    ProductCatalogRepository,
    SqlPlanStorage,
    init_database,
)
from fuelplanner.intents import (
    AddProduct,
    ClearHour,
    MoveProduct,
    SelectHour,
    SetFilters,
    SetWater,
    ToggleFavorite,
    UpdateFluid,
    UpdateQuantity,
    UpdateSource,
)
from fuelplanner.schemas import (
    ProductCategory,
    ProductSource,
    RaceContext,
    SavedPlanItem,
)
from fuelplanner.session import PlannerSession

DEBOUNCE = 0.05


# Fixtures

@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", save_debounce_seconds=DEBOUNCE)


@pytest.fixture
def session_factory(catalog_products):
    factory = init_database("sqlite://")
    ProductCatalogRepository(factory).upsert_products(catalog_products)
    return factory


@pytest.fixture
def storage(session_factory):
    return SqlPlanStorage(session_factory)


@pytest.fixture
def make_session(race, athlete, hot_weather, session_factory, storage, settings):
    created = []

    def _make(user_id="user-1", race_context=None):
        session = PlannerSession(
            race_context or race,
            athlete,
            hot_weather,
            storage=storage,
            catalog=ProductCatalogRepository(session_factory),
            favorites_store=FavoritesRepository(session_factory),
            user_id=user_id,
            settings=settings,
        )
        created.append(session)
        return session

    yield _make

    for session in created:
        session.teardown()


# Lifecycle

@pytest.mark.asyncio
async def test_start_loads_catalog_and_targets(make_session):
    session = make_session()
    await session.start()

    assert session.is_started
    assert len(session.hours) == 8
    assert len(session.filtered_products) == 6
    assert session.hourly_targets.carbs_grams_target == 80
    assert session.total_targets.carbs == 640
    assert session.validation.hours[0].hour_number == 1


@pytest.mark.asyncio
async def test_start_hydrates_saved_plan(make_session, storage):
    plan_id = storage.get_or_create_plan("race-1", "user-1")
    storage.replace_items(plan_id, [SavedPlanItem(product_id="gel-dual", hour_number=2, quantity=3)])

    session = make_session()
    await session.start()

    assert session.synchronizer.plan_id == plan_id
    assert session.hours[1].products[0].quantity == 3
    assert session.hour_totals(1).carbs == 75
    assert session.running_totals.carbs.current == 75


@pytest.mark.asyncio
async def test_edit_before_start_is_saved_for_new_plan(make_session, storage, dual_gel):
    session = make_session()
    session.dispatch(AddProduct(hour_index=0, product=dual_gel))

    await session.start()
    await asyncio.sleep(DEBOUNCE * 4)

    saved = storage.load_plan("race-1")
    assert [i.product_id for i in saved.items] == ["gel-dual"]


@pytest.mark.asyncio
async def test_teardown_resets_timeline(make_session, dual_gel):
    session = make_session()
    await session.start()
    session.dispatch(AddProduct(hour_index=0, product=dual_gel))

    session.teardown()

    assert session.hours == []
    assert not session.is_started
    assert not session.synchronizer.has_pending_save


# Intents

@pytest.mark.asyncio
async def test_dispatch_timeline_intents(make_session, dual_gel, drink_mix):
    session = make_session()
    await session.start()

    entry = session.dispatch(AddProduct(hour_index=0, product=dual_gel))
    session.dispatch(UpdateQuantity(hour_index=0, entry_index=0, quantity=2))
    session.dispatch(AddProduct(hour_index=0, product=drink_mix))
    session.dispatch(UpdateFluid(hour_index=0, entry_index=1, fluid_ml=750))
    session.dispatch(
        UpdateSource(
            hour_index=0,
            entry_index=1,
            source=ProductSource.AID_STATION,
            location_name="Mile 12",
        )
    )
    session.dispatch(SetWater(hour_index=0, water_ml=250))

    assert entry.product_id == "gel-dual"
    totals = session.hour_totals(0)
    assert totals.carbs == 2 * 25 + 50
    assert totals.fluid == 750 + 250
    assert session.hours[0].products[1].source_name == "Mile 12"

    session.dispatch(MoveProduct(from_hour_index=0, entry_index=0, to_hour_index=3))
    assert [p.product_id for p in session.hours[3].products] == ["gel-dual"]

    session.dispatch(ClearHour(hour_index=0))
    assert session.hours[0].products == []
    assert session.hour_totals(0).fluid == 0


@pytest.mark.asyncio
async def test_dispatch_updates_filters(make_session):
    session = make_session()
    await session.start()

    session.dispatch(SetFilters(categories=[ProductCategory.DRINK_MIX]))

    assert [p.id for p in session.filtered_products] == ["drink-mix"]


@pytest.mark.asyncio
async def test_dispatch_rejects_unknown_intent(make_session):
    session = make_session()
    await session.start()

    with pytest.raises(TypeError):
        session.dispatch({"kind": "add_product"})


@pytest.mark.asyncio
async def test_toggle_favorite_is_persisted(make_session, session_factory):
    session = make_session()
    await session.start()

    assert session.dispatch(ToggleFavorite(product_id="banana")) is True
    assert FavoritesRepository(session_factory).get_favorites("user-1") == ["banana"]

    reopened = make_session()
    await reopened.start()
    assert reopened.browser.is_favorite("banana")


# Selection

@pytest.mark.asyncio
async def test_select_and_place(make_session, dual_gel):
    session = make_session()
    await session.start()

    assert session.place_product(dual_gel) is None

    session.dispatch(SelectHour(hour_index=2))
    assert session.selected_hour_index == 2
    session.place_product(dual_gel)
    assert len(session.hours[2].products) == 1

    session.select_hour(2)
    assert session.selected_hour_index is None

    session.select_hour(42)
    assert session.selected_hour_index is None


# Contexts

@pytest.mark.asyncio
async def test_shorter_race_drops_late_hours(make_session, race, dual_gel):
    session = make_session()
    await session.start()
    session.dispatch(AddProduct(hour_index=1, product=dual_gel))
    session.dispatch(AddProduct(hour_index=6, product=dual_gel))
    session.select_hour(6)

    session.set_race_context(race.model_copy(update={"duration_hours": 4}))

    assert len(session.hours) == 4
    assert len(session.hours[1].products) == 1
    assert session.selected_hour_index is None
    assert session.total_targets.carbs == 320


@pytest.mark.asyncio
async def test_race_plan_change_rejected(make_session):
    session = make_session()
    await session.start()

    with pytest.raises(ValueError):
        session.set_race_context(RaceContext(race_plan_id="race-2", duration_hours=8))


@pytest.mark.asyncio
async def test_warnings_combine_conditions_and_hours(make_session, dual_gel):
    session = make_session()
    await session.start()
    condition_warnings = list(session.plan.warnings)

    session.dispatch(AddProduct(hour_index=0, product=dual_gel))

    assert session.warnings[: len(condition_warnings)] == condition_warnings
    assert any(w.startswith("Hour 1: insufficient sodium") for w in session.warnings)
    assert session.recommendations[: len(session.plan.recommendations)] == session.plan.recommendations


# Auto-save

@pytest.mark.asyncio
async def test_edits_are_saved_after_debounce(make_session, storage, dual_gel):
    session = make_session()
    await session.start()

    session.dispatch(AddProduct(hour_index=0, product=dual_gel))
    session.dispatch(UpdateQuantity(hour_index=0, entry_index=0, quantity=2))
    await asyncio.sleep(DEBOUNCE * 4)

    saved = storage.load_plan("race-1")
    assert [(i.product_id, i.quantity) for i in saved.items] == [("gel-dual", 2)]
    assert session.synchronizer.save_count == 1


@pytest.mark.asyncio
async def test_guest_session_is_never_saved(make_session, storage, dual_gel):
    session = make_session(user_id=None)
    await session.start()

    session.dispatch(AddProduct(hour_index=0, product=dual_gel))
    await asyncio.sleep(DEBOUNCE * 4)

    assert await session.flush() is False
    assert storage.load_plan("race-1") is None
