"""
Shared fixtures: a small product catalog and the standard race scenario.
"""

import pytest

from fuelplanner.schemas import (
    AthleteContext,
    NutritionProduct,
    ProductCategory,
    RaceContext,
    WeatherContext,
)


@pytest.fixture
def dual_gel():
    """Gel with a 1:0.8 glucose:fructose mix (dual pathway)."""
    return NutritionProduct(
        id="gel-dual",
        brand="Maurten",
        name="Gel 100",
        category=ProductCategory.GEL,
        calories=100,
        carbs_grams=25,
        sodium_mg=20,
        glucose_fructose_ratio="1:0.8",
    )


@pytest.fixture
def glucose_gel():
    """Maltodextrin-only gel (single pathway)."""
    return NutritionProduct(
        id="gel-glucose",
        brand="GU",
        name="Energy Gel",
        category=ProductCategory.GEL,
        calories=100,
        carbs_grams=22,
        sodium_mg=60,
        glucose_fructose_ratio="maltodextrin",
    )


@pytest.fixture
def caffeine_gel():
    return NutritionProduct(
        id="gel-caffeine",
        brand="Maurten",
        name="Gel 100 CAF 100",
        category=ProductCategory.GEL,
        calories=100,
        carbs_grams=25,
        sodium_mg=20,
        caffeine_mg=100,
        glucose_fructose_ratio="1:0.8",
    )


@pytest.fixture
def drink_mix():
    return NutritionProduct(
        id="drink-mix",
        brand="Tailwind",
        name="Endurance Fuel",
        category=ProductCategory.DRINK_MIX,
        calories=200,
        carbs_grams=50,
        sodium_mg=620,
        water_content_ml=500,
        glucose_fructose_ratio="glucose",
    )


@pytest.fixture
def banana():
    return NutritionProduct(
        id="banana",
        brand="Real Food",
        name="Banana",
        category=ProductCategory.REAL_FOOD,
        calories=105,
        carbs_grams=27,
        sodium_mg=1,
        water_content_ml=88,
    )


@pytest.fixture
def electrolyte():
    return NutritionProduct(
        id="salt-cap",
        brand="SaltStick",
        name="Electrolyte Capsule",
        category=ProductCategory.ELECTROLYTE,
        sodium_mg=215,
    )


@pytest.fixture
def catalog_products(dual_gel, glucose_gel, caffeine_gel, drink_mix, banana, electrolyte):
    return [dual_gel, glucose_gel, caffeine_gel, drink_mix, banana, electrolyte]


@pytest.fixture
def product_lookup(catalog_products):
    return {product.id: product for product in catalog_products}


@pytest.fixture
def race():
    """8-hour race, the standard scenario."""
    return RaceContext(race_plan_id="race-1", duration_hours=8)


@pytest.fixture
def athlete():
    return AthleteContext(weight_kg=75)


@pytest.fixture
def hot_weather():
    return WeatherContext(temperature_f=90, humidity_percent=70)
