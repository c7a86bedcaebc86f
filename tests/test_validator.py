"""
Tests for hourly intake validation.

Ensures status boundaries are exact, deficits outrank excesses, and plan
warnings only come from hours that have something planned.
"""

import pytest

from fuelplanner.schemas import (
    AthleteContext,
    GutTrainingLevel,
    HourTotals,
    HourlyTargets,
    IntakeStatus,
    WeatherContext,
)
from fuelplanner.targets import (
    DUAL_PATHWAY_CEILING_G,
    SINGLE_PATHWAY_CEILING_G,
    compute_hourly_targets,
)
from fuelplanner.timeline import NutritionTimeline
from fuelplanner.validator import (
    PlanValidator,
    absorption_ceiling_for_hour,
    classify_intake,
    is_caffeine_late,
    overall_status,
    validate_hourly_intake,
)


# Fixtures

@pytest.fixture
def targets():
    """Round numbers so percentages are easy to read."""
    return HourlyTargets(
        carbs_grams_min=60,
        carbs_grams_max=100,
        carbs_grams_target=80,
        fluid_ml_min=500,
        fluid_ml_max=750,
        fluid_ml_target=600,
        sodium_mg_min=500,
        sodium_mg_max=700,
        sodium_mg_target=600,
        calories_target=352,
    )


@pytest.fixture
def timeline(product_lookup):
    t = NutritionTimeline(products=product_lookup)
    t.initialize(10, "06:00")
    return t


# Classification

@pytest.mark.parametrize(
    "actual,expected",
    [
        (69, IntakeStatus.BELOW),
        (70, IntakeStatus.ON_TARGET),
        (100, IntakeStatus.ON_TARGET),
        (110, IntakeStatus.ON_TARGET),
        (111, IntakeStatus.ABOVE),
    ],
)
def test_status_boundaries(actual, expected):
    assert classify_intake(actual, 100) == expected


def test_boundaries_with_uneven_target():
    assert classify_intake(56, 80) == IntakeStatus.ON_TARGET  # exactly 70%
    assert classify_intake(88, 80) == IntakeStatus.ON_TARGET  # exactly 110%
    assert classify_intake(55.9, 80) == IntakeStatus.BELOW


def test_zero_target_is_on_target():
    assert classify_intake(0, 0) == IntakeStatus.ON_TARGET
    assert classify_intake(50, 0) == IntakeStatus.ON_TARGET


def test_below_outranks_above():
    assert overall_status(IntakeStatus.BELOW, IntakeStatus.ABOVE) == IntakeStatus.BELOW
    assert overall_status(IntakeStatus.ABOVE, IntakeStatus.BELOW) == IntakeStatus.BELOW
    assert overall_status(IntakeStatus.ABOVE, IntakeStatus.ON_TARGET) == IntakeStatus.ABOVE
    assert overall_status(IntakeStatus.ON_TARGET, IntakeStatus.ON_TARGET) == IntakeStatus.ON_TARGET


def test_hour_with_low_carbs_and_high_fluid_is_below(targets):
    result = validate_hourly_intake(HourTotals(carbs=30, fluid=900, sodium=600), targets)

    assert result.carbs_status == IntakeStatus.BELOW
    assert result.fluid_status == IntakeStatus.ABOVE
    assert result.overall_status == IntakeStatus.BELOW


def test_sodium_does_not_drive_overall_status(targets):
    result = validate_hourly_intake(HourTotals(carbs=80, fluid=600, sodium=0), targets)

    assert result.sodium_status == IntakeStatus.BELOW
    assert result.overall_status == IntakeStatus.ON_TARGET


def test_percentages(targets):
    result = validate_hourly_intake(HourTotals(carbs=40, fluid=600, sodium=900), targets)

    assert result.carbs_percent == 50
    assert result.fluid_percent == 100
    assert result.sodium_percent == 150


def test_deficit_warnings(targets):
    result = validate_hourly_intake(HourTotals(), targets)

    assert len(result.warnings) == 3
    assert any("Carb" in w for w in result.warnings)
    assert any("Fluid" in w for w in result.warnings)
    assert any("Sodium" in w for w in result.warnings)


def test_ceiling_only_enforced_on_request(targets):
    actual = HourTotals(carbs=85, fluid=600, sodium=600)

    relaxed = validate_hourly_intake(actual, targets)
    enforced = validate_hourly_intake(actual, targets, enforce_ceiling=True)
    dual = validate_hourly_intake(
        actual, targets, enforce_ceiling=True, absorption_ceiling_g=DUAL_PATHWAY_CEILING_G
    )

    assert relaxed.warnings == []
    assert any("GI distress" in w for w in enforced.warnings)
    assert dual.warnings == []
    assert dual.has_multiple_transportable_carbs


# Absorption ceiling

def test_ceiling_for_dual_pathway_hour(timeline, dual_gel, glucose_gel, product_lookup):
    timeline.add_product_to_hour(0, dual_gel)
    timeline.add_product_to_hour(0, glucose_gel)
    ceiling, dual = absorption_ceiling_for_hour(timeline.hours[0].products, product_lookup)

    # 25g of 47g comes from the dual-pathway gel
    assert ceiling == DUAL_PATHWAY_CEILING_G
    assert dual


def test_ceiling_for_glucose_heavy_hour(timeline, dual_gel, glucose_gel, product_lookup):
    timeline.add_product_to_hour(0, dual_gel)
    timeline.add_product_to_hour(0, glucose_gel)
    timeline.update_product_quantity(0, 1, 3)
    ceiling, dual = absorption_ceiling_for_hour(timeline.hours[0].products, product_lookup)

    assert ceiling == SINGLE_PATHWAY_CEILING_G
    assert not dual


def test_ceiling_for_empty_hour(product_lookup):
    assert absorption_ceiling_for_hour([], product_lookup) == (SINGLE_PATHWAY_CEILING_G, False)


# Caffeine timing

def test_is_caffeine_late():
    assert is_caffeine_late(8, 20)
    assert is_caffeine_late(7, 10)
    assert not is_caffeine_late(3, 10)
    assert not is_caffeine_late(1, 12)
    assert is_caffeine_late(9, 12)
    assert is_caffeine_late(1, 4)


# Plan validation

def test_empty_timeline_has_no_plan_warnings(targets, timeline):
    result = PlanValidator(targets, WeatherContext(), 10).validate(timeline)

    assert len(result.hours) == 10
    assert all(h.overall_status == IntakeStatus.BELOW for h in result.hours)
    assert result.warnings == []
    assert result.recommendations == []


def test_unconfigured_targets_skip_validation(timeline, dual_gel):
    timeline.add_product_to_hour(0, dual_gel)
    result = PlanValidator(HourlyTargets.empty(), WeatherContext(), 10).validate(timeline)

    assert result.hours == []
    assert result.warnings == []


def test_plan_flags_ceiling(targets, timeline, glucose_gel):
    timeline.add_product_to_hour(0, glucose_gel)
    timeline.update_product_quantity(0, 0, 4)  # 88g single pathway

    result = PlanValidator(targets, WeatherContext(), 10).validate(timeline)

    assert any(w.startswith("Hour 1:") and "absorption ceiling" in w for w in result.warnings)
    assert result.hours[0].absorption_ceiling_g == SINGLE_PATHWAY_CEILING_G


def test_plan_recommends_balanced_mix(targets, timeline, dual_gel):
    timeline.add_product_to_hour(2, dual_gel)
    timeline.update_product_quantity(2, 0, 3)  # 75g dual pathway

    result = PlanValidator(targets, WeatherContext(), 10).validate(timeline)

    assert result.recommendations == [
        "Hour 3: well-balanced glucose:fructose mix supports 75g/hr absorption"
    ]
    assert not any("absorption ceiling" in w for w in result.warnings)


def test_plan_flags_low_sodium_in_heat(targets, timeline, dual_gel):
    timeline.add_product_to_hour(0, dual_gel)

    hot = PlanValidator(targets, WeatherContext(temperature_f=92), 10).validate(timeline)
    mild = PlanValidator(targets, WeatherContext(temperature_f=60), 10).validate(timeline)

    assert any("insufficient sodium" in w for w in hot.warnings)
    assert not any("insufficient sodium" in w for w in mild.warnings)


def test_plan_flags_late_caffeine(targets, timeline, caffeine_gel):
    timeline.add_product_to_hour(1, caffeine_gel)
    timeline.add_product_to_hour(8, caffeine_gel)

    result = PlanValidator(targets, WeatherContext(), 10).validate(timeline)
    caffeine_warnings = [w for w in result.warnings if "caffeine" in w]

    assert caffeine_warnings == [
        "Hour 9: caffeine this late in the race may disrupt post-race sleep"
    ]


def test_trained_gut_raises_dual_pathway_ceiling(race, dual_gel, product_lookup):
    """An on-target hour of glucose + fructose gels is not flagged for a trained gut."""
    athlete = AthleteContext(weight_kg=75, gut_training_level=GutTrainingLevel.WELL_TRAINED)
    targets = compute_hourly_targets(race, athlete, WeatherContext())
    big_gel = dual_gel.model_copy(update={"id": "gel-dual-32", "carbs_grams": 32})

    timeline = NutritionTimeline(products=product_lookup)
    timeline.initialize(race.duration_hours, "06:00")
    timeline.add_product_to_hour(0, big_gel)
    timeline.update_product_quantity(0, 0, 3)  # 96g

    result = PlanValidator(targets, WeatherContext(), race.duration_hours).validate(timeline)
    hour = result.hours[0]

    assert targets.carbs_grams_max == 120
    assert hour.carbs_status == IntakeStatus.ON_TARGET
    assert hour.absorption_ceiling_g == 120
    assert hour.has_multiple_transportable_carbs
    assert not any("absorption ceiling" in w for w in result.warnings)

    fixed = PlanValidator(
        targets, WeatherContext(), race.duration_hours, dual_pathway_ceiling_g=DUAL_PATHWAY_CEILING_G
    ).validate(timeline)
    assert any(w.startswith("Hour 1:") and "absorption ceiling" in w for w in fixed.warnings)


def test_single_pathway_ceiling_ignores_gut_training(race, glucose_gel, product_lookup):
    athlete = AthleteContext(weight_kg=75, gut_training_level=GutTrainingLevel.WELL_TRAINED)
    targets = compute_hourly_targets(race, athlete, WeatherContext())

    timeline = NutritionTimeline(products=product_lookup)
    timeline.initialize(race.duration_hours, "06:00")
    timeline.add_product_to_hour(0, glucose_gel)
    timeline.update_product_quantity(0, 0, 4)  # 88g

    result = PlanValidator(targets, WeatherContext(), race.duration_hours).validate(timeline)

    assert result.hours[0].absorption_ceiling_g == SINGLE_PATHWAY_CEILING_G
    assert any("absorption ceiling" in w for w in result.warnings)
