"""
Hourly fueling target calculation.

Derives per-hour carbohydrate, fluid, sodium and calorie targets from race,
athlete and weather parameters. Every function here is pure: the same inputs
always produce the same targets, and invalid inputs produce the degenerate
"not configured" target instead of an exception.

Drivers and direction of effect:
- Heat, humidity, body weight and sweat rate raise fluid targets
- Heat, humidity and sweat rate raise sodium targets
- Altitude and an untrained gut lower the carbohydrate ceiling
- Duration scales race totals only; the hourly target is constant

Carbohydrate absorption is limited by intestinal transporters. Glucose and
maltodextrin share one pathway (SGLT1, ~60 g/h); adding fructose engages a
second pathway (GLUT5) and lifts the practical ceiling to ~90 g/h.
"""

import re
from typing import Dict, List, Optional, Tuple

from fuelplanner.schemas import (
    AthleteContext,
    CalculationFactors,
    GutTrainingLevel,
    HourlyTargets,
    NutritionProduct,
    RaceContext,
    RaceNutritionPlan,
    RatioQuality,
    SweatRate,
    TotalTargets,
    WeatherContext,
)


# ============================================================================
# Constants
# ============================================================================

# Externally visible bounds for any configured target
CARBS_BOUNDS_G = (30.0, 120.0)
FLUID_BOUNDS_ML = (300.0, 1200.0)
SODIUM_BOUNDS_MG = (300.0, 1500.0)

# Lower edge of the carbohydrate range for races long enough to plan hourly
CARB_FLOOR_G = 60.0

GUT_TRAINING_MAX_CARBS: Dict[GutTrainingLevel, float] = {
    GutTrainingLevel.UNTRAINED: 80.0,
    GutTrainingLevel.MODERATE: 100.0,
    GutTrainingLevel.WELL_TRAINED: 120.0,
}

# (threshold_ft, factor) checked highest first; hypoxia slows gastric emptying
ALTITUDE_CARB_FACTORS: Tuple[Tuple[float, float], ...] = (
    (10000.0, 0.85),
    (8000.0, 0.90),
    (5000.0, 0.95),
)

# Absorption ceilings by transport pathway (g/h)
SINGLE_PATHWAY_CEILING_G = 60.0
DUAL_PATHWAY_CEILING_G = 90.0

# (upper_bound_f, label, fluid_min_ml, fluid_max_ml); last band is open-ended
TEMPERATURE_BANDS: Tuple[Tuple[float, str, float, float], ...] = (
    (50.0, "cold", 400.0, 600.0),
    (70.0, "temperate", 500.0, 750.0),
    (85.0, "warm", 750.0, 1000.0),
    (float("inf"), "hot", 1000.0, 1500.0),
)
HOT_TEMPERATURE_F = 85.0
WARM_TEMPERATURE_F = 70.0

HUMIDITY_THRESHOLD = 70.0
HUMIDITY_FLUID_MULTIPLIER = 1.2

LIGHT_ATHLETE_KG = 65.0
HEAVY_ATHLETE_KG = 85.0

SWEAT_RATE_FLUID_FACTORS: Dict[SweatRate, float] = {
    SweatRate.LOW: 0.9,
    SweatRate.MEDIUM: 1.0,
    SweatRate.HIGH: 1.1,
}

SODIUM_RANGES: Dict[SweatRate, Tuple[float, float]] = {
    SweatRate.LOW: (300.0, 500.0),
    SweatRate.MEDIUM: (500.0, 700.0),
    SweatRate.HIGH: (700.0, 1000.0),
}
SODIUM_HEAT_ADJUSTMENT_MG = 250.0
SODIUM_HUMIDITY_ADJUSTMENT_MG = 150.0

CALORIES_PER_GRAM_CARB = 4.0
CALORIE_BUFFER = 1.1  # Small allowance for protein/fat

# Fructose grams per gram of glucose
OPTIMAL_FRUCTOSE_RATIO = (0.5, 1.0)
ACCEPTABLE_FRUCTOSE_RATIO = (0.3, 1.25)

_SINGLE_SUGAR_LABELS = ("glucose", "glucose-only", "glucose only", "maltodextrin", "dextrose")
_RATIO_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)\s*$")


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


# ============================================================================
# Input Validation
# ============================================================================

def inputs_are_valid(
    race: RaceContext,
    athlete: AthleteContext,
    weather: WeatherContext,
) -> bool:
    """Whether the inputs can produce a meaningful target."""
    return (
        race.duration_hours > 0
        and athlete.weight_kg > 0
        and 0.0 <= weather.humidity_percent <= 100.0
    )


# ============================================================================
# Carbohydrate
# ============================================================================

def get_altitude_factor(max_elevation_ft: float) -> float:
    """Multiplier applied to the carbohydrate ceiling at altitude."""
    for threshold, factor in ALTITUDE_CARB_FACTORS:
        if max_elevation_ft >= threshold:
            return factor
    return 1.0


def calculate_carb_targets(
    max_elevation_ft: float,
    gut_training_level: GutTrainingLevel = GutTrainingLevel.MODERATE,
) -> Tuple[float, float, float]:
    """
    Calculate carbohydrate (min, max, target) in grams per hour.

    The max is the gut-training absorption limit reduced at altitude; the
    target sits midway between the floor and that max.
    """
    ceiling = GUT_TRAINING_MAX_CARBS[gut_training_level] * get_altitude_factor(max_elevation_ft)
    carbs_max = _clamp(round(ceiling), CARBS_BOUNDS_G)
    carbs_min = _clamp(min(CARB_FLOOR_G, carbs_max), CARBS_BOUNDS_G)
    target = _clamp(round((carbs_min + carbs_max) / 2), CARBS_BOUNDS_G)
    return carbs_min, carbs_max, target


# ============================================================================
# Hydration
# ============================================================================

def get_temperature_band(temperature_f: float) -> Tuple[str, float, float]:
    """Return (label, fluid_min, fluid_max) for the temperature."""
    for upper, label, fluid_min, fluid_max in TEMPERATURE_BANDS:
        if temperature_f < upper:
            return label, fluid_min, fluid_max
    _, label, fluid_min, fluid_max = TEMPERATURE_BANDS[-1]
    return label, fluid_min, fluid_max


def get_weight_fluid_factor(weight_kg: float) -> float:
    """Lighter athletes need less fluid, heavier athletes more."""
    if weight_kg < LIGHT_ATHLETE_KG:
        return 0.9
    if weight_kg > HEAVY_ATHLETE_KG:
        return 1.1
    return 1.0


def get_humidity_multiplier(humidity_percent: float) -> float:
    return HUMIDITY_FLUID_MULTIPLIER if humidity_percent > HUMIDITY_THRESHOLD else 1.0


def calculate_fluid_targets(
    temperature_f: float,
    humidity_percent: float,
    weight_kg: float,
    sweat_rate: SweatRate = SweatRate.MEDIUM,
    known_sweat_rate_ml_per_hour: Optional[float] = None,
) -> Tuple[float, float, float]:
    """Calculate fluid (min, max, target) in ml per hour."""
    if known_sweat_rate_ml_per_hour:
        # Replace what is lost: 80-120% of the measured rate
        return (
            _clamp(round(known_sweat_rate_ml_per_hour * 0.8), FLUID_BOUNDS_ML),
            _clamp(round(known_sweat_rate_ml_per_hour * 1.2), FLUID_BOUNDS_ML),
            _clamp(round(known_sweat_rate_ml_per_hour), FLUID_BOUNDS_ML),
        )

    _, base_min, base_max = get_temperature_band(temperature_f)
    multiplier = (
        get_weight_fluid_factor(weight_kg)
        * get_humidity_multiplier(humidity_percent)
        * SWEAT_RATE_FLUID_FACTORS[sweat_rate]
    )

    fluid_min = _clamp(round(base_min * multiplier), FLUID_BOUNDS_ML)
    fluid_max = _clamp(round(base_max * multiplier), FLUID_BOUNDS_ML)
    target = _clamp(round((fluid_min + fluid_max) / 2), FLUID_BOUNDS_ML)
    return fluid_min, fluid_max, target


# ============================================================================
# Sodium
# ============================================================================

def calculate_sodium_targets(
    sweat_rate: SweatRate,
    temperature_f: float,
    humidity_percent: float,
) -> Tuple[float, float, float]:
    """Calculate sodium (min, max, target) in mg per hour."""
    sodium_min, sodium_max = SODIUM_RANGES[sweat_rate]

    adjustment = 0.0
    if temperature_f >= HOT_TEMPERATURE_F:
        adjustment += SODIUM_HEAT_ADJUSTMENT_MG
    if humidity_percent > HUMIDITY_THRESHOLD:
        adjustment += SODIUM_HUMIDITY_ADJUSTMENT_MG

    sodium_min = _clamp(sodium_min + adjustment, SODIUM_BOUNDS_MG)
    sodium_max = _clamp(sodium_max + adjustment, SODIUM_BOUNDS_MG)
    target = _clamp(round((sodium_min + sodium_max) / 2), SODIUM_BOUNDS_MG)
    return sodium_min, sodium_max, target


def calculate_calorie_target(carbs_grams: float) -> float:
    """Most race calories come from carbohydrate."""
    return float(round(carbs_grams * CALORIES_PER_GRAM_CARB * CALORIE_BUFFER))


# ============================================================================
# Public Targets
# ============================================================================

def compute_hourly_targets(
    race: RaceContext,
    athlete: AthleteContext,
    weather: WeatherContext,
) -> HourlyTargets:
    """
    Compute the per-hour intake targets for a race.

    Returns HourlyTargets.empty() when duration, weight or humidity are out
    of range so callers can render an unconfigured state.
    """
    if not inputs_are_valid(race, athlete, weather):
        return HourlyTargets.empty()

    carbs_min, carbs_max, carbs_target = calculate_carb_targets(
        race.max_elevation_ft, athlete.gut_training_level
    )
    fluid_min, fluid_max, fluid_target = calculate_fluid_targets(
        weather.temperature_f,
        weather.humidity_percent,
        athlete.weight_kg,
        athlete.sweat_rate,
        athlete.known_sweat_rate_ml_per_hour,
    )
    sodium_min, sodium_max, sodium_target = calculate_sodium_targets(
        athlete.sweat_rate, weather.temperature_f, weather.humidity_percent
    )

    return HourlyTargets(
        carbs_grams_min=carbs_min,
        carbs_grams_max=carbs_max,
        carbs_grams_target=carbs_target,
        fluid_ml_min=fluid_min,
        fluid_ml_max=fluid_max,
        fluid_ml_target=fluid_target,
        sodium_mg_min=sodium_min,
        sodium_mg_max=sodium_max,
        sodium_mg_target=sodium_target,
        calories_target=calculate_calorie_target(carbs_target),
    )


def compute_total_targets(hourly: HourlyTargets, duration_hours: int) -> TotalTargets:
    """Scale hourly targets to the whole race."""
    if not hourly.is_configured or duration_hours <= 0:
        return TotalTargets()

    return TotalTargets(
        carbs=hourly.carbs_grams_target * duration_hours,
        fluid=hourly.fluid_ml_target * duration_hours,
        sodium=hourly.sodium_mg_target * duration_hours,
        calories=hourly.calories_target * duration_hours,
    )


# ============================================================================
# Glucose:Fructose Ratio Assessment
# ============================================================================

def _quality_for_fructose_ratio(fructose_per_glucose: float) -> RatioQuality:
    low, high = OPTIMAL_FRUCTOSE_RATIO
    if low <= fructose_per_glucose <= high:
        return RatioQuality.OPTIMAL
    low, high = ACCEPTABLE_FRUCTOSE_RATIO
    if low <= fructose_per_glucose <= high:
        return RatioQuality.ACCEPTABLE
    return RatioQuality.SUBOPTIMAL


def assess_glucose_fructose_ratio(ratio: Optional[str]) -> RatioQuality:
    """
    Assess a glucose:fructose label such as '2:1', '1:0.8' or 'glucose only'.

    Ratios between 2:1 and 1:1 use both transport pathways fully; 3:1 still
    engages the second pathway. A label naming a single sugar is suboptimal.
    """
    if not ratio:
        return RatioQuality.UNKNOWN

    normalized = ratio.lower().strip()
    if normalized in _SINGLE_SUGAR_LABELS:
        return RatioQuality.SUBOPTIMAL

    match = _RATIO_PATTERN.match(normalized)
    if not match:
        return RatioQuality.UNKNOWN

    glucose, fructose = float(match.group(1)), float(match.group(2))
    if glucose <= 0:
        return RatioQuality.SUBOPTIMAL
    return _quality_for_fructose_ratio(fructose / glucose)


def assess_product_ratio(product: NutritionProduct) -> RatioQuality:
    """Assess a product, falling back to its sugar breakdown when unlabeled."""
    quality = assess_glucose_fructose_ratio(product.glucose_fructose_ratio)
    if quality != RatioQuality.UNKNOWN:
        return quality

    glucose = (product.glucose_grams or 0.0) + (product.maltodextrin_grams or 0.0)
    if glucose <= 0 or product.fructose_grams is None:
        return RatioQuality.UNKNOWN
    return _quality_for_fructose_ratio(product.fructose_grams / glucose)


def has_multiple_transportable_carbs(product: NutritionProduct) -> bool:
    """Whether the product engages both carbohydrate transport pathways."""
    return assess_product_ratio(product) in (RatioQuality.OPTIMAL, RatioQuality.ACCEPTABLE)


def carb_ceiling_for_product(product: NutritionProduct) -> float:
    """Practical hourly carbohydrate ceiling when fueling with this product."""
    if has_multiple_transportable_carbs(product):
        return DUAL_PATHWAY_CEILING_G
    return SINGLE_PATHWAY_CEILING_G


# ============================================================================
# Conditions Advice
# ============================================================================

def get_duration_category(duration_hours: float) -> str:
    """Human-readable duration category."""
    if duration_hours < 1:
        return "short"
    if duration_hours < 2:
        return "moderate"
    if duration_hours < 4:
        return "endurance"
    if duration_hours < 8:
        return "ultra"
    return "extreme ultra"


def generate_condition_warnings(
    race: RaceContext,
    athlete: AthleteContext,
    weather: WeatherContext,
) -> List[str]:
    """Warnings driven by course and conditions rather than the timeline."""
    warnings = []

    altitude_factor = get_altitude_factor(race.max_elevation_ft)
    if altitude_factor < 1.0:
        reduction = round((1.0 - altitude_factor) * 100)
        warnings.append(
            f"Altitude ({race.max_elevation_ft:,.0f} ft) slows digestion; carbohydrate "
            f"ceiling reduced by {reduction}%. Favor easily absorbed drink mixes and gels up high."
        )

    if weather.temperature_f >= HOT_TEMPERATURE_F:
        warnings.append(
            f"Hot conditions ({weather.temperature_f:.0f}°F) significantly increase fluid and "
            "sodium needs. Start hydrating early and drink before you're thirsty."
        )

    if weather.humidity_percent > HUMIDITY_THRESHOLD:
        warnings.append(
            f"High humidity ({weather.humidity_percent:.0f}%) impairs sweat evaporation. "
            "Increase fluid intake and consider ice/cooling strategies."
        )

    if weather.temperature_f >= WARM_TEMPERATURE_F and weather.humidity_percent > HUMIDITY_THRESHOLD:
        warnings.append(
            "Heat + humidity combination creates high heat stress. Monitor for heat illness symptoms."
        )

    if race.duration_hours >= 8:
        warnings.append(
            "Ultra-distance event: Consider solid foods alongside gels to prevent taste fatigue. "
            "Practice your nutrition plan in training."
        )

    if athlete.gut_training_level == GutTrainingLevel.UNTRAINED and race.duration_hours >= 3:
        warnings.append(
            "For races over 3 hours, gut training helps you absorb more carbs. "
            "Practice with 80-100g/hour in training to build tolerance."
        )

    return warnings


def generate_condition_recommendations(
    athlete: AthleteContext,
    weather: WeatherContext,
    hourly_targets: HourlyTargets,
) -> List[str]:
    """Positive guidance derived from the targets."""
    recommendations = []

    if hourly_targets.carbs_grams_target >= 60:
        recommendations.append(
            "At 60g+/hour carbs, use products with glucose + fructose (1:0.8 or 2:1 ratio) "
            "to maximize absorption."
        )

    if athlete.sweat_rate == SweatRate.HIGH or hourly_targets.sodium_mg_target >= 700:
        recommendations.append(
            "Consider electrolyte supplements in addition to food to cover sodium losses."
        )

    recommendations.append(
        "Set a timer to eat every 20-30 minutes rather than waiting until you feel hungry."
    )
    recommendations.append(
        "Front-load nutrition in the first 2-3 hours while intensity is lower and gut is fresh."
    )

    if weather.temperature_f >= WARM_TEMPERATURE_F:
        recommendations.append("In warm conditions, drink 500ml in the hour before the start.")

    return recommendations


def calculate_race_nutrition_plan(
    race: RaceContext,
    athlete: AthleteContext,
    weather: WeatherContext,
) -> RaceNutritionPlan:
    """Targets, totals and condition advice for a race in one call."""
    hourly = compute_hourly_targets(race, athlete, weather)
    totals = compute_total_targets(hourly, race.duration_hours)

    if not hourly.is_configured:
        return RaceNutritionPlan(hourly_targets=hourly, total_targets=totals)

    band, _, _ = get_temperature_band(weather.temperature_f)
    factors = CalculationFactors(
        altitude_factor=get_altitude_factor(race.max_elevation_ft),
        temperature_band=band,
        humidity_multiplier=get_humidity_multiplier(weather.humidity_percent),
        weight_factor=get_weight_fluid_factor(athlete.weight_kg),
        sweat_rate_factor=SWEAT_RATE_FLUID_FACTORS[athlete.sweat_rate],
        duration_category=get_duration_category(race.duration_hours),
    )

    return RaceNutritionPlan(
        hourly_targets=hourly,
        total_targets=totals,
        warnings=generate_condition_warnings(race, athlete, weather),
        recommendations=generate_condition_recommendations(athlete, weather, hourly),
        factors=factors,
    )
