"""
Hourly intake validation.

This module classifies each hour's planned intake against the hourly
targets and collects plan-level warnings (negative signals) and
recommendations (positive signals).

Classification rules:
- below:     actual < 70% of target
- on-target: 70% <= actual <= 110% of target
- above:     actual > 110% of target

An hour's overall status only looks at carbohydrate and fluid, and a
deficit outranks an excess.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from fuelplanner.schemas import (
    HourTotals,
    HourValidation,
    HourlyTargets,
    IntakeStatus,
    NutritionProduct,
    PlanValidationResult,
    TimelineProduct,
    WeatherContext,
)
from fuelplanner.targets import (
    DUAL_PATHWAY_CEILING_G,
    HOT_TEMPERATURE_F,
    SINGLE_PATHWAY_CEILING_G,
    has_multiple_transportable_carbs,
)
from fuelplanner.timeline import NutritionTimeline

BELOW_THRESHOLD_PERCENT = 70
ABOVE_THRESHOLD_PERCENT = 110

# Recommend a balanced mix only once intake is high enough for it to matter
HIGH_CARB_INTAKE_G = 60.0

LATE_CAFFEINE_HOUR = 8
LATE_CAFFEINE_FINAL_HOURS = 4


# ============================================================================
# Classification
# ============================================================================

def classify_intake(actual: float, target: float) -> IntakeStatus:
    """
    Classify actual intake against a target.

    Boundaries are inclusive of on-target. A zero target has nothing to
    compare against and is treated as on-target.
    """
    if target <= 0:
        return IntakeStatus.ON_TARGET
    # Compare in percent space to keep exact boundaries exact
    if actual * 100 < target * BELOW_THRESHOLD_PERCENT:
        return IntakeStatus.BELOW
    if actual * 100 > target * ABOVE_THRESHOLD_PERCENT:
        return IntakeStatus.ABOVE
    return IntakeStatus.ON_TARGET


def intake_percent(actual: float, target: float) -> int:
    if target <= 0:
        return 0
    return round(actual / target * 100)


def overall_status(carbs_status: IntakeStatus, fluid_status: IntakeStatus) -> IntakeStatus:
    """Combine carbohydrate and fluid status; below takes precedence over above."""
    if IntakeStatus.BELOW in (carbs_status, fluid_status):
        return IntakeStatus.BELOW
    if IntakeStatus.ABOVE in (carbs_status, fluid_status):
        return IntakeStatus.ABOVE
    return IntakeStatus.ON_TARGET


def is_caffeine_late(hour_number: int, total_hours: int) -> bool:
    """Caffeine after hour 8 or in the final 4 hours may affect post-race sleep."""
    return hour_number >= LATE_CAFFEINE_HOUR or hour_number > total_hours - LATE_CAFFEINE_FINAL_HOURS


def absorption_ceiling_for_hour(
    entries: Iterable[TimelineProduct],
    products: Dict[str, NutritionProduct],
    dual_pathway_ceiling_g: float = DUAL_PATHWAY_CEILING_G,
) -> Tuple[float, bool]:
    """
    Practical carbohydrate ceiling implied by an hour's product mix.

    The dual-pathway ceiling applies when at least half of the hour's
    carbohydrate comes from products combining glucose and fructose.

    Args:
        entries: The hour's product entries
        products: Product lookup
        dual_pathway_ceiling_g: Ceiling for glucose + fructose mixes; the
            athlete's trained maximum when known

    Returns:
        (ceiling_grams, uses_multiple_transportable_carbs)
    """
    total_carbs = 0.0
    dual_carbs = 0.0

    for entry in entries:
        product = products.get(entry.product_id)
        if product is None:
            continue
        carbs = product.carbs_grams * entry.quantity
        total_carbs += carbs
        if has_multiple_transportable_carbs(product):
            dual_carbs += carbs

    if total_carbs > 0 and dual_carbs * 2 >= total_carbs:
        return max(dual_pathway_ceiling_g, SINGLE_PATHWAY_CEILING_G), True
    return SINGLE_PATHWAY_CEILING_G, False


def validate_hourly_intake(
    actual: HourTotals,
    targets: HourlyTargets,
    enforce_ceiling: bool = False,
    absorption_ceiling_g: Optional[float] = None,
) -> HourValidation:
    """
    Validate one hour's intake against the hourly targets.

    Args:
        actual: Planned totals for the hour
        targets: Hourly targets for the plan
        enforce_ceiling: Warn when carbohydrate exceeds the absorption ceiling
        absorption_ceiling_g: Ceiling implied by the hour's product mix;
            defaults to the single-pathway ceiling

    Returns:
        HourValidation with per-nutrient status, percents and warnings
    """
    ceiling = absorption_ceiling_g if absorption_ceiling_g is not None else SINGLE_PATHWAY_CEILING_G
    warnings = []

    carbs_status = classify_intake(actual.carbs, targets.carbs_grams_target)
    fluid_status = classify_intake(actual.fluid, targets.fluid_ml_target)
    sodium_status = classify_intake(actual.sodium, targets.sodium_mg_target)

    if carbs_status == IntakeStatus.BELOW:
        warnings.append("Carb intake below target - consider adding a gel or chews")

    if enforce_ceiling and actual.carbs > ceiling:
        warnings.append(
            f"{actual.carbs:.0f}g carbs exceeds the ~{ceiling:.0f}g/hr absorption ceiling "
            "for this product mix - high risk of GI distress"
        )

    if fluid_status == IntakeStatus.BELOW:
        warnings.append("Fluid intake below target")

    if sodium_status == IntakeStatus.BELOW:
        warnings.append("Sodium intake below target - add electrolytes")

    return HourValidation(
        carbs_status=carbs_status,
        carbs_percent=intake_percent(actual.carbs, targets.carbs_grams_target),
        fluid_status=fluid_status,
        fluid_percent=intake_percent(actual.fluid, targets.fluid_ml_target),
        sodium_status=sodium_status,
        sodium_percent=intake_percent(actual.sodium, targets.sodium_mg_target),
        overall_status=overall_status(carbs_status, fluid_status),
        has_multiple_transportable_carbs=ceiling > SINGLE_PATHWAY_CEILING_G,
        absorption_ceiling_g=ceiling,
        warnings=warnings,
    )


# ============================================================================
# Plan Validation
# ============================================================================

class PlanValidator:
    """
    Validates every hour of a timeline and summarizes the plan.

    Warnings only cover hours with something planned, so an empty timeline
    does not drown the athlete in deficits.
    """

    def __init__(
        self,
        targets: HourlyTargets,
        weather: WeatherContext,
        duration_hours: int,
        dual_pathway_ceiling_g: Optional[float] = None,
    ):
        """
        Initialize validator.

        Args:
            targets: Hourly targets for the plan
            weather: Race-day conditions, used for heat-related sodium warnings
            duration_hours: Race length, used for late-caffeine detection
            dual_pathway_ceiling_g: Ceiling for hours fueled with glucose +
                fructose; defaults to the athlete's carbs_grams_max (gut
                training and altitude adjusted)
        """
        self.targets = targets
        self.weather = weather
        self.duration_hours = duration_hours
        if dual_pathway_ceiling_g is None:
            dual_pathway_ceiling_g = targets.carbs_grams_max or DUAL_PATHWAY_CEILING_G
        self.dual_pathway_ceiling_g = dual_pathway_ceiling_g

    def validate(self, timeline: NutritionTimeline) -> PlanValidationResult:
        """
        Validate all hours of the timeline.

        Args:
            timeline: The timeline to check

        Returns:
            PlanValidationResult with per-hour results, warnings and recommendations
        """
        if not self.targets.is_configured:
            return PlanValidationResult()

        products = timeline.products
        hour_results: List[HourValidation] = []
        warnings: List[str] = []
        recommendations: List[str] = []

        for index, hour in enumerate(timeline.hours):
            totals = timeline.hour_totals(index)
            ceiling, uses_both_pathways = absorption_ceiling_for_hour(
                hour.products, products, self.dual_pathway_ceiling_g
            )

            validation = validate_hourly_intake(
                totals, self.targets, enforce_ceiling=True, absorption_ceiling_g=ceiling
            )
            validation.hour_number = hour.hour_number
            validation.has_multiple_transportable_carbs = uses_both_pathways
            hour_results.append(validation)

            if not hour.products and hour.water_ml <= 0:
                continue

            warnings.extend(self._hour_warnings(hour.hour_number, totals, validation, ceiling))

            if (
                uses_both_pathways
                and HIGH_CARB_INTAKE_G <= totals.carbs <= ceiling
            ):
                recommendations.append(
                    f"Hour {hour.hour_number}: well-balanced glucose:fructose mix supports "
                    f"{totals.carbs:.0f}g/hr absorption"
                )

        return PlanValidationResult(
            hours=hour_results,
            warnings=warnings,
            recommendations=recommendations,
        )

    def _hour_warnings(
        self,
        hour_number: int,
        totals: HourTotals,
        validation: HourValidation,
        ceiling: float,
    ) -> List[str]:
        """Plan-level warnings raised by a single hour."""
        warnings = []

        if totals.carbs > ceiling:
            warnings.append(
                f"Hour {hour_number}: {totals.carbs:.0f}g carbs exceeds the ~{ceiling:.0f}g/hr "
                "absorption ceiling - expect GI distress"
            )

        if (
            self.weather.temperature_f >= HOT_TEMPERATURE_F
            and validation.sodium_status == IntakeStatus.BELOW
        ):
            warnings.append(
                f"Hour {hour_number}: insufficient sodium for {self.weather.temperature_f:.0f}°F heat "
                f"({totals.sodium:.0f}mg vs {self.targets.sodium_mg_target:.0f}mg target)"
            )

        if totals.caffeine > 0 and is_caffeine_late(hour_number, self.duration_hours):
            warnings.append(
                f"Hour {hour_number}: caffeine this late in the race may disrupt post-race sleep"
            )

        return warnings
