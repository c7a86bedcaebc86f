"""
Running totals across the whole timeline.

A plan-completeness check: sums what is planned in every hour and compares
it with the race totals. It never looks at the clock.
"""

from functools import reduce

from fuelplanner.schemas import HourTotals, NutrientProgress, RunningTotals, TotalTargets
from fuelplanner.timeline import NutritionTimeline

LOW_PROGRESS_PERCENT = 70
HIGH_PROGRESS_PERCENT = 110


def _progress(current: float, target: float) -> NutrientProgress:
    percent = round(current / target * 100) if target > 0 else 0
    if percent < LOW_PROGRESS_PERCENT:
        status = "low"
    elif percent <= HIGH_PROGRESS_PERCENT:
        status = "good"
    else:
        status = "high"
    return NutrientProgress(current=current, target=target, percent=percent, status=status)


def sum_planned_intake(timeline: NutritionTimeline) -> HourTotals:
    return reduce(lambda acc, totals: acc + totals, timeline.all_totals(), HourTotals())


def calculate_running_totals(
    timeline: NutritionTimeline,
    total_targets: TotalTargets,
) -> RunningTotals:
    """
    Compare planned intake across all hours with the race totals.

    Args:
        timeline: Timeline to sum
        total_targets: Whole-race targets

    Returns:
        RunningTotals with current/target/percent per nutrient
    """
    planned = sum_planned_intake(timeline)
    return RunningTotals(
        carbs=_progress(planned.carbs, total_targets.carbs),
        fluid=_progress(planned.fluid, total_targets.fluid),
        sodium=_progress(planned.sodium, total_targets.sodium),
        calories=_progress(planned.calories, total_targets.calories),
        caffeine_mg=planned.caffeine,
    )
