"""
Targets API Routes

Endpoints for hourly target calculation and single-hour validation.
"""

from fastapi import APIRouter, HTTPException, status

from fuelplanner.api.models.requests import TargetsRequest, ValidateHourRequest
from fuelplanner.schemas import HourValidation, RaceNutritionPlan
from fuelplanner.targets import calculate_race_nutrition_plan
from fuelplanner.validator import validate_hourly_intake

router = APIRouter()


@router.post("/targets", response_model=RaceNutritionPlan)
async def calculate_targets(request: TargetsRequest) -> RaceNutritionPlan:
    """
    Calculate hourly and whole-race targets with condition advice.

    Invalid inputs (non-positive duration or weight, humidity outside 0-100)
    do not fail the request; they return unconfigured, all-zero targets.

    Args:
        request: TargetsRequest with race, athlete and weather contexts

    Returns:
        RaceNutritionPlan with hourly targets, totals, warnings and recommendations
    """
    try:
        return calculate_race_nutrition_plan(request.race, request.athlete, request.weather)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Target calculation failed: {str(e)}",
        )


@router.post("/validate-hour", response_model=HourValidation)
async def validate_hour(request: ValidateHourRequest) -> HourValidation:
    """
    Classify one hour's intake against the hourly targets.

    Example:
        POST /api/validate-hour
        {"actual": {"carbs": 42, "fluid": 800, "sodium": 500},
         "targets": {"carbs_grams_target": 60, "fluid_ml_target": 750, ...}}

        Response:
        {"carbs_status": "on-target", "carbs_percent": 70, ...}
    """
    return validate_hourly_intake(
        request.actual,
        request.targets,
        enforce_ceiling=request.enforce_ceiling,
        absorption_ceiling_g=request.absorption_ceiling_g,
    )
