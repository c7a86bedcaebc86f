"""
API Request Models

Pydantic models for API request validation.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from fuelplanner.schemas import (
    AthleteContext,
    HourTotals,
    HourlyTargets,
    RaceContext,
    SavedPlanItem,
    SavedPlanWater,
    WeatherContext,
)


class TargetsRequest(BaseModel):
    """Request model for target calculation."""

    race: RaceContext = Field(..., description="Race duration, elevation and start time")
    athlete: AthleteContext = Field(..., description="Athlete physiology")
    weather: WeatherContext = Field(
        default_factory=WeatherContext, description="Expected race-day conditions"
    )


class ValidateHourRequest(BaseModel):
    """Request model for validating a single hour's intake."""

    actual: HourTotals = Field(..., description="Planned totals for the hour")
    targets: HourlyTargets = Field(..., description="Hourly targets to validate against")
    enforce_ceiling: bool = Field(
        default=False, description="Warn when carbs exceed the absorption ceiling"
    )
    absorption_ceiling_g: Optional[float] = Field(
        None, gt=0, description="Ceiling for the hour's product mix (default 60 g/h)"
    )


class PlanUpdateRequest(BaseModel):
    """Request model for replacing a saved nutrition plan."""

    user_id: str = Field(..., description="Owner of the plan")
    duration_hours: int = Field(..., ge=0, description="Race duration in whole hours")
    start_time_of_day: str = Field(default="06:00", description="Race start as 24h HH:MM")
    max_elevation_ft: float = Field(default=0.0, ge=0.0)
    athlete: AthleteContext = Field(..., description="Athlete physiology")
    weather: WeatherContext = Field(default_factory=WeatherContext)
    items: List[SavedPlanItem] = Field(default_factory=list, description="Product rows")
    water: List[SavedPlanWater] = Field(default_factory=list, description="Water rows")
