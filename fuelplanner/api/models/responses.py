"""
API Response Models

Pydantic models for API responses.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from fuelplanner.export import PackingListGroup, StickerHour
from fuelplanner.schemas import (
    HourlyTargets,
    NutritionProduct,
    PlanValidationResult,
    RunningTotals,
)


class ProductListResponse(BaseModel):
    """Response for GET /api/products."""

    products: List[NutritionProduct] = Field(..., description="Products matching the filters")
    count: int = Field(..., description="Number of matching products")


class PlanUpdateResponse(BaseModel):
    """Response for PUT /api/plans/{race_plan_id}."""

    plan_id: Optional[str] = Field(None, description="Stored plan id")
    saved: bool = Field(..., description="False when the plan was unchanged or could not be stored")
    skipped_items: int = Field(
        default=0, description="Rows dropped for unknown products or hours outside the race"
    )
    hourly_targets: HourlyTargets
    running_totals: RunningTotals
    validation: PlanValidationResult
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class StickerResponse(BaseModel):
    """Response for GET /api/plans/{race_plan_id}/stickers."""

    race_plan_id: str
    hours: List[StickerHour]


class PackingListResponse(BaseModel):
    """Response for GET /api/plans/{race_plan_id}/packing-list."""

    race_plan_id: str
    groups: List[PackingListGroup]


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
