"""
Nutrition Plans API Routes

Endpoints for reading, replacing and exporting saved nutrition plans.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fuelplanner.api.deps import get_catalog, get_plan_storage
from fuelplanner.api.models.requests import PlanUpdateRequest
from fuelplanner.api.models.responses import (
    PackingListResponse,
    PlanUpdateResponse,
    StickerResponse,
)
from fuelplanner.config import Settings, get_settings
from fuelplanner.database import ProductCatalogRepository, SqlPlanStorage
from fuelplanner.export import build_packing_list, build_sticker_hours
from fuelplanner.intents import ClearHour
from fuelplanner.persistence import apply_saved_plan
from fuelplanner.schemas import RaceContext, SavedPlan
from fuelplanner.session import PlannerSession
from fuelplanner.timeline import NutritionTimeline

router = APIRouter()


def _load_saved_timeline(
    race_plan_id: str,
    storage: SqlPlanStorage,
    catalog: ProductCatalogRepository,
    duration_hours: Optional[int],
    start_time: str,
) -> NutritionTimeline:
    """
    Rebuild a read-only timeline from storage.

    Without an explicit duration the timeline spans up to the last hour that
    has a stored row.

    Raises:
        HTTPException: 404 if no plan is stored, 422 for a bad start time
    """
    saved = storage.load_plan(race_plan_id)
    if saved is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No nutrition plan for race plan '{race_plan_id}'",
        )

    if duration_hours is None:
        hour_numbers = [row.hour_number for row in saved.items] + [row.hour_number for row in saved.water]
        duration_hours = max(hour_numbers, default=0)

    products = {product.id: product for product in catalog.list_active_products()}
    timeline = NutritionTimeline(products=products)
    try:
        timeline.initialize(duration_hours, start_time)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    apply_saved_plan(timeline, saved)
    return timeline


@router.get("/plans/{race_plan_id}", response_model=SavedPlan)
async def get_plan(
    race_plan_id: str,
    storage: SqlPlanStorage = Depends(get_plan_storage),
) -> SavedPlan:
    """
    Get the stored rows of a nutrition plan.

    Raises:
        HTTPException: 404 if the race plan has no nutrition plan
    """
    saved = storage.load_plan(race_plan_id)
    if saved is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No nutrition plan for race plan '{race_plan_id}'",
        )
    return saved


@router.put("/plans/{race_plan_id}", response_model=PlanUpdateResponse)
async def replace_plan(
    race_plan_id: str,
    request: PlanUpdateRequest,
    storage: SqlPlanStorage = Depends(get_plan_storage),
    catalog: ProductCatalogRepository = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> PlanUpdateResponse:
    """
    Replace a nutrition plan and return its validation.

    Workflow:
    1. Start a planner session (loads catalog, hydrates the stored plan)
    2. Clear every hour and replay the submitted rows
    3. Save immediately; an unchanged plan is not rewritten
    4. Return targets, running totals and warnings for the new plan

    Rows for unknown products or hours beyond duration_hours are skipped
    and counted in skipped_items.

    Raises:
        HTTPException: 422 for an invalid race context, 500 on unexpected errors
    """
    try:
        race = RaceContext(
            race_plan_id=race_plan_id,
            duration_hours=request.duration_hours,
            start_time_of_day=request.start_time_of_day,
            max_elevation_ft=request.max_elevation_ft,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    session = PlannerSession(
        race,
        request.athlete,
        request.weather,
        storage=storage,
        catalog=catalog,
        user_id=request.user_id,
        settings=settings,
    )
    try:
        await session.start()

        for hour_index in range(len(session.hours)):
            session.dispatch(ClearHour(hour_index=hour_index))

        submitted = SavedPlan(
            id=session.synchronizer.plan_id or "",
            race_plan_id=race_plan_id,
            items=request.items,
            water=request.water,
        )
        restored = apply_saved_plan(session.timeline, submitted)
        saved = await session.flush()

        return PlanUpdateResponse(
            plan_id=session.synchronizer.plan_id,
            saved=saved,
            skipped_items=len(request.items) - restored,
            hourly_targets=session.hourly_targets,
            running_totals=session.running_totals,
            validation=session.validation,
            warnings=session.warnings,
            recommendations=session.recommendations,
        )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Plan update failed: {str(e)}",
        )
    finally:
        session.teardown()


@router.get("/plans/{race_plan_id}/stickers", response_model=StickerResponse)
async def get_stickers(
    race_plan_id: str,
    duration_hours: Optional[int] = Query(None, ge=0),
    start_time: Optional[str] = None,
    storage: SqlPlanStorage = Depends(get_plan_storage),
    catalog: ProductCatalogRepository = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> StickerResponse:
    """
    Get per-hour sticker rows for printing.

    Every hour is included, even empty ones, so the sticker lines up with
    the race clock.
    """
    timeline = _load_saved_timeline(
        race_plan_id, storage, catalog, duration_hours, start_time or settings.default_start_time
    )
    return StickerResponse(race_plan_id=race_plan_id, hours=build_sticker_hours(timeline))


@router.get("/plans/{race_plan_id}/packing-list", response_model=PackingListResponse)
async def get_packing_list(
    race_plan_id: str,
    duration_hours: Optional[int] = Query(None, ge=0),
    storage: SqlPlanStorage = Depends(get_plan_storage),
    catalog: ProductCatalogRepository = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> PackingListResponse:
    """Get planned products grouped by pickup source."""
    timeline = _load_saved_timeline(
        race_plan_id, storage, catalog, duration_hours, settings.default_start_time
    )
    return PackingListResponse(race_plan_id=race_plan_id, groups=build_packing_list(timeline))
