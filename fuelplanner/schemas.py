"""
Pydantic models for race-day nutrition planning.

This module defines the core data structures for:
- Race, athlete and weather contexts: inputs to target calculation
- Nutrition products: catalog entries referenced by the timeline
- Timeline entries and hours: the editable hour-by-hour fueling plan
- Targets, totals and validation results: derived, never stored on the hours
"""

import math
import re
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enumerations
# ============================================================================

class SweatRate(str, Enum):
    """Self-reported sweat rate classification."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GutTrainingLevel(str, Enum):
    """How well the athlete's gut is trained to absorb high carbohydrate loads."""
    UNTRAINED = "untrained"
    MODERATE = "moderate"
    WELL_TRAINED = "well_trained"


class ProductCategory(str, Enum):
    """Product category for filtering and display."""
    GEL = "gel"
    CHEW = "chew"
    BAR = "bar"
    DRINK_MIX = "drink_mix"
    REAL_FOOD = "real_food"
    ELECTROLYTE = "electrolyte"
    OTHER = "other"


class ProductSource(str, Enum):
    """Where the athlete picks up a product during the race."""
    PERSONAL_STOCK = "personal_stock"  # Carried from the start
    AID_STATION = "aid_station"
    DROP_BAG = "drop_bag"
    CREW = "crew"


class IntakeStatus(str, Enum):
    """Classification of actual intake against an hourly target."""
    BELOW = "below"
    ON_TARGET = "on-target"
    ABOVE = "above"


class RatioQuality(str, Enum):
    """Glucose:fructose ratio quality for carbohydrate absorption."""
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    SUBOPTIMAL = "suboptimal"
    UNKNOWN = "unknown"


_CLOCK_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


# ============================================================================
# Planning Contexts
# ============================================================================

class RaceContext(BaseModel):
    """Race parameters supplied by the hosting page or wizard."""

    race_plan_id: Optional[str] = Field(
        None,
        description="Identifier of the race plan this nutrition plan belongs to"
    )

    duration_hours: int = Field(
        ...,
        description="Race duration in whole hours (ceil of expected minutes / 60)"
    )

    max_elevation_ft: float = Field(
        default=0.0,
        ge=0.0,
        description="Highest point on the course in feet"
    )

    start_time_of_day: str = Field(
        default="06:00",
        description="Race start time as 24h HH:MM"
    )

    @field_validator("start_time_of_day")
    @classmethod
    def validate_start_time(cls, v: str) -> str:
        """Ensure the start time parses as a 24h clock string."""
        if not _CLOCK_PATTERN.match(v.strip()):
            raise ValueError(f"Start time must be HH:MM (24h), got '{v}'")
        return v.strip()

    @classmethod
    def from_duration_minutes(
        cls,
        minutes: float,
        **kwargs,
    ) -> "RaceContext":
        """Build a context from an expected finish time in minutes."""
        hours = math.ceil(minutes / 60) if minutes > 0 else 0
        return cls(duration_hours=hours, **kwargs)


class AthleteContext(BaseModel):
    """Athlete physiology relevant to fueling."""

    weight_kg: float = Field(..., description="Body weight in kilograms")

    sweat_rate: SweatRate = Field(
        default=SweatRate.MEDIUM,
        description="Self-reported sweat rate classification"
    )

    gut_training_level: GutTrainingLevel = Field(
        default=GutTrainingLevel.MODERATE,
        description="Gut training level for high carbohydrate intake"
    )

    known_sweat_rate_ml_per_hour: Optional[float] = Field(
        None,
        gt=0,
        description="Tested sweat rate in ml/hour, overrides the environmental estimate"
    )


class WeatherContext(BaseModel):
    """Expected race-day conditions."""

    temperature_f: float = Field(default=70.0, description="Expected temperature (°F)")
    humidity_percent: float = Field(default=50.0, description="Relative humidity (0-100)")


# ============================================================================
# Products
# ============================================================================

class NutritionProduct(BaseModel):
    """
    Nutrition product from the catalog.

    Nutritional values are per serving. The timeline only stores a reference
    to the product id; product data is owned by the catalog.
    """

    id: str = Field(..., description="Catalog product id")
    brand: str = Field(..., description="Brand name")
    name: str = Field(..., description="Product name")
    category: ProductCategory = Field(..., description="Product category")
    serving_size: Optional[str] = Field(None, description="Serving size label")

    calories: float = Field(default=0.0, ge=0.0)
    carbs_grams: float = Field(default=0.0, ge=0.0)
    sodium_mg: float = Field(default=0.0, ge=0.0)

    # Advanced carbohydrate data
    sugars_grams: Optional[float] = Field(None, ge=0.0)
    glucose_grams: Optional[float] = Field(None, ge=0.0)
    fructose_grams: Optional[float] = Field(None, ge=0.0)
    maltodextrin_grams: Optional[float] = Field(None, ge=0.0)
    glucose_fructose_ratio: Optional[str] = Field(
        None,
        description="Label ratio such as '2:1' or '1:0.8'"
    )

    caffeine_mg: Optional[float] = Field(None, ge=0.0)
    protein_grams: Optional[float] = Field(None, ge=0.0)
    fat_grams: Optional[float] = Field(None, ge=0.0)
    fiber_grams: Optional[float] = Field(None, ge=0.0)

    water_content_ml: Optional[float] = Field(
        None,
        ge=0.0,
        description="Fluid delivered by one serving (drink mixes, real food)"
    )

    image_url: Optional[str] = None
    is_verified: bool = Field(default=False, description="Nutrition data verified against label")
    notes: Optional[str] = None

    @property
    def has_caffeine(self) -> bool:
        return bool(self.caffeine_mg)


# ============================================================================
# Timeline
# ============================================================================

class TimelineProduct(BaseModel):
    """A product placed in one hour of the timeline."""

    id: str = Field(..., description="Unique entry id")
    product_id: str = Field(..., description="Reference to NutritionProduct.id")
    quantity: int = Field(default=1, ge=1, description="Number of servings")
    fluid_ml: Optional[float] = Field(
        None,
        description="Custom fluid volume; only meaningful for drink mixes"
    )
    source: ProductSource = Field(default=ProductSource.PERSONAL_STOCK)
    source_location_id: Optional[str] = None
    source_name: Optional[str] = None
    notes: Optional[str] = None
    sort_order: int = Field(default=0, ge=0)


class TimelineHour(BaseModel):
    """
    Single hour row in the nutrition timeline.

    Totals are not stored here; they are derived from the entries by the
    timeline after every mutation.
    """

    hour_number: int = Field(..., ge=1, description="1-indexed hour of the race")
    start_time: str = Field(..., description="Clock label, e.g. '6:00 AM'")
    end_time: str = Field(..., description="Clock label, e.g. '7:00 AM'")
    products: List[TimelineProduct] = Field(default_factory=list)
    water_ml: float = Field(default=0.0, ge=0.0, description="Loose water not tied to a product")
    water_source: Optional[ProductSource] = None


class HourTotals(BaseModel):
    """Nutrient totals for one hour (or summed across hours)."""

    carbs: float = 0.0
    fluid: float = 0.0
    sodium: float = 0.0
    caffeine: float = 0.0
    calories: float = 0.0

    def __add__(self, other: "HourTotals") -> "HourTotals":
        return HourTotals(
            carbs=self.carbs + other.carbs,
            fluid=self.fluid + other.fluid,
            sodium=self.sodium + other.sodium,
            caffeine=self.caffeine + other.caffeine,
            calories=self.calories + other.calories,
        )


# ============================================================================
# Targets
# ============================================================================

class HourlyTargets(BaseModel):
    """Per-hour intake targets, constant across every hour of a plan."""

    carbs_grams_min: float = 0.0
    carbs_grams_max: float = 0.0
    carbs_grams_target: float = 0.0
    fluid_ml_min: float = 0.0
    fluid_ml_max: float = 0.0
    fluid_ml_target: float = 0.0
    sodium_mg_min: float = 0.0
    sodium_mg_max: float = 0.0
    sodium_mg_target: float = 0.0
    calories_target: float = 0.0
    is_configured: bool = Field(
        default=True,
        description="False when inputs were invalid and the targets are degenerate"
    )

    @classmethod
    def empty(cls) -> "HourlyTargets":
        """Degenerate target used to render a 'not configured' state."""
        return cls(is_configured=False)


class TotalTargets(BaseModel):
    """Whole-race targets: each hourly target multiplied by race hours."""

    carbs: float = 0.0
    fluid: float = 0.0
    sodium: float = 0.0
    calories: float = 0.0


class CalculationFactors(BaseModel):
    """Raw multipliers exposed for transparency."""

    altitude_factor: float
    temperature_band: str
    humidity_multiplier: float
    weight_factor: float
    sweat_rate_factor: float
    duration_category: str


class RaceNutritionPlan(BaseModel):
    """Targets plus condition-driven advice for a race."""

    hourly_targets: HourlyTargets
    total_targets: TotalTargets
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    factors: Optional[CalculationFactors] = None


# ============================================================================
# Validation
# ============================================================================

class HourValidation(BaseModel):
    """Validation of one hour's planned intake against the hourly targets."""

    hour_number: Optional[int] = None
    carbs_status: IntakeStatus
    carbs_percent: int
    fluid_status: IntakeStatus
    fluid_percent: int
    sodium_status: IntakeStatus
    sodium_percent: int
    overall_status: IntakeStatus
    has_multiple_transportable_carbs: bool = False
    absorption_ceiling_g: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)


class PlanValidationResult(BaseModel):
    """Validation across the whole timeline."""

    hours: List[HourValidation] = Field(default_factory=list)
    warnings: List[str] = Field(
        default_factory=list,
        description="Negative-signal messages (deficits, absorption ceiling, heat)"
    )
    recommendations: List[str] = Field(
        default_factory=list,
        description="Positive-signal messages (well-balanced sugar mixes)"
    )


class NutrientProgress(BaseModel):
    """Planned amount of one nutrient against its race total."""

    current: float
    target: float
    percent: int
    status: str = Field(..., description="low, good or high")


class RunningTotals(BaseModel):
    """Plan completeness across all hours of the timeline."""

    carbs: NutrientProgress
    fluid: NutrientProgress
    sodium: NutrientProgress
    calories: NutrientProgress
    caffeine_mg: float = 0.0

    def as_dict(self) -> Dict[str, NutrientProgress]:
        return {
            "carbs": self.carbs,
            "fluid": self.fluid,
            "sodium": self.sodium,
            "calories": self.calories,
        }


# ============================================================================
# Catalog Browsing
# ============================================================================

class ProductFilters(BaseModel):
    """Product palette filter state."""

    search: str = ""
    categories: List[ProductCategory] = Field(default_factory=list)
    caffeine_only: bool = False
    caffeine_free: bool = False
    favorites_only: bool = False


# ============================================================================
# Persistence
# ============================================================================

class SavedPlanItem(BaseModel):
    """One stored product row of a nutrition plan."""

    product_id: str
    hour_number: int = Field(..., ge=1)
    quantity: int = Field(default=1, ge=1)
    fluid_ml: Optional[float] = None
    source: ProductSource = ProductSource.PERSONAL_STOCK
    source_location_id: Optional[str] = None
    source_name: Optional[str] = None
    notes: Optional[str] = None
    sort_order: int = 0


class SavedPlanWater(BaseModel):
    """One stored water row of a nutrition plan."""

    hour_number: int = Field(..., ge=1)
    water_ml: float = Field(..., ge=0.0)
    source: ProductSource = ProductSource.PERSONAL_STOCK


class SavedPlan(BaseModel):
    """A nutrition plan as read back from storage."""

    id: str
    race_plan_id: str
    items: List[SavedPlanItem] = Field(default_factory=list)
    water: List[SavedPlanWater] = Field(default_factory=list)
