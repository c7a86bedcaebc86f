"""
Plan-editing session.

A PlannerSession owns everything one editing session needs: the race,
athlete and weather contexts, the derived targets, the timeline, the
product browser and the plan synchronizer. It is constructed explicitly,
started (catalog load + hydration), fed intents, and torn down. Nothing is
shared between sessions.

Example:
    session = PlannerSession(race, athlete, weather, storage=storage,
                             catalog=catalog, user_id="athlete-1")
    await session.start()
    session.dispatch(AddProduct(hour_index=0, product=gel))
    print(session.running_totals.carbs.percent)
    session.teardown()
"""

from typing import Any, List, Optional

from loguru import logger

from fuelplanner.catalog import ProductBrowser
from fuelplanner.config import Settings, get_settings
from fuelplanner.intents import (
    AddProduct,
    ClearHour,
    MoveProduct,
    RemoveProduct,
    SelectHour,
    SetFilters,
    SetWater,
    ToggleFavorite,
    UpdateFluid,
    UpdateQuantity,
    UpdateSource,
)
from fuelplanner.persistence import PlanStorage, PlanSynchronizer
from fuelplanner.schemas import (
    AthleteContext,
    HourTotals,
    HourlyTargets,
    NutritionProduct,
    PlanValidationResult,
    RaceContext,
    RaceNutritionPlan,
    RunningTotals,
    TimelineHour,
    TimelineProduct,
    TotalTargets,
    WeatherContext,
)
from fuelplanner.targets import calculate_race_nutrition_plan
from fuelplanner.timeline import NutritionTimeline
from fuelplanner.totals import calculate_running_totals
from fuelplanner.validator import PlanValidator


class PlannerSession:
    """Single-writer editing session for one race nutrition plan."""

    def __init__(
        self,
        race: RaceContext,
        athlete: AthleteContext,
        weather: Optional[WeatherContext] = None,
        storage: Optional[PlanStorage] = None,
        catalog=None,
        favorites_store=None,
        user_id: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize session.

        Args:
            race: Race context; duration and start time size the timeline
            athlete: Athlete context
            weather: Expected conditions (defaults to 70°F / 50%)
            storage: Plan storage; without it the plan lives only in memory
            catalog: Object with list_active_products(), loaded on start()
            favorites_store: Object with get_favorites/set_favorites
            user_id: Authenticated user; None for guest sessions
            settings: Runtime settings (defaults to environment settings)
        """
        self.settings = settings or get_settings()
        self.race = race
        self.athlete = athlete
        self.weather = weather or WeatherContext()
        self.catalog = catalog
        self.favorites_store = favorites_store
        self.user_id = user_id

        self.timeline = NutritionTimeline(
            drink_mix_fluid_ml=self.settings.default_drink_mix_fluid_ml
        )
        self.browser = ProductBrowser()
        self.synchronizer: Optional[PlanSynchronizer] = None
        if storage is not None:
            self.synchronizer = PlanSynchronizer(
                self.timeline,
                storage,
                race.race_plan_id,
                user_id=user_id,
                debounce_seconds=self.settings.save_debounce_seconds,
            )

        self.selected_hour_index: Optional[int] = None
        self._plan: RaceNutritionPlan = calculate_race_nutrition_plan(race, athlete, self.weather)
        self._validation = PlanValidationResult()
        self.is_started = False

        self.timeline.initialize(race.duration_hours, race.start_time_of_day)
        self.timeline.subscribe(self._on_timeline_change)
        self._revalidate()

    # ============================================================================
    # Lifecycle
    # ============================================================================

    async def start(self) -> None:
        """Load the catalog and favorites, then hydrate the saved plan."""
        if self.catalog is not None:
            products = self.catalog.list_active_products()
            self.browser.load_products(products)
            self.timeline.register_products(products)
            logger.debug(f"Loaded {len(products)} catalog products")

        if self.favorites_store is not None and self.user_id:
            self.browser.load_favorites(self.favorites_store.get_favorites(self.user_id))

        if self.synchronizer is not None:
            await self.synchronizer.hydrate()

        self._revalidate()
        self.is_started = True

    async def flush(self) -> bool:
        """Save pending edits immediately instead of waiting for the debounce."""
        if self.synchronizer is None:
            return False
        return await self.synchronizer.flush()

    def teardown(self) -> None:
        """Stop auto-saving and reset the timeline."""
        if self.synchronizer is not None:
            self.synchronizer.teardown()
        self.timeline.reset()
        self.selected_hour_index = None
        self._validation = PlanValidationResult()
        self.is_started = False

    # ============================================================================
    # Contexts
    # ============================================================================

    def set_race_context(self, race: RaceContext) -> None:
        """
        Apply a new race context.

        Entries survive by hour number; hours beyond a shorter duration are
        dropped.

        Raises:
            ValueError: If the race plan id changes (start a new session instead)
        """
        if race.race_plan_id != self.race.race_plan_id:
            raise ValueError(
                f"Session is bound to race plan {self.race.race_plan_id}, got {race.race_plan_id}"
            )
        self.race = race
        self._recalculate()
        self.timeline.initialize(race.duration_hours, race.start_time_of_day)
        if self.selected_hour_index is not None and self.selected_hour_index >= len(self.timeline):
            self.selected_hour_index = None

    def set_athlete_context(self, athlete: AthleteContext) -> None:
        self.athlete = athlete
        self._recalculate()
        self._revalidate()

    def set_weather_context(self, weather: WeatherContext) -> None:
        self.weather = weather
        self._recalculate()
        self._revalidate()

    def _recalculate(self) -> None:
        self._plan = calculate_race_nutrition_plan(self.race, self.athlete, self.weather)

    # ============================================================================
    # Intents
    # ============================================================================

    def dispatch(self, intent) -> Any:
        """
        Apply one intent.

        Returns:
            The new entry for AddProduct, the new favorite flag for
            ToggleFavorite, otherwise None

        Raises:
            TypeError: If the intent type is not recognized
        """
        t = self.timeline

        if isinstance(intent, AddProduct):
            return t.add_product_to_hour(intent.hour_index, intent.product, intent.source)
        elif isinstance(intent, RemoveProduct):
            t.remove_product_from_hour(intent.hour_index, intent.entry_index)
        elif isinstance(intent, UpdateQuantity):
            t.update_product_quantity(intent.hour_index, intent.entry_index, intent.quantity)
        elif isinstance(intent, UpdateFluid):
            t.update_product_fluid(intent.hour_index, intent.entry_index, intent.fluid_ml)
        elif isinstance(intent, UpdateSource):
            t.update_product_source(
                intent.hour_index,
                intent.entry_index,
                intent.source,
                intent.location_id,
                intent.location_name,
            )
        elif isinstance(intent, MoveProduct):
            t.move_product(intent.from_hour_index, intent.entry_index, intent.to_hour_index)
        elif isinstance(intent, SetWater):
            t.set_hour_water(intent.hour_index, intent.water_ml, intent.source)
        elif isinstance(intent, ClearHour):
            t.clear_hour(intent.hour_index)
        elif isinstance(intent, SelectHour):
            self.select_hour(intent.hour_index)
        elif isinstance(intent, SetFilters):
            self.browser.set_filters(**intent.changes())
        elif isinstance(intent, ToggleFavorite):
            return self._toggle_favorite(intent.product_id)
        else:
            raise TypeError(f"Unsupported intent: {type(intent).__name__}")
        return None

    def select_hour(self, hour_index: Optional[int]) -> None:
        """Select an hour for tap-to-place. Selecting the selected hour deselects it."""
        if hour_index is None or hour_index == self.selected_hour_index:
            self.selected_hour_index = None
        elif 0 <= hour_index < len(self.timeline):
            self.selected_hour_index = hour_index

    def place_product(self, product: NutritionProduct) -> Optional[TimelineProduct]:
        """Add a product to the selected hour, if any."""
        if self.selected_hour_index is None:
            return None
        return self.dispatch(AddProduct(hour_index=self.selected_hour_index, product=product))

    def _toggle_favorite(self, product_id: str) -> bool:
        is_favorite = self.browser.toggle_favorite(product_id)
        if self.favorites_store is not None and self.user_id:
            self.favorites_store.set_favorites(self.user_id, self.browser.favorites)
        return is_favorite

    def _on_timeline_change(self, timeline: NutritionTimeline) -> None:
        self._revalidate()
        if self.synchronizer is not None:
            self.synchronizer.schedule_save()

    def _revalidate(self) -> None:
        validator = PlanValidator(self.hourly_targets, self.weather, self.race.duration_hours)
        self._validation = validator.validate(self.timeline)

    # ============================================================================
    # Read Surfaces
    # ============================================================================

    @property
    def plan(self) -> RaceNutritionPlan:
        return self._plan

    @property
    def hourly_targets(self) -> HourlyTargets:
        return self._plan.hourly_targets

    @property
    def total_targets(self) -> TotalTargets:
        return self._plan.total_targets

    @property
    def hours(self) -> List[TimelineHour]:
        return self.timeline.hours

    def hour_totals(self, hour_index: int) -> HourTotals:
        return self.timeline.hour_totals(hour_index)

    @property
    def validation(self) -> PlanValidationResult:
        return self._validation

    @property
    def warnings(self) -> List[str]:
        """Condition warnings followed by warnings raised by the planned hours."""
        return list(self._plan.warnings) + list(self._validation.warnings)

    @property
    def recommendations(self) -> List[str]:
        return list(self._plan.recommendations) + list(self._validation.recommendations)

    @property
    def filtered_products(self) -> List[NutritionProduct]:
        return self.browser.filtered_products

    @property
    def running_totals(self) -> RunningTotals:
        return calculate_running_totals(self.timeline, self.total_targets)
