"""
Plan persistence: hydration and debounced auto-save.

The synchronizer keeps one timeline in step with plan storage:

1. hydrate() loads the saved plan (if any) into the timeline, replacing
   anything edited before hydration. It takes a baseline snapshot hash and
   only then arms change detection, so a save can never overwrite the
   stored plan with a half-loaded timeline. Without a stored plan, edits
   made before hydration are scheduled for saving.
2. schedule_save() is called after every timeline mutation. It replaces a
   single pending timer; the save fires once the edits go quiet.
3. save_now() skips unchanged snapshots, then get-or-creates the plan and
   replaces all item and water rows.

Storage failures are logged and leave local state untouched; the next edit
is the retry.
"""

import asyncio
from typing import List, Optional, Protocol, Set, Tuple

from loguru import logger

from fuelplanner.schemas import (
    ProductSource,
    SavedPlan,
    SavedPlanItem,
    SavedPlanWater,
)
from fuelplanner.timeline import NutritionTimeline

DEFAULT_DEBOUNCE_SECONDS = 1.0


class PlanStorage(Protocol):
    """Storage operations the synchronizer relies on."""

    def get_or_create_plan(self, race_plan_id: str, user_id: Optional[str] = None) -> str: ...

    def replace_items(self, plan_id: str, items: List[SavedPlanItem]) -> None: ...

    def replace_water(self, plan_id: str, water: List[SavedPlanWater]) -> None: ...

    def load_plan(self, race_plan_id: str) -> Optional[SavedPlan]: ...


def timeline_to_rows(timeline: NutritionTimeline) -> Tuple[List[SavedPlanItem], List[SavedPlanWater]]:
    """Flatten a timeline into storage rows. Hours without water get no water row."""
    items: List[SavedPlanItem] = []
    water: List[SavedPlanWater] = []

    for hour in timeline.hours:
        for entry in hour.products:
            items.append(
                SavedPlanItem(
                    product_id=entry.product_id,
                    hour_number=hour.hour_number,
                    quantity=entry.quantity,
                    fluid_ml=entry.fluid_ml,
                    source=entry.source,
                    source_location_id=entry.source_location_id,
                    source_name=entry.source_name,
                    notes=entry.notes,
                    sort_order=entry.sort_order,
                )
            )
        if hour.water_ml > 0:
            water.append(
                SavedPlanWater(
                    hour_number=hour.hour_number,
                    water_ml=hour.water_ml,
                    source=hour.water_source or ProductSource.PERSONAL_STOCK,
                )
            )

    return items, water


def apply_saved_plan(timeline: NutritionTimeline, saved: SavedPlan) -> int:
    """
    Replay saved rows into the timeline.

    Each item becomes exactly one entry with its saved quantity. Rows that
    reference unknown products or hours outside the timeline are skipped.

    Returns:
        Number of item rows restored
    """
    restored = 0

    for item in sorted(saved.items, key=lambda row: (row.hour_number, row.sort_order)):
        product = timeline.get_product(item.product_id)
        if product is None:
            logger.warning(
                f"Skipping saved item for unknown product {item.product_id} "
                f"(plan {saved.id}, hour {item.hour_number})"
            )
            continue

        entry = timeline.restore_entry(
            item.hour_number - 1,
            product,
            quantity=item.quantity,
            source=item.source,
            fluid_ml=item.fluid_ml,
            source_location_id=item.source_location_id,
            source_name=item.source_name,
            notes=item.notes,
        )
        if entry is None:
            logger.warning(
                f"Skipping saved item in hour {item.hour_number}: outside the "
                f"{len(timeline)}-hour timeline (plan {saved.id})"
            )
            continue
        restored += 1

    for row in saved.water:
        hour_index = row.hour_number - 1
        if not 0 <= hour_index < len(timeline):
            logger.warning(f"Skipping saved water in hour {row.hour_number} (plan {saved.id})")
            continue
        timeline.set_hour_water(hour_index, row.water_ml, row.source)

    return restored


class PlanSynchronizer:
    """
    Hydrates a timeline from storage and auto-saves it after edits.

    All methods run on one event loop; there is a single writer, so no
    locking is needed.
    """

    def __init__(
        self,
        timeline: NutritionTimeline,
        storage: PlanStorage,
        race_plan_id: Optional[str],
        user_id: Optional[str] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        """
        Initialize the synchronizer.

        Args:
            timeline: Timeline to hydrate and save
            storage: Plan storage backend
            race_plan_id: Race plan the nutrition plan belongs to
            user_id: Authenticated user, or None for guest sessions (never saved)
            debounce_seconds: Quiet period after the last edit before saving
        """
        self.timeline = timeline
        self.storage = storage
        self.race_plan_id = race_plan_id
        self.user_id = user_id
        self.debounce_seconds = debounce_seconds

        self.plan_id: Optional[str] = None
        self.is_loaded = False
        self.is_dirty = False
        self.is_saving = False
        self.save_count = 0

        self._last_saved_hash: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def has_pending_save(self) -> bool:
        return self._timer is not None

    # ----- Hydration -----

    async def hydrate(self) -> Optional[SavedPlan]:
        """
        Load the saved plan into the timeline, then arm change detection.

        Returns:
            The saved plan, or None if there was nothing to load
        """
        if self.is_loaded:
            return None

        if not self.is_authenticated or not self.race_plan_id:
            self._arm()
            return None

        try:
            saved = self.storage.load_plan(self.race_plan_id)
        except Exception as e:
            logger.error(f"Error loading nutrition plan for race plan {self.race_plan_id}: {e}")
            self.plan_id = None
            self._arm()
            self._keep_local_edits()
            return None

        if saved is None:
            self._arm()
            self._keep_local_edits()
            return None

        # The stored plan replaces anything edited before hydration
        self.plan_id = saved.id
        self.timeline.clear_all()
        restored = apply_saved_plan(self.timeline, saved)
        logger.info(
            f"Loaded nutrition plan {saved.id}: {restored} items, {len(saved.water)} water rows"
        )

        self._arm()
        return saved

    def _arm(self) -> None:
        # Baseline first: the hydrated state must not count as a change
        self._last_saved_hash = self.timeline.snapshot_hash()
        self.is_loaded = True

    def _keep_local_edits(self) -> None:
        # Nothing stored yet: edits made before hydration still need a save
        if self.timeline.is_empty:
            return
        self._last_saved_hash = None
        self.schedule_save()

    # ----- Saving -----

    def schedule_save(self) -> None:
        """Restart the debounce timer. Ignored until hydration has finished."""
        if not self.is_loaded:
            return

        self.is_dirty = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; save deferred until flush()")
            return

        self._timer = loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.save_now())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def save_now(self) -> bool:
        """
        Persist the timeline if it changed since the last save.

        Returns:
            True if rows were written
        """
        if not self.is_authenticated or not self.race_plan_id:
            logger.debug("Skipping nutrition plan save for unauthenticated session")
            self.is_dirty = False
            return False

        snapshot_hash = self.timeline.snapshot_hash()
        if snapshot_hash == self._last_saved_hash:
            self.is_dirty = False
            return False

        items, water = timeline_to_rows(self.timeline)
        self.is_saving = True
        try:
            if self.plan_id is None:
                self.plan_id = self.storage.get_or_create_plan(self.race_plan_id, self.user_id)
            self.storage.replace_items(self.plan_id, items)
            self.storage.replace_water(self.plan_id, water)
        except Exception as e:
            logger.error(f"Error saving nutrition plan for race plan {self.race_plan_id}: {e}")
            return False
        finally:
            self.is_saving = False

        self._last_saved_hash = snapshot_hash
        self.is_dirty = False
        self.save_count += 1
        logger.info(
            f"Nutrition plan {self.plan_id} saved: {len(items)} items, {len(water)} water rows"
        )
        return True

    async def flush(self) -> bool:
        """Cancel the pending timer and save immediately."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return await self.save_now()

    # ----- Lifecycle -----

    def teardown(self) -> None:
        """
        Stop auto-saving.

        A save that has not fired yet is dropped; saves already running are
        not awaited and may finish after teardown.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.is_loaded = False
