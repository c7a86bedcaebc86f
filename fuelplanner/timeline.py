"""
Hour-by-hour fueling timeline.

The timeline owns an ordered list of TimelineHour rows, one per race hour,
each holding product entries and loose water. All edits go through the
methods on NutritionTimeline, which:

1. Silently ignore out-of-range hour/entry indexes
2. Clamp quantities and volumes rather than rejecting them
3. Bump a version counter and recompute derived totals synchronously

Derived totals are never stored on the hours, so they cannot drift from the
entries that produce them.
"""

import hashlib
import json
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from fuelplanner.schemas import (
    HourTotals,
    NutritionProduct,
    ProductCategory,
    ProductSource,
    TimelineHour,
    TimelineProduct,
)

DEFAULT_DRINK_MIX_FLUID_ML = 500.0
MIN_DRINK_MIX_FLUID_ML = 100.0


# ============================================================================
# Helpers
# ============================================================================

def hour_time_labels(start_time: str, hour_offset: int) -> Tuple[str, str]:
    """
    Clock labels for an hour of the race.

    Args:
        start_time: Race start as 24h "HH:MM"
        hour_offset: 0-based hour index

    Returns:
        (start, end) labels such as ("6:00 AM", "7:00 AM")

    Raises:
        ValueError: If start_time is not a valid clock string
    """
    start = datetime.strptime(start_time, "%H:%M") + timedelta(hours=hour_offset)
    end = start + timedelta(hours=1)
    return _format_clock(start), _format_clock(end)


def _format_clock(moment: datetime) -> str:
    hour12 = moment.hour % 12 or 12
    suffix = "PM" if moment.hour >= 12 else "AM"
    return f"{hour12}:{moment.minute:02d} {suffix}"


def elapsed_label(hour_offset: int) -> str:
    """Elapsed race time at the start of an hour, e.g. '2:00'."""
    return f"{hour_offset}:00"


def entry_fluid_ml(entry: TimelineProduct, product: NutritionProduct) -> float:
    """Fluid delivered by one entry."""
    if product.category == ProductCategory.DRINK_MIX and entry.fluid_ml is not None:
        return entry.fluid_ml
    return (product.water_content_ml or 0.0) * entry.quantity


def calculate_hour_totals(
    entries: Iterable[TimelineProduct],
    water_ml: float,
    products: Dict[str, NutritionProduct],
) -> HourTotals:
    """
    Fold entries and loose water into nutrient totals.

    Entries whose product is not known contribute nothing.
    """
    carbs = calories = sodium = caffeine = 0.0
    fluid = water_ml

    for entry in entries:
        product = products.get(entry.product_id)
        if product is None:
            continue
        qty = entry.quantity
        carbs += product.carbs_grams * qty
        calories += product.calories * qty
        sodium += product.sodium_mg * qty
        caffeine += (product.caffeine_mg or 0.0) * qty
        fluid += entry_fluid_ml(entry, product)

    return HourTotals(
        carbs=carbs,
        fluid=fluid,
        sodium=sodium,
        caffeine=caffeine,
        calories=calories,
    )


# ============================================================================
# Timeline
# ============================================================================

class NutritionTimeline:
    """
    Editable hour-by-hour fueling plan.

    Hours are addressed by 0-based index (hour_number - 1) and entries by
    their position within the hour.
    """

    def __init__(
        self,
        products: Optional[Dict[str, NutritionProduct]] = None,
        drink_mix_fluid_ml: float = DEFAULT_DRINK_MIX_FLUID_ML,
    ):
        """
        Initialize an empty timeline.

        Args:
            products: Known products by id, used to derive totals
            drink_mix_fluid_ml: Default fluid volume for newly added drink mixes
        """
        self._hours: List[TimelineHour] = []
        self._products: Dict[str, NutritionProduct] = dict(products or {})
        self._drink_mix_fluid_ml = drink_mix_fluid_ml
        self._version = 0
        self._totals: List[HourTotals] = []
        self._totals_version = -1
        self._listeners: List[Callable[["NutritionTimeline"], None]] = []

    # ----- Reads -----

    @property
    def hours(self) -> List[TimelineHour]:
        return list(self._hours)

    @property
    def version(self) -> int:
        return self._version

    @property
    def products(self) -> Dict[str, NutritionProduct]:
        return dict(self._products)

    def __len__(self) -> int:
        return len(self._hours)

    @property
    def is_empty(self) -> bool:
        """True when no hour has products or water."""
        return all(not hour.products and hour.water_ml <= 0 for hour in self._hours)

    def get_product(self, product_id: str) -> Optional[NutritionProduct]:
        return self._products.get(product_id)

    def hour_totals(self, hour_index: int) -> HourTotals:
        """Totals for one hour; never stale relative to the entries."""
        self._ensure_totals()
        return self._totals[hour_index]

    def all_totals(self) -> List[HourTotals]:
        self._ensure_totals()
        return list(self._totals)

    def snapshot(self) -> List[dict]:
        """Serializable view of everything that is persisted."""
        return [
            {
                "hour_number": hour.hour_number,
                "products": [
                    {
                        "product_id": p.product_id,
                        "quantity": p.quantity,
                        "fluid_ml": p.fluid_ml,
                        "source": p.source.value,
                        "source_location_id": p.source_location_id,
                        "source_name": p.source_name,
                        "notes": p.notes,
                    }
                    for p in hour.products
                ],
                "water_ml": hour.water_ml,
                "water_source": hour.water_source.value if hour.water_source else None,
            }
            for hour in self._hours
        ]

    def snapshot_hash(self) -> str:
        payload = json.dumps(self.snapshot(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    # ----- Setup -----

    def register_products(self, products: Iterable[NutritionProduct]) -> None:
        """Make catalog products available for totals; does not mark a change."""
        for product in products:
            self._products[product.id] = product
        self._recompute()

    def subscribe(self, listener: Callable[["NutritionTimeline"], None]) -> None:
        """Call listener after every mutation."""
        self._listeners.append(listener)

    def initialize(self, duration_hours: int, start_time: str) -> None:
        """
        Build hours 1..duration_hours.

        Re-initializing keeps existing entries and water by hour number;
        hours beyond the new duration are dropped.
        """
        existing = {hour.hour_number: hour for hour in self._hours}
        new_hours = []

        for offset in range(max(0, duration_hours)):
            hour_number = offset + 1
            start, end = hour_time_labels(start_time, offset)
            previous = existing.get(hour_number)
            new_hours.append(
                TimelineHour(
                    hour_number=hour_number,
                    start_time=start,
                    end_time=end,
                    products=previous.products if previous else [],
                    water_ml=previous.water_ml if previous else 0.0,
                    water_source=previous.water_source if previous else None,
                )
            )

        self._hours = new_hours
        self._commit()

    def reset(self) -> None:
        """Drop all hours and listeners."""
        self._hours = []
        self._listeners = []
        self._commit()

    # ----- Product Entries -----

    def add_product_to_hour(
        self,
        hour_index: int,
        product: NutritionProduct,
        source: ProductSource = ProductSource.PERSONAL_STOCK,
    ) -> Optional[TimelineProduct]:
        """
        Append one serving of product to an hour.

        Returns:
            The new entry, or None if hour_index is out of range
        """
        hour = self._get_hour(hour_index)
        if hour is None:
            return None

        self._products.setdefault(product.id, product)
        entry = TimelineProduct(
            id=uuid.uuid4().hex,
            product_id=product.id,
            quantity=1,
            fluid_ml=(
                self._drink_mix_fluid_ml
                if product.category == ProductCategory.DRINK_MIX
                else None
            ),
            source=source,
            sort_order=len(hour.products),
        )
        hour.products.append(entry)
        self._commit()
        return entry

    def restore_entry(
        self,
        hour_index: int,
        product: NutritionProduct,
        quantity: int,
        source: ProductSource = ProductSource.PERSONAL_STOCK,
        fluid_ml: Optional[float] = None,
        source_location_id: Optional[str] = None,
        source_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[TimelineProduct]:
        """
        Insert a saved entry verbatim as a single entry.

        A saved quantity of 3 becomes one entry with quantity 3.
        """
        hour = self._get_hour(hour_index)
        if hour is None:
            return None

        self._products.setdefault(product.id, product)
        if product.category != ProductCategory.DRINK_MIX:
            fluid_ml = None
        elif fluid_ml is None:
            fluid_ml = self._drink_mix_fluid_ml

        entry = TimelineProduct(
            id=uuid.uuid4().hex,
            product_id=product.id,
            quantity=max(1, int(quantity)),
            fluid_ml=fluid_ml,
            source=source,
            source_location_id=source_location_id,
            source_name=source_name,
            notes=notes,
            sort_order=len(hour.products),
        )
        hour.products.append(entry)
        self._commit()
        return entry

    def remove_product_from_hour(self, hour_index: int, entry_index: int) -> None:
        hour = self._get_hour(hour_index)
        if hour is None or not 0 <= entry_index < len(hour.products):
            return

        del hour.products[entry_index]
        self._renumber(hour)
        self._commit()

    def update_product_quantity(self, hour_index: int, entry_index: int, quantity: int) -> None:
        """Set an entry's quantity; values below 1 become 1."""
        entry = self._get_entry(hour_index, entry_index)
        if entry is None:
            return

        entry.quantity = max(1, int(quantity))
        self._commit()

    def update_product_fluid(self, hour_index: int, entry_index: int, fluid_ml: float) -> None:
        """Set the fluid volume for a drink-mix entry; ignored for other products."""
        entry = self._get_entry(hour_index, entry_index)
        if entry is None:
            return

        product = self._products.get(entry.product_id)
        if product is None or product.category != ProductCategory.DRINK_MIX:
            return

        entry.fluid_ml = max(MIN_DRINK_MIX_FLUID_ML, float(fluid_ml))
        self._commit()

    def update_product_source(
        self,
        hour_index: int,
        entry_index: int,
        source: ProductSource,
        location_id: Optional[str] = None,
        location_name: Optional[str] = None,
    ) -> None:
        entry = self._get_entry(hour_index, entry_index)
        if entry is None:
            return

        entry.source = source
        entry.source_location_id = location_id
        entry.source_name = location_name
        self._commit()

    def move_product(self, from_hour: int, from_index: int, to_hour: int) -> None:
        """Move an entry to the end of another hour."""
        source_hour = self._get_hour(from_hour)
        dest_hour = self._get_hour(to_hour)
        if source_hour is None or dest_hour is None:
            return
        if not 0 <= from_index < len(source_hour.products):
            return

        entry = source_hour.products.pop(from_index)
        self._renumber(source_hour)
        entry.sort_order = len(dest_hour.products)
        dest_hour.products.append(entry)
        self._commit()

    # ----- Water -----

    def set_hour_water(
        self,
        hour_index: int,
        water_ml: float,
        source: Optional[ProductSource] = None,
    ) -> None:
        """Set loose water for an hour; negative volumes become 0."""
        hour = self._get_hour(hour_index)
        if hour is None:
            return

        hour.water_ml = max(0.0, float(water_ml))
        if source is not None:
            hour.water_source = source
        self._commit()

    def clear_all(self) -> None:
        """Empty every hour, keeping the hour layout."""
        for hour in self._hours:
            hour.products = []
            hour.water_ml = 0.0
            hour.water_source = None
        self._commit()

    def clear_hour(self, hour_index: int) -> None:
        hour = self._get_hour(hour_index)
        if hour is None:
            return

        hour.products = []
        hour.water_ml = 0.0
        hour.water_source = None
        self._commit()

    # ----- Internals -----

    def _get_hour(self, hour_index: int) -> Optional[TimelineHour]:
        if not 0 <= hour_index < len(self._hours):
            return None
        return self._hours[hour_index]

    def _get_entry(self, hour_index: int, entry_index: int) -> Optional[TimelineProduct]:
        hour = self._get_hour(hour_index)
        if hour is None or not 0 <= entry_index < len(hour.products):
            return None
        return hour.products[entry_index]

    @staticmethod
    def _renumber(hour: TimelineHour) -> None:
        for position, entry in enumerate(hour.products):
            entry.sort_order = position

    def _ensure_totals(self) -> None:
        if self._totals_version != self._version:
            self._recompute()

    def _recompute(self) -> None:
        self._totals = [
            calculate_hour_totals(hour.products, hour.water_ml, self._products)
            for hour in self._hours
        ]
        self._totals_version = self._version

    def _commit(self) -> None:
        self._version += 1
        self._recompute()
        for listener in list(self._listeners):
            listener(self)
