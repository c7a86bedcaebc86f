"""
Printable plan views: per-hour sticker data and a packing list.

The sticker shape is a stable contract consumed by the PDF renderer.
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from fuelplanner.schemas import (
    HourTotals,
    NutritionProduct,
    ProductSource,
)
from fuelplanner.timeline import NutritionTimeline, elapsed_label

UNKNOWN_PRODUCT_NAME = "Unknown"


class StickerProduct(BaseModel):
    name: str
    brand: str
    quantity: int
    carbs: float
    caffeine: float


class StickerHour(BaseModel):
    """One row of a top-tube sticker."""

    hour_number: int
    start_time: str
    end_time: str
    elapsed_time: str = Field(..., description="Elapsed race time at the start of the hour, e.g. '2:00'")
    products: List[StickerProduct] = Field(default_factory=list)
    water_ml: float = 0.0
    totals: HourTotals


class PackingItem(BaseModel):
    product: NutritionProduct
    quantity: int
    total_carbs: float
    total_calories: float


class PackingTotals(BaseModel):
    carbs: float = 0.0
    calories: float = 0.0
    sodium: float = 0.0
    items: int = 0


class PackingListGroup(BaseModel):
    """Everything picked up from one source (and location)."""

    source: ProductSource
    location_name: Optional[str] = None
    items: List[PackingItem] = Field(default_factory=list)
    totals: PackingTotals = Field(default_factory=PackingTotals)


def build_sticker_hours(
    timeline: NutritionTimeline,
    lookup: Optional[Dict[str, NutritionProduct]] = None,
) -> List[StickerHour]:
    """
    Build sticker rows for every hour of the timeline.

    Args:
        timeline: Timeline to export
        lookup: Product lookup; defaults to the products known to the timeline

    Returns:
        One StickerHour per timeline hour, including empty hours
    """
    products = lookup if lookup is not None else timeline.products
    stickers = []

    for offset, hour in enumerate(timeline.hours):
        lines = []
        for entry in hour.products:
            product = products.get(entry.product_id)
            lines.append(
                StickerProduct(
                    name=product.name if product else UNKNOWN_PRODUCT_NAME,
                    brand=product.brand if product else "",
                    quantity=entry.quantity,
                    carbs=(product.carbs_grams * entry.quantity) if product else 0.0,
                    caffeine=((product.caffeine_mg or 0.0) * entry.quantity) if product else 0.0,
                )
            )

        stickers.append(
            StickerHour(
                hour_number=hour.hour_number,
                start_time=hour.start_time,
                end_time=hour.end_time,
                elapsed_time=elapsed_label(offset),
                products=lines,
                water_ml=hour.water_ml,
                totals=timeline.hour_totals(offset),
            )
        )

    return stickers


def build_packing_list(
    timeline: NutritionTimeline,
    lookup: Optional[Dict[str, NutritionProduct]] = None,
) -> List[PackingListGroup]:
    """
    Group planned products by where they are picked up.

    Entries for the same product at the same source and location are merged.
    Groups come out in ProductSource order, then by location name.
    """
    products = lookup if lookup is not None else timeline.products
    groups: Dict[Tuple[ProductSource, Optional[str]], PackingListGroup] = {}

    for hour in timeline.hours:
        for entry in hour.products:
            product = products.get(entry.product_id)
            if product is None:
                continue

            key = (entry.source, entry.source_name)
            group = groups.get(key)
            if group is None:
                group = PackingListGroup(source=entry.source, location_name=entry.source_name)
                groups[key] = group

            item = next((i for i in group.items if i.product.id == product.id), None)
            if item is None:
                item = PackingItem(product=product, quantity=0, total_carbs=0.0, total_calories=0.0)
                group.items.append(item)

            item.quantity += entry.quantity
            item.total_carbs += product.carbs_grams * entry.quantity
            item.total_calories += product.calories * entry.quantity

            group.totals.carbs += product.carbs_grams * entry.quantity
            group.totals.calories += product.calories * entry.quantity
            group.totals.sodium += product.sodium_mg * entry.quantity
            group.totals.items += entry.quantity

    source_order = list(ProductSource)
    return sorted(
        groups.values(),
        key=lambda g: (source_order.index(g.source), g.location_name or ""),
    )
