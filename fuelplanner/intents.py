"""
Mutation intents and the drag/drop contract.

Every way of editing a plan (drag and drop, tap-to-place, API calls) is
expressed as one of the intent models below and funneled through
PlannerSession.dispatch. Intents are plain pydantic models discriminated on
`kind`, so they can be parsed straight from JSON:

    intent = parse_intent({"kind": "set_water", "hour_index": 2, "water_ml": 250})
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from fuelplanner.schemas import NutritionProduct, ProductCategory, ProductSource


# ============================================================================
# Timeline Intents
# ============================================================================

class AddProduct(BaseModel):
    kind: Literal["add_product"] = "add_product"
    hour_index: int
    product: NutritionProduct
    source: ProductSource = ProductSource.PERSONAL_STOCK


class RemoveProduct(BaseModel):
    kind: Literal["remove_product"] = "remove_product"
    hour_index: int
    entry_index: int


class UpdateQuantity(BaseModel):
    kind: Literal["update_quantity"] = "update_quantity"
    hour_index: int
    entry_index: int
    quantity: int


class UpdateFluid(BaseModel):
    kind: Literal["update_fluid"] = "update_fluid"
    hour_index: int
    entry_index: int
    fluid_ml: float


class UpdateSource(BaseModel):
    kind: Literal["update_source"] = "update_source"
    hour_index: int
    entry_index: int
    source: ProductSource
    location_id: Optional[str] = None
    location_name: Optional[str] = None


class MoveProduct(BaseModel):
    kind: Literal["move_product"] = "move_product"
    from_hour_index: int
    entry_index: int
    to_hour_index: int


class SetWater(BaseModel):
    kind: Literal["set_water"] = "set_water"
    hour_index: int
    water_ml: float
    source: Optional[ProductSource] = None


class ClearHour(BaseModel):
    kind: Literal["clear_hour"] = "clear_hour"
    hour_index: int


# ============================================================================
# Browsing Intents
# ============================================================================

class SelectHour(BaseModel):
    """Select an hour for tap-to-place; None (or the selected hour) deselects."""
    kind: Literal["select_hour"] = "select_hour"
    hour_index: Optional[int] = None


class SetFilters(BaseModel):
    """Partial filter update; fields left as None are unchanged."""
    kind: Literal["set_filters"] = "set_filters"
    search: Optional[str] = None
    categories: Optional[List[ProductCategory]] = None
    caffeine_only: Optional[bool] = None
    caffeine_free: Optional[bool] = None
    favorites_only: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"kind"}, exclude_none=True)


class ToggleFavorite(BaseModel):
    kind: Literal["toggle_favorite"] = "toggle_favorite"
    product_id: str


Intent = Annotated[
    Union[
        AddProduct,
        RemoveProduct,
        UpdateQuantity,
        UpdateFluid,
        UpdateSource,
        MoveProduct,
        SetWater,
        ClearHour,
        SelectHour,
        SetFilters,
        ToggleFavorite,
    ],
    Field(discriminator="kind"),
]

_intent_adapter = TypeAdapter(Intent)


def parse_intent(data: Dict[str, Any]) -> BaseModel:
    """
    Parse a raw intent payload.

    Raises:
        pydantic.ValidationError: If kind is unknown or fields are invalid
    """
    return _intent_adapter.validate_python(data)


# ============================================================================
# Drag and Drop
# ============================================================================

class DraggableProduct(BaseModel):
    """Payload carried by a product being dragged from the palette."""
    type: Literal["product"] = "product"
    product: NutritionProduct


class DroppableHour(BaseModel):
    """Payload of an hour row that accepts drops."""
    type: Literal["hour"] = "hour"
    hour_index: int


def resolve_drop(
    active: Optional[Dict[str, Any]],
    over: Optional[Dict[str, Any]],
) -> Optional[AddProduct]:
    """
    Turn a completed drag into an AddProduct intent.

    Args:
        active: Data of the dragged item
        over: Data of the drop target, None when dropped outside any target

    Returns:
        AddProduct when a product is dropped on an hour, otherwise None
    """
    if not active or not over:
        return None
    if active.get("type") != "product" or over.get("type") != "hour":
        return None

    dragged = DraggableProduct.model_validate(active)
    target = DroppableHour.model_validate(over)
    return AddProduct(hour_index=target.hour_index, product=dragged.product)
