"""
Product palette state: cached catalog, favorites and filters.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from fuelplanner.schemas import NutritionProduct, ProductCategory, ProductFilters


def _sort_key(product: NutritionProduct):
    return (product.brand.lower(), product.name.lower())


class ProductBrowser:
    """
    Read-only view over the product catalog with filter and favorites state.

    The catalog is loaded once per session; favorites are the only state
    that writes back to storage, and that is the caller's concern.
    """

    def __init__(
        self,
        products: Optional[Iterable[NutritionProduct]] = None,
        favorites: Optional[Iterable[str]] = None,
    ):
        self._products: List[NutritionProduct] = []
        self._favorites: Set[str] = set(favorites or [])
        self.filters = ProductFilters()
        if products is not None:
            self.load_products(products)

    # ----- Catalog -----

    def load_products(self, products: Iterable[NutritionProduct]) -> None:
        """Replace the cached catalog, ordered by brand then name."""
        self._products = sorted(products, key=_sort_key)

    @property
    def products(self) -> List[NutritionProduct]:
        return list(self._products)

    @property
    def product_lookup(self) -> Dict[str, NutritionProduct]:
        return {product.id: product for product in self._products}

    def get_product(self, product_id: str) -> Optional[NutritionProduct]:
        return self.product_lookup.get(product_id)

    # ----- Favorites -----

    @property
    def favorites(self) -> List[str]:
        return sorted(self._favorites)

    def load_favorites(self, product_ids: Iterable[str]) -> None:
        self._favorites = set(product_ids)

    def is_favorite(self, product_id: str) -> bool:
        return product_id in self._favorites

    def toggle_favorite(self, product_id: str) -> bool:
        """
        Flip a product's favorite flag.

        Returns:
            True if the product is now a favorite
        """
        if product_id in self._favorites:
            self._favorites.discard(product_id)
            return False
        self._favorites.add(product_id)
        return True

    # ----- Filters -----

    def set_filters(self, **changes) -> ProductFilters:
        """
        Merge a partial filter update into the current filters.

        caffeine_only and caffeine_free are mutually exclusive: turning one
        on turns the other off. If both are requested at once, caffeine_only
        wins.

        Raises:
            ValueError: If a key is not a known filter
        """
        unknown = set(changes) - set(ProductFilters.model_fields)
        if unknown:
            raise ValueError(f"Unknown product filters: {', '.join(sorted(unknown))}")

        merged = self.filters.model_dump()
        merged.update(changes)

        if changes.get("caffeine_only"):
            merged["caffeine_free"] = False
        elif changes.get("caffeine_free"):
            merged["caffeine_only"] = False

        self.filters = ProductFilters(**merged)
        return self.filters

    def set_filter_category(self, category: ProductCategory, enabled: bool) -> ProductFilters:
        """Tick or untick one category in the multi-select category filter."""
        categories = [c for c in self.filters.categories if c != category]
        if enabled:
            categories.append(category)
        return self.set_filters(categories=categories)

    def clear_filters(self) -> None:
        self.filters = ProductFilters()

    def matches(self, product: NutritionProduct) -> bool:
        f = self.filters

        if f.search:
            needle = f.search.strip().lower()
            if needle not in product.name.lower() and needle not in product.brand.lower():
                return False

        if f.categories and product.category not in f.categories:
            return False

        if f.caffeine_only and not product.has_caffeine:
            return False
        if f.caffeine_free and product.has_caffeine:
            return False

        if f.favorites_only and product.id not in self._favorites:
            return False

        return True

    @property
    def filtered_products(self) -> List[NutritionProduct]:
        return [product for product in self._products if self.matches(product)]


def load_products_file(path: Union[str, Path]) -> List[NutritionProduct]:
    """
    Read catalog products from a JSON file.

    The file holds either a list of products or an object with a
    "products" list.

    Raises:
        ValueError: If the file is not valid JSON or a product is invalid
    """
    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("products")
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of products")

    return [NutritionProduct.model_validate(item) for item in data]
