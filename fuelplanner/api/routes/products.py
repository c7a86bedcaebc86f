"""
Products API Routes

Read-only catalog browsing with the same filters as the product palette.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from fuelplanner.api.deps import get_catalog, get_favorites
from fuelplanner.api.models.responses import ProductListResponse
from fuelplanner.catalog import ProductBrowser
from fuelplanner.database import FavoritesRepository, ProductCatalogRepository
from fuelplanner.schemas import ProductCategory

router = APIRouter()


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    search: str = "",
    category: Optional[List[ProductCategory]] = Query(None),
    caffeine_only: bool = False,
    caffeine_free: bool = False,
    favorites_only: bool = False,
    user_id: Optional[str] = None,
    catalog: ProductCatalogRepository = Depends(get_catalog),
    favorites: FavoritesRepository = Depends(get_favorites),
) -> ProductListResponse:
    """
    List active products ordered by brand and name.

    caffeine_only wins when both caffeine filters are set. favorites_only
    needs user_id; without it no product counts as a favorite.
    """
    browser = ProductBrowser(
        catalog.list_active_products(),
        favorites.get_favorites(user_id) if user_id else None,
    )
    browser.set_filters(
        search=search,
        categories=category or [],
        caffeine_only=caffeine_only,
        caffeine_free=caffeine_free,
        favorites_only=favorites_only,
    )

    products = browser.filtered_products
    return ProductListResponse(products=products, count=len(products))
