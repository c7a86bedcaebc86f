"""
Shared FastAPI dependencies.

Routes ask for repositories through these functions so tests can swap the
database with app.dependency_overrides[get_db_factory].
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from fuelplanner.config import Settings, get_settings
from fuelplanner.database import (
    FavoritesRepository,
    ProductCatalogRepository,
    SqlPlanStorage,
    init_database,
)


@lru_cache
def _factory_for(database_url: str) -> sessionmaker:
    return init_database(database_url)


def get_db_factory(settings: Settings = Depends(get_settings)) -> sessionmaker:
    """Session factory for the configured database, created once per URL."""
    return _factory_for(settings.database_url)


def get_catalog(factory: sessionmaker = Depends(get_db_factory)) -> ProductCatalogRepository:
    return ProductCatalogRepository(factory)


def get_favorites(factory: sessionmaker = Depends(get_db_factory)) -> FavoritesRepository:
    return FavoritesRepository(factory)


def get_plan_storage(factory: sessionmaker = Depends(get_db_factory)) -> SqlPlanStorage:
    return SqlPlanStorage(factory)
