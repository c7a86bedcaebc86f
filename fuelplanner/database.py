"""
SQLAlchemy Database Models for the Fueling Planner

Provides persistent storage for:
- The nutrition product catalog
- Per-user favorite products
- Race nutrition plans with their product and water rows

Repositories wrap the tables behind the narrow interfaces the planner
consumes: a read-only catalog, a favorites store and plan storage.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    select,
)
from sqlalchemy.orm import declarative_base, relationship, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from fuelplanner.schemas import (
    NutritionProduct,
    ProductCategory,
    ProductSource,
    SavedPlan,
    SavedPlanItem,
    SavedPlanWater,
)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NutritionProductRecord(Base):
    """
    Catalog product.

    Attributes:
        id: Product id (string key shared with NutritionProduct.id)
        brand, name, category: Identity and palette grouping
        calories, carbs_grams, sodium_mg: Per-serving nutrition
        glucose_fructose_ratio: Label ratio used for absorption assessment
        water_content_ml: Fluid delivered per serving
        is_active: Inactive products are hidden from the catalog
    """

    __tablename__ = "nutrition_products"

    id = Column(String, primary_key=True)
    brand = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    serving_size = Column(String, nullable=True)

    calories = Column(Float, nullable=False, default=0.0)
    carbs_grams = Column(Float, nullable=False, default=0.0)
    sodium_mg = Column(Float, nullable=False, default=0.0)

    sugars_grams = Column(Float, nullable=True)
    glucose_grams = Column(Float, nullable=True)
    fructose_grams = Column(Float, nullable=True)
    maltodextrin_grams = Column(Float, nullable=True)
    glucose_fructose_ratio = Column(String, nullable=True)

    caffeine_mg = Column(Float, nullable=True)
    protein_grams = Column(Float, nullable=True)
    fat_grams = Column(Float, nullable=True)
    fiber_grams = Column(Float, nullable=True)
    water_content_ml = Column(Float, nullable=True)

    image_url = Column(String, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    notes = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    _COPIED_FIELDS = (
        "id", "brand", "name", "serving_size", "calories", "carbs_grams", "sodium_mg",
        "sugars_grams", "glucose_grams", "fructose_grams", "maltodextrin_grams",
        "glucose_fructose_ratio", "caffeine_mg", "protein_grams", "fat_grams",
        "fiber_grams", "water_content_ml", "image_url", "is_verified", "notes",
    )

    def to_product(self) -> NutritionProduct:
        data = {field: getattr(self, field) for field in self._COPIED_FIELDS}
        data["category"] = ProductCategory(self.category)
        return NutritionProduct(**data)

    def update_from(self, product: NutritionProduct) -> None:
        for field in self._COPIED_FIELDS:
            setattr(self, field, getattr(product, field))
        self.category = product.category.value

    def __repr__(self):
        return f"<NutritionProductRecord(id='{self.id}', brand='{self.brand}', name='{self.name}')>"


class FavoriteProduct(Base):
    """A product a user has starred in the palette."""

    __tablename__ = "user_favorite_products"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_user_favorite"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    product_id = Column(String, ForeignKey("nutrition_products.id"), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<FavoriteProduct(user_id='{self.user_id}', product_id='{self.product_id}')>"


class NutritionPlanRecord(Base):
    """
    Nutrition plan attached to a race plan.

    One plan per race plan; its item and water rows are replaced wholesale
    on every save.

    Attributes:
        id: Plan id (uuid hex)
        race_plan_id: Owning race plan (unique)
        user_id: Owner
        created_at / updated_at: Timestamps
    """

    __tablename__ = "race_nutrition_plans"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    race_plan_id = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    items = relationship(
        "NutritionPlanItem",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by=lambda: [NutritionPlanItem.hour_number, NutritionPlanItem.sort_order],
    )
    water = relationship(
        "NutritionPlanWater",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="NutritionPlanWater.hour_number",
    )

    def __repr__(self):
        return f"<NutritionPlanRecord(id='{self.id}', race_plan_id='{self.race_plan_id}')>"


class NutritionPlanItem(Base):
    """A product placed in one hour of a saved plan."""

    __tablename__ = "race_nutrition_plan_items"

    id = Column(Integer, primary_key=True)
    nutrition_plan_id = Column(String, ForeignKey("race_nutrition_plans.id"), nullable=False, index=True)
    product_id = Column(String, nullable=False)
    hour_number = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    fluid_ml = Column(Float, nullable=True)
    source = Column(String, nullable=False, default=ProductSource.PERSONAL_STOCK.value)
    source_location_id = Column(String, nullable=True)
    source_name = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    plan = relationship("NutritionPlanRecord", back_populates="items")

    def __repr__(self):
        return f"<NutritionPlanItem(hour={self.hour_number}, product='{self.product_id}', qty={self.quantity})>"


class NutritionPlanWater(Base):
    """Loose water planned for one hour of a saved plan."""

    __tablename__ = "race_nutrition_plan_water"

    id = Column(Integer, primary_key=True)
    nutrition_plan_id = Column(String, ForeignKey("race_nutrition_plans.id"), nullable=False, index=True)
    hour_number = Column(Integer, nullable=False)
    water_ml = Column(Float, nullable=False)
    source = Column(String, nullable=False, default=ProductSource.PERSONAL_STOCK.value)

    # Relationships
    plan = relationship("NutritionPlanRecord", back_populates="water")

    def __repr__(self):
        return f"<NutritionPlanWater(hour={self.hour_number}, water_ml={self.water_ml})>"


# ===== Repositories =====


class ProductCatalogRepository:
    """Read access to the product catalog, plus bulk upsert for seeding."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def list_active_products(self) -> List[NutritionProduct]:
        """Active products ordered by brand, then name."""
        with self._session_factory() as db:
            records = db.scalars(
                select(NutritionProductRecord)
                .where(NutritionProductRecord.is_active.is_(True))
                .order_by(NutritionProductRecord.brand, NutritionProductRecord.name)
            ).all()
            return [record.to_product() for record in records]

    def upsert_products(self, products: Iterable[NutritionProduct]) -> int:
        """Insert or update products by id. Returns the number written."""
        count = 0
        with self._session_factory() as db:
            for product in {p.id: p for p in products}.values():
                record = db.get(NutritionProductRecord, product.id)
                if record is None:
                    record = NutritionProductRecord(id=product.id, is_active=True)
                    db.add(record)
                record.update_from(product)
                count += 1
            db.commit()
        return count


class FavoritesRepository:
    """Favorite product ids per user."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_favorites(self, user_id: str) -> List[str]:
        with self._session_factory() as db:
            return list(
                db.scalars(
                    select(FavoriteProduct.product_id)
                    .where(FavoriteProduct.user_id == user_id)
                    .order_by(FavoriteProduct.id)
                ).all()
            )

    def set_favorites(self, user_id: str, product_ids: Iterable[str]) -> None:
        with self._session_factory() as db:
            db.execute(delete(FavoriteProduct).where(FavoriteProduct.user_id == user_id))
            for product_id in dict.fromkeys(product_ids):
                db.add(FavoriteProduct(user_id=user_id, product_id=product_id))
            db.commit()


class SqlPlanStorage:
    """
    Durable storage for nutrition plans.

    Item and water rows are always replaced as a whole, scoped to one plan.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_or_create_plan(self, race_plan_id: str, user_id: Optional[str] = None) -> str:
        """Return the plan id for a race plan, creating the plan if needed."""
        with self._session_factory() as db:
            plan = db.scalars(
                select(NutritionPlanRecord).where(NutritionPlanRecord.race_plan_id == race_plan_id)
            ).first()
            if plan is None:
                plan = NutritionPlanRecord(race_plan_id=race_plan_id, user_id=user_id)
                db.add(plan)
                db.commit()
            return plan.id

    def replace_items(self, plan_id: str, items: Iterable[SavedPlanItem]) -> None:
        with self._session_factory() as db:
            db.execute(delete(NutritionPlanItem).where(NutritionPlanItem.nutrition_plan_id == plan_id))
            db.add_all(
                NutritionPlanItem(
                    nutrition_plan_id=plan_id,
                    product_id=item.product_id,
                    hour_number=item.hour_number,
                    quantity=item.quantity,
                    fluid_ml=item.fluid_ml,
                    source=item.source.value,
                    source_location_id=item.source_location_id,
                    source_name=item.source_name,
                    notes=item.notes,
                    sort_order=item.sort_order,
                )
                for item in items
            )
            db.commit()

    def replace_water(self, plan_id: str, water: Iterable[SavedPlanWater]) -> None:
        with self._session_factory() as db:
            db.execute(delete(NutritionPlanWater).where(NutritionPlanWater.nutrition_plan_id == plan_id))
            db.add_all(
                NutritionPlanWater(
                    nutrition_plan_id=plan_id,
                    hour_number=row.hour_number,
                    water_ml=row.water_ml,
                    source=row.source.value,
                )
                for row in water
            )
            db.commit()

    def load_plan(self, race_plan_id: str) -> Optional[SavedPlan]:
        """Read a plan with its item and water rows, or None if never saved."""
        with self._session_factory() as db:
            plan = db.scalars(
                select(NutritionPlanRecord)
                .where(NutritionPlanRecord.race_plan_id == race_plan_id)
                .options(selectinload(NutritionPlanRecord.items), selectinload(NutritionPlanRecord.water))
            ).first()
            if plan is None:
                return None

            return SavedPlan(
                id=plan.id,
                race_plan_id=plan.race_plan_id,
                items=[
                    SavedPlanItem(
                        product_id=item.product_id,
                        hour_number=item.hour_number,
                        quantity=item.quantity,
                        fluid_ml=item.fluid_ml,
                        source=ProductSource(item.source),
                        source_location_id=item.source_location_id,
                        source_name=item.source_name,
                        notes=item.notes,
                        sort_order=item.sort_order,
                    )
                    for item in plan.items
                ],
                water=[
                    SavedPlanWater(
                        hour_number=row.hour_number,
                        water_ml=row.water_ml,
                        source=ProductSource(row.source),
                    )
                    for row in plan.water
                ],
            )


# Database connection and session management

def get_engine(database_url: str = "sqlite:///fuel_planner.db"):
    """
    Create SQLAlchemy engine.

    In-memory SQLite shares a single connection so every session sees the
    same database.

    Args:
        database_url: Database connection string (default: SQLite file)

    Returns:
        SQLAlchemy Engine instance
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=False)


def get_session_factory(engine) -> sessionmaker:
    """
    Create session factory.

    Args:
        engine: SQLAlchemy Engine instance

    Returns:
        Session factory (sessionmaker)
    """
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_database(database_url: str = "sqlite:///fuel_planner.db") -> sessionmaker:
    """
    Initialize database and create all tables.

    Args:
        database_url: Database connection string

    Returns:
        Session factory bound to the initialized database
    """
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    return get_session_factory(engine)
