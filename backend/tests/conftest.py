"""Pytest configuration and fixtures."""

import pytest
from decimal import Decimal
from typing import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.db.base import Base
from backoffice.db.init_db import drop_db
from backoffice.db.session import enable_sqlite_foreign_keys
# Import all models to ensure they're registered with Base.metadata
from backoffice.models import *
from backoffice.models.document import DocumentType
from backoffice.models.menu import Menu, MenuItem
from backoffice.models.product import Product
from backoffice.models.supplier import Supplier
from backoffice.models.user import User
from backoffice.models.warehouse import Warehouse, WarehouseType
from backoffice.schemas.document import DocumentCreate, DocumentItemCreate
from backoffice.schemas.menu import MenuCreate, MenuItemCreate
from backoffice.schemas.recipe import RecipeCreate, RecipeIngredientCreate
from backoffice.services import document_service, menu_service, recipe_service, unit_service

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_user(db_session: Session) -> User:
    """Create a test user."""
    user = User(
        email="test@example.com",
        first_name="Test",
        last_name="User",
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def units(db_session: Session) -> dict:
    """Default units keyed by short name."""
    unit_service.create_default_units(db_session)
    return {unit.short_name: unit for unit in unit_service.get_units(db_session)}


@pytest.fixture
def test_supplier(db_session: Session) -> Supplier:
    """Create a test supplier."""
    supplier = Supplier(
        name="Test Supplier",
        phone="+1234567890",
        email="supplier@example.com",
    )
    db_session.add(supplier)
    db_session.commit()
    db_session.refresh(supplier)
    return supplier


@pytest.fixture
def main_warehouse(db_session: Session) -> Warehouse:
    warehouse = Warehouse(name="Main Store", type=WarehouseType.MAIN)
    db_session.add(warehouse)
    db_session.commit()
    db_session.refresh(warehouse)
    return warehouse


@pytest.fixture
def kitchen(db_session: Session) -> Warehouse:
    warehouse = Warehouse(name="Kitchen", type=WarehouseType.KITCHEN)
    db_session.add(warehouse)
    db_session.commit()
    db_session.refresh(warehouse)
    return warehouse


@pytest.fixture
def products(db_session: Session, units: dict) -> dict:
    """Raw ingredients keyed by a short alias."""
    flour = Product(name="Flour", article="FL-001", unit_id=units["kg"].id)
    milk = Product(name="Milk", article="MK-001", unit_id=units["l"].id)
    eggs = Product(name="Eggs", article="EG-001", unit_id=units["pcs"].id)
    db_session.add_all([flour, milk, eggs])
    db_session.commit()
    return {"flour": flour, "milk": milk, "eggs": eggs}


@pytest.fixture
def receive(db_session: Session, test_supplier: Supplier) -> Callable:
    """Post an approved receipt: ``receive(warehouse, [(product, qty, price), ...])``."""

    def _receive(warehouse: Warehouse, lines):
        document = document_service.create_document(
            db_session,
            DocumentCreate(
                type=DocumentType.RECEIPT,
                supplier_id=test_supplier.id,
                warehouse_to_id=warehouse.id,
                items=[
                    DocumentItemCreate(
                        product_id=product.id,
                        quantity=Decimal(str(quantity)),
                        price=Decimal(str(price)),
                    )
                    for product, quantity, price in lines
                ],
            ),
        )
        return document_service.approve_document(db_session, document.id)

    return _receive


@pytest.fixture
def stocked(receive, main_warehouse: Warehouse, products: dict) -> Warehouse:
    """Main store holding 10 kg flour at 2.00, 20 l milk at 1.50 and 60 eggs at 0.20."""
    receive(
        main_warehouse,
        [(products["flour"], 10, 2), (products["milk"], 20, "1.5"), (products["eggs"], 60, "0.2")],
    )
    return main_warehouse


@pytest.fixture
def pancakes(db_session: Session, stocked: Warehouse, products: dict, units: dict, test_user: User):
    """Recipe costing 7.00: 2 kg flour at 2.00, 1 l milk at 1.50 and 5 eggs at an explicit 0.30."""
    return recipe_service.create_recipe(
        db_session,
        RecipeCreate(
            name="Pancakes",
            portion_size=Decimal("10"),
            cooking_time=20,
            difficulty_level=2,
            margin_percent=Decimal("20"),
            ingredients=[
                RecipeIngredientCreate(
                    product_id=products["flour"].id, unit_id=units["kg"].id,
                    quantity=Decimal("2"), is_main=True,
                ),
                RecipeIngredientCreate(
                    product_id=products["milk"].id, unit_id=units["l"].id, quantity=Decimal("1"),
                ),
                RecipeIngredientCreate(
                    product_id=products["eggs"].id, unit_id=units["pcs"].id,
                    quantity=Decimal("5"), cost_per_unit=Decimal("0.30"),
                ),
            ],
        ),
        user_id=test_user.id,
    )


@pytest.fixture
def menu(db_session: Session) -> Menu:
    return menu_service.create_menu(db_session, MenuCreate(name="Breakfast"))


@pytest.fixture
def pancake_dish(db_session: Session, pancakes, units: dict) -> Product:
    """Sellable product backed by the pancakes recipe."""
    dish = Product(name="Pancake stack", unit_id=units["pcs"].id, recipe_id=pancakes.id)
    db_session.add(dish)
    db_session.commit()
    return dish


@pytest.fixture
def pancake_item(db_session: Session, menu: Menu, pancake_dish: Product) -> MenuItem:
    return menu_service.create_menu_item(
        db_session,
        MenuItemCreate(name="Pancakes", price=Decimal("4.50"), menu_id=menu.id, product_id=pancake_dish.id),
    )
