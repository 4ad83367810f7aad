"""Menus, menu categories, menu items and their assignment to warehouses."""

import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.models.menu import Menu, MenuCategory, MenuItem, WarehouseMenu
from backoffice.models.product import Product
from backoffice.models.recipe import Recipe
from backoffice.models.warehouse import Warehouse
from backoffice.schemas.menu import (
    MenuCategoryCreate,
    MenuCreate,
    MenuItemCreate,
    MenuItemUpdate,
    MenuUpdate,
)
from backoffice.services import stock_service

logger = logging.getLogger(__name__)


# ============== Menus ==============

def get_menu_by_id(db: Session, menu_id: int) -> Menu:
    menu = db.query(Menu).filter(Menu.id == menu_id).first()
    if not menu:
        raise NotFoundError("Menu", menu_id)
    return menu


def get_menus(db: Session, include_inactive: bool = False) -> List[Menu]:
    query = db.query(Menu)
    if not include_inactive:
        query = query.filter(Menu.active())
    return query.order_by(Menu.name).all()


def create_menu(db: Session, data: MenuCreate) -> Menu:
    menu = Menu(**data.model_dump())
    db.add(menu)
    db.commit()
    db.refresh(menu)
    logger.info("Created menu %s (%s)", menu.id, menu.name)
    return menu


def update_menu(db: Session, menu_id: int, data: MenuUpdate) -> Menu:
    menu = get_menu_by_id(db, menu_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(menu, field, value)
    db.commit()
    db.refresh(menu)
    return menu


def delete_menu(db: Session, menu_id: int) -> None:
    """Soft delete; sales keep pointing at the menu's items."""
    menu = get_menu_by_id(db, menu_id)
    menu.deactivate()
    db.commit()
    logger.info("Deactivated menu %s", menu.id)


# ============== Menu categories ==============

def get_menu_categories(db: Session, include_inactive: bool = False) -> List[MenuCategory]:
    query = db.query(MenuCategory)
    if not include_inactive:
        query = query.filter(MenuCategory.active())
    return query.order_by(MenuCategory.sort_order, MenuCategory.name).all()


def create_menu_category(db: Session, data: MenuCategoryCreate) -> MenuCategory:
    category = MenuCategory(**data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


# ============== Menu items ==============

def get_menu_item_by_id(db: Session, menu_item_id: int) -> MenuItem:
    item = (
        db.query(MenuItem)
        .options(joinedload(MenuItem.category), joinedload(MenuItem.product))
        .filter(MenuItem.id == menu_item_id)
        .first()
    )
    if not item:
        raise NotFoundError("MenuItem", menu_item_id)
    return item


def get_menu_items(
    db: Session,
    menu_id: Optional[int] = None,
    category_id: Optional[int] = None,
    include_inactive: bool = False,
) -> List[MenuItem]:
    query = db.query(MenuItem).options(joinedload(MenuItem.category))
    if menu_id is not None:
        query = query.filter(MenuItem.menu_id == menu_id)
    if category_id is not None:
        query = query.filter(MenuItem.category_id == category_id)
    if not include_inactive:
        query = query.filter(MenuItem.is_active.is_(True))
    return query.order_by(MenuItem.sort_order, MenuItem.name).all()


def _validate_item_refs(db: Session, values: dict) -> None:
    if values.get("menu_id") is not None:
        get_menu_by_id(db, values["menu_id"])
    if values.get("category_id") is not None:
        if not db.query(MenuCategory.id).filter(MenuCategory.id == values["category_id"]).first():
            raise NotFoundError("MenuCategory", values["category_id"])
    if values.get("product_id") is not None:
        if not db.query(Product.id).filter(Product.id == values["product_id"]).first():
            raise NotFoundError("Product", values["product_id"])


def create_menu_item(db: Session, data: MenuItemCreate) -> MenuItem:
    values = data.model_dump()
    _validate_item_refs(db, values)

    item = MenuItem(**values)
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Created menu item %s (%s) at %s", item.id, item.name, item.price)
    return item


def update_menu_item(db: Session, menu_item_id: int, data: MenuItemUpdate) -> MenuItem:
    item = get_menu_item_by_id(db, menu_item_id)
    updates = data.model_dump(exclude_unset=True)
    _validate_item_refs(db, updates)

    for field, value in updates.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


# ============== Warehouse assignment ==============

def assign_menu_to_warehouse(db: Session, warehouse_id: int, menu_id: int) -> WarehouseMenu:
    """Make a menu available at a warehouse. Re-assigning reactivates the link."""
    if not db.query(Warehouse.id).filter(Warehouse.id == warehouse_id).first():
        raise NotFoundError("Warehouse", warehouse_id)
    get_menu_by_id(db, menu_id)

    link = (
        db.query(WarehouseMenu)
        .filter(WarehouseMenu.warehouse_id == warehouse_id, WarehouseMenu.menu_id == menu_id)
        .first()
    )
    if link is None:
        link = WarehouseMenu(warehouse_id=warehouse_id, menu_id=menu_id, is_active=True)
        db.add(link)
    else:
        link.is_active = True

    db.commit()
    db.refresh(link)
    logger.info("Assigned menu %s to warehouse %s", menu_id, warehouse_id)
    return link


def _get_link(db: Session, warehouse_id: int, menu_id: int) -> WarehouseMenu:
    link = (
        db.query(WarehouseMenu)
        .filter(WarehouseMenu.warehouse_id == warehouse_id, WarehouseMenu.menu_id == menu_id)
        .first()
    )
    if not link:
        raise NotFoundError("WarehouseMenu", f"{warehouse_id}/{menu_id}")
    return link


def set_warehouse_menu_active(
    db: Session,
    warehouse_id: int,
    menu_id: int,
    is_active: bool,
) -> WarehouseMenu:
    link = _get_link(db, warehouse_id, menu_id)
    link.is_active = is_active
    db.commit()
    db.refresh(link)
    return link


def remove_warehouse_menu(db: Session, warehouse_id: int, menu_id: int) -> None:
    link = _get_link(db, warehouse_id, menu_id)
    db.delete(link)
    db.commit()
    logger.info("Removed menu %s from warehouse %s", menu_id, warehouse_id)


def get_warehouse_menus(db: Session, warehouse_id: int) -> List[WarehouseMenu]:
    return (
        db.query(WarehouseMenu)
        .options(joinedload(WarehouseMenu.menu))
        .filter(WarehouseMenu.warehouse_id == warehouse_id)
        .order_by(WarehouseMenu.id)
        .all()
    )


def get_active_menu_ids(db: Session, warehouse_id: int) -> List[int]:
    """Menus that are active themselves and actively assigned to the warehouse."""
    rows = (
        db.query(WarehouseMenu.menu_id)
        .join(Menu, WarehouseMenu.menu_id == Menu.id)
        .filter(
            WarehouseMenu.warehouse_id == warehouse_id,
            WarehouseMenu.is_active.is_(True),
            Menu.active(),
        )
        .all()
    )
    return [row[0] for row in rows]


# ============== Availability ==============

def recipe_portions(db: Session, recipe: Recipe, warehouse_id: int) -> Dict[str, Any]:
    """How many portions of ``recipe`` the warehouse stock allows, per ingredient and overall."""
    ingredients = []
    for ingredient in recipe.ingredients:
        required = Decimal(str(ingredient.quantity))
        available = stock_service.get_available_quantity(db, warehouse_id, ingredient.product_id)
        if available > 0 and required > 0:
            max_portions = int((available / required).to_integral_value(rounding=ROUND_FLOOR))
        else:
            max_portions = 0
        ingredients.append({
            "product_id": ingredient.product_id,
            "product_name": ingredient.product.name,
            "required": required,
            "available": available,
            "max_portions": max_portions,
        })

    max_portions = min((row["max_portions"] for row in ingredients), default=0)
    return {"max_portions": max_portions, "ingredients": ingredients}


def check_menu_item_availability(
    db: Session,
    menu_item_id: int,
    warehouse_id: int,
    quantity: Decimal = Decimal("1"),
) -> Dict[str, Any]:
    """Whether ``quantity`` portions of a menu item can be produced at the warehouse.

    Items without a recipe are only limited by their own flags.
    """
    item = get_menu_item_by_id(db, menu_item_id)
    if not item.is_active or not item.is_available:
        return {
            "available": False,
            "reason": "Menu item is not available",
            "max_portions": 0,
            "ingredients": [],
        }

    recipe = item.product.recipe if item.product else None
    if recipe is None:
        return {"available": True, "reason": None, "max_portions": None, "ingredients": []}

    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero", field="quantity")

    portions = recipe_portions(db, recipe, warehouse_id)
    for row in portions["ingredients"]:
        row["required"] = row["required"] * quantity
        row["sufficient"] = row["available"] >= row["required"]

    available = all(row["sufficient"] for row in portions["ingredients"])
    return {
        "available": available,
        "reason": None if available else "Insufficient ingredients",
        "max_portions": portions["max_portions"],
        "ingredients": portions["ingredients"],
    }
