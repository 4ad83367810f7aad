"""Sales recording and production logging.

Recording a sale writes the sale and its lines, then logs production for
every sold item backed by a recipe, all in one transaction. Production
checks the warehouse stock of every ingredient before it writes anything,
so a shortage aborts the whole operation. The check and the movement
writes are not atomic against concurrent producers.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.menu import MenuItem
from backoffice.models.product import Product
from backoffice.models.recipe import Recipe, RecipeIngredient
from backoffice.models.sales import ProductionLog, ProductionLogItem, Sale, SaleItem
from backoffice.models.stock import MovementType, StockMovement
from backoffice.models.user import User
from backoffice.schemas.pagination import paginate_query
from backoffice.schemas.sales import ProductionLogCreate, SaleCreate, SaleFilter, SalesStatsFilter
from backoffice.services import menu_service, numbering, stock_service, warehouse_service

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MONEY_PRECISION = Decimal("0.01")

STATS_GROUPINGS = ("day", "week", "month", "cashier", "menu_item")
UNCATEGORIZED = {"id": None, "name": "Uncategorized", "sort_order": 999}


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


# ============== Production ==============

def _log_production(
    db: Session,
    warehouse_id: int,
    recipe_id: int,
    quantity: Decimal,
    created_by_id: Optional[int] = None,
    sale_id: Optional[int] = None,
    notes: Optional[str] = None,
    require_active: bool = False,
) -> ProductionLog:
    """Check stock, then write the log, its items and PRODUCTION_USE movements. Flushes only.

    Sales consume ingredients of deactivated recipes too; only explicit
    production requests pass ``require_active``.
    """
    recipe = (
        db.query(Recipe)
        .options(
            joinedload(Recipe.ingredients).joinedload(RecipeIngredient.product),
            joinedload(Recipe.ingredients).joinedload(RecipeIngredient.unit),
        )
        .filter(Recipe.id == recipe_id)
        .first()
    )
    if not recipe or (require_active and not recipe.is_active):
        raise NotFoundError("Recipe", recipe_id)

    quantity = Decimal(str(quantity))
    required = []
    for ingredient in recipe.ingredients:
        needed = Decimal(str(ingredient.quantity)) * quantity
        available = stock_service.get_available_quantity(db, warehouse_id, ingredient.product_id)
        if available < needed:
            raise InsufficientStockError(
                ingredient.product.name,
                needed,
                available,
                ingredient.unit.short_name if ingredient.unit else "",
            )
        required.append((ingredient, needed))

    log = ProductionLog(
        warehouse_id=warehouse_id,
        recipe_id=recipe.id,
        sale_id=sale_id,
        quantity=quantity,
        total_cost=ZERO,
        produced_at=datetime.now(timezone.utc),
        notes=notes,
        created_by_id=created_by_id,
    )
    db.add(log)
    db.flush()

    total_cost = ZERO
    for ingredient, used in required:
        balance = stock_service.get_balance(db, warehouse_id, ingredient.product_id)
        unit_price = Decimal(str(balance.avg_price)) if balance else ZERO
        line_cost = used * unit_price
        total_cost += line_cost
        db.add(ProductionLogItem(
            production_log_id=log.id,
            product_id=ingredient.product_id,
            quantity_used=used,
            unit_price=unit_price,
            total_cost=line_cost,
        ))

    for ingredient, used in required:
        stock_service.apply_movement(db, StockMovement(
            warehouse_id=warehouse_id,
            product_id=ingredient.product_id,
            type=MovementType.PRODUCTION_USE,
            quantity=-used,
            price=ZERO,
            production_log_id=log.id,
        ))

    log.total_cost = total_cost
    db.flush()

    logger.info(
        "Logged production of %s x '%s' at warehouse %s: cost %s",
        quantity, recipe.name, warehouse_id, total_cost,
    )
    return log


def create_production_log(
    db: Session,
    data: ProductionLogCreate,
    created_by_id: Optional[int] = None,
) -> ProductionLog:
    """Produce ``data.quantity`` portions, consuming ingredients from the warehouse."""
    warehouse_service.get_active_warehouse(db, data.warehouse_id)
    try:
        log = _log_production(
            db,
            warehouse_id=data.warehouse_id,
            recipe_id=data.recipe_id,
            quantity=data.quantity,
            created_by_id=created_by_id,
            notes=data.notes,
            require_active=True,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Production of recipe %s failed", data.recipe_id, exc_info=True)
        raise

    db.refresh(log)
    return log


def get_production_logs(
    db: Session,
    warehouse_id: Optional[int] = None,
    recipe_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    query = db.query(ProductionLog).options(joinedload(ProductionLog.recipe))
    if warehouse_id is not None:
        query = query.filter(ProductionLog.warehouse_id == warehouse_id)
    if recipe_id is not None:
        query = query.filter(ProductionLog.recipe_id == recipe_id)

    query = query.order_by(ProductionLog.produced_at.desc(), ProductionLog.id.desc())
    items, total = paginate_query(query, skip, limit)
    return paginated_response(items, total, skip, limit)


# ============== Sales ==============

def create_sale(db: Session, data: SaleCreate, cashier_id: Optional[int] = None) -> Sale:
    """Record a sale and consume recipe ingredients for what was sold."""
    warehouse_service.get_active_warehouse(db, data.warehouse_id)

    requested_ids = {item.menu_item_id for item in data.items}
    menu_items = {
        item.id: item
        for item in db.query(MenuItem)
        .options(joinedload(MenuItem.product).joinedload(Product.recipe))
        .filter(
            MenuItem.id.in_(requested_ids),
            MenuItem.is_active.is_(True),
            MenuItem.is_available.is_(True),
        )
        .all()
    }
    if len(menu_items) != len(requested_ids):
        unavailable = sorted(requested_ids - set(menu_items))
        raise ValidationError(
            f"Menu items not available for sale: {unavailable}",
            field="items",
            details={"menu_item_ids": unavailable},
        )

    active_menus = set(menu_service.get_active_menu_ids(db, data.warehouse_id))
    for menu_item in menu_items.values():
        if menu_item.menu_id is not None and menu_item.menu_id not in active_menus:
            raise ValidationError(
                f"Menu item '{menu_item.name}' is not sold at warehouse {data.warehouse_id}",
                field="items",
            )

    lines = []
    for line in data.items:
        menu_item = menu_items[line.menu_item_id]
        price = line.price if line.price else Decimal(str(menu_item.price))
        gross = price * line.quantity
        total = _money(gross - gross * line.discount_percent / 100)
        lines.append((line, menu_item, price, total))

    total_amount = sum((total for *_, total in lines), ZERO) - data.discount_amount
    if total_amount < 0:
        raise ValidationError("Discount exceeds the sale total", field="discount_amount")

    try:
        sale = Sale(
            number=numbering.sale_number(db),
            warehouse_id=data.warehouse_id,
            date=datetime.now(timezone.utc),
            total_amount=_money(total_amount),
            discount_amount=data.discount_amount,
            payment_method=data.payment_method,
            cashier_id=cashier_id,
            customer_name=data.customer_name,
            notes=data.notes,
            items=[
                SaleItem(
                    menu_item_id=menu_item.id,
                    quantity=line.quantity,
                    price=price,
                    discount_percent=line.discount_percent,
                    total=total,
                )
                for line, menu_item, price, total in lines
            ],
        )
        db.add(sale)
        db.flush()

        for line, menu_item, _, _ in lines:
            recipe = menu_item.product.recipe if menu_item.product else None
            if recipe is not None:
                _log_production(
                    db,
                    warehouse_id=data.warehouse_id,
                    recipe_id=recipe.id,
                    quantity=line.quantity,
                    created_by_id=cashier_id,
                    sale_id=sale.id,
                )

        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to record sale at warehouse %s", data.warehouse_id, exc_info=True)
        raise

    db.refresh(sale)
    logger.info("Recorded sale %s: total %s", sale.number, sale.total_amount)
    return sale


def get_sale_by_id(db: Session, sale_id: int) -> Sale:
    sale = (
        db.query(Sale)
        .options(joinedload(Sale.items).joinedload(SaleItem.menu_item), joinedload(Sale.warehouse))
        .filter(Sale.id == sale_id)
        .first()
    )
    if not sale:
        raise NotFoundError("Sale", sale_id)
    return sale


def _filtered_sales(db: Session, warehouse_id=None, date_from=None, date_to=None):
    query = db.query(Sale)
    if warehouse_id is not None:
        query = query.filter(Sale.warehouse_id == warehouse_id)
    if date_from is not None:
        query = query.filter(Sale.date >= date_from)
    if date_to is not None:
        query = query.filter(Sale.date <= date_to)
    return query


def get_sales(
    db: Session,
    filters: Optional[SaleFilter] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    filters = filters or SaleFilter()
    query = _filtered_sales(db, filters.warehouse_id, filters.date_from, filters.date_to)
    if filters.cashier_id is not None:
        query = query.filter(Sale.cashier_id == filters.cashier_id)
    if filters.payment_method is not None:
        query = query.filter(Sale.payment_method == filters.payment_method)

    query = query.options(joinedload(Sale.warehouse)).order_by(Sale.date.desc(), Sale.id.desc())
    items, total = paginate_query(query, skip, limit)
    return paginated_response(items, total, skip, limit)


def _period_key(moment: datetime, group_by: str) -> str:
    day: date = moment.date()
    if group_by == "day":
        return day.isoformat()
    if group_by == "week":
        # Weeks start on Sunday
        return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
    return f"{day.year}-{day.month:02d}"


def get_sales_stats(db: Session, filters: SalesStatsFilter) -> List[Dict[str, Any]]:
    """Sales totals grouped by day, week, month, cashier or menu item."""
    group_by = filters.group_by
    if group_by not in STATS_GROUPINGS:
        raise ValidationError(
            f"Unsupported grouping '{group_by}', expected one of {', '.join(STATS_GROUPINGS)}",
            field="group_by",
        )

    sales = (
        _filtered_sales(db, filters.warehouse_id, filters.date_from, filters.date_to)
        .order_by(Sale.date, Sale.id)
        .all()
    )

    if group_by in ("day", "week", "month"):
        periods: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for sale in sales:
            key = _period_key(sale.date, group_by)
            stats = periods.setdefault(key, {"period": key, "total_amount": ZERO, "sales_count": 0})
            stats["total_amount"] += Decimal(str(sale.total_amount))
            stats["sales_count"] += 1
        return list(periods.values())

    if group_by == "cashier":
        cashiers: Dict[Optional[int], Dict[str, Any]] = {}
        for sale in sales:
            stats = cashiers.setdefault(
                sale.cashier_id,
                {"cashier_id": sale.cashier_id, "total_amount": ZERO, "sales_count": 0},
            )
            stats["total_amount"] += Decimal(str(sale.total_amount))
            stats["sales_count"] += 1

        names = {
            user.id: user.full_name
            for user in db.query(User).filter(User.id.in_([k for k in cashiers if k is not None]))
        }
        for cashier_id, stats in cashiers.items():
            stats["cashier_name"] = names.get(cashier_id, "Unknown")
        return sorted(cashiers.values(), key=lambda s: s["total_amount"], reverse=True)

    menu_stats: Dict[int, Dict[str, Any]] = {}
    sale_ids = [sale.id for sale in sales]
    if sale_ids:
        rows = (
            db.query(SaleItem)
            .options(joinedload(SaleItem.menu_item))
            .filter(SaleItem.sale_id.in_(sale_ids))
            .all()
        )
        for row in rows:
            stats = menu_stats.setdefault(
                row.menu_item_id,
                {
                    "menu_item_id": row.menu_item_id,
                    "menu_item_name": row.menu_item.name if row.menu_item else "Unknown",
                    "total_quantity": ZERO,
                    "total_amount": ZERO,
                    "sales_count": 0,
                },
            )
            stats["total_quantity"] += Decimal(str(row.quantity))
            stats["total_amount"] += Decimal(str(row.total))
            stats["sales_count"] += 1
    return sorted(menu_stats.values(), key=lambda s: s["total_amount"], reverse=True)


# ============== Menu availability ==============

def get_available_menu_for_warehouse(db: Session, warehouse_id: int) -> List[Dict[str, Any]]:
    """Sellable menu items of the warehouse grouped by category.

    Recipe-backed items carry the number of portions the stock allows and
    are flagged unavailable when any ingredient allows none. Categories
    are ordered by sort order with uncategorized items last.
    """
    menu_ids = menu_service.get_active_menu_ids(db, warehouse_id)
    if not menu_ids:
        return []

    menu_items = (
        db.query(MenuItem)
        .options(
            joinedload(MenuItem.category),
            joinedload(MenuItem.product).joinedload(Product.recipe),
        )
        .filter(
            MenuItem.menu_id.in_(menu_ids),
            MenuItem.is_active.is_(True),
            MenuItem.is_available.is_(True),
        )
        .order_by(MenuItem.sort_order, MenuItem.name)
        .all()
    )

    groups: Dict[Optional[int], Dict[str, Any]] = {}
    for menu_item in menu_items:
        is_available = True
        availability = None
        recipe = menu_item.product.recipe if menu_item.product else None
        if recipe is not None and recipe.ingredients:
            availability = menu_service.recipe_portions(db, recipe, warehouse_id)
            is_available = all(row["max_portions"] > 0 for row in availability["ingredients"])

        category = menu_item.category
        key = category.id if category else None
        group = groups.setdefault(
            key,
            {
                "id": category.id,
                "name": category.name,
                "sort_order": category.sort_order,
                "items": [],
            } if category else {**UNCATEGORIZED, "items": []},
        )
        group["items"].append({
            "id": menu_item.id,
            "name": menu_item.name,
            "description": menu_item.description,
            "price": Decimal(str(menu_item.price)),
            "image_url": menu_item.image_url,
            "sort_order": menu_item.sort_order,
            "is_available": is_available,
            "availability": availability,
        })

    return sorted(
        groups.values(),
        key=lambda g: (g["id"] is None, g["sort_order"], g["name"]),
    )
