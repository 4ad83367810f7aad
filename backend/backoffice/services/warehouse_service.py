"""Warehouses."""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.product import Product
from backoffice.models.stock import StockBalance
from backoffice.models.user import User
from backoffice.models.warehouse import Warehouse
from backoffice.schemas.pagination import paginate_query
from backoffice.schemas.warehouse import WarehouseCreate, WarehouseUpdate

logger = logging.getLogger(__name__)


def get_warehouse_by_id(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()
    if not warehouse:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


def get_active_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    """Like ``get_warehouse_by_id`` but a deactivated warehouse counts as missing."""
    warehouse = get_warehouse_by_id(db, warehouse_id)
    if not warehouse.is_active:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


def get_warehouses(db: Session) -> List[Warehouse]:
    return db.query(Warehouse).filter(Warehouse.active()).order_by(Warehouse.name).all()


def _validate(db: Session, values: dict, exclude_id: Optional[int] = None) -> None:
    if values.get("name") is not None:
        query = db.query(Warehouse.id).filter(Warehouse.name == values["name"])
        if exclude_id is not None:
            query = query.filter(Warehouse.id != exclude_id)
        if query.first():
            raise ValidationError(f"Warehouse '{values['name']}' already exists", field="name")
    if values.get("manager_id") is not None:
        if not db.query(User.id).filter(User.id == values["manager_id"]).first():
            raise NotFoundError("User", values["manager_id"])


def create_warehouse(db: Session, data: WarehouseCreate) -> Warehouse:
    values = data.model_dump()
    _validate(db, values)

    warehouse = Warehouse(**values)
    db.add(warehouse)
    db.commit()
    db.refresh(warehouse)

    logger.info("Created warehouse %s (%s)", warehouse.id, warehouse.name)
    return warehouse


def update_warehouse(db: Session, warehouse_id: int, data: WarehouseUpdate) -> Warehouse:
    warehouse = get_warehouse_by_id(db, warehouse_id)
    updates = data.model_dump(exclude_unset=True)
    _validate(db, updates, exclude_id=warehouse.id)

    for field, value in updates.items():
        setattr(warehouse, field, value)

    db.commit()
    db.refresh(warehouse)
    return warehouse


def deactivate_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = get_warehouse_by_id(db, warehouse_id)
    warehouse.deactivate()
    db.commit()
    logger.info("Deactivated warehouse %s", warehouse.id)
    return warehouse


def get_warehouse_balances(
    db: Session,
    warehouse_id: int,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """Positive balances of the warehouse ordered by product name."""
    get_warehouse_by_id(db, warehouse_id)
    query = (
        db.query(StockBalance)
        .join(Product, StockBalance.product_id == Product.id)
        .options(joinedload(StockBalance.product).joinedload(Product.unit))
        .filter(StockBalance.warehouse_id == warehouse_id, StockBalance.quantity > 0)
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.article.ilike(pattern)))

    items, total = paginate_query(query.order_by(Product.name, StockBalance.id), skip, limit)
    return paginated_response(items, total, skip, limit)
