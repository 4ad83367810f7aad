"""Stock ledger - balances per (warehouse, product) and the movement journal.

Balances are derived state. The only writers are ``apply_movement`` (called
by document approval and production logging inside their transaction) and
``recalculate_balance`` (called by document cancellation). Neither commits;
the calling workflow owns the transaction.

Average price policy:
- incoming movement (positive quantity): weighted average of the existing
  stock (weighted by ``max(quantity, 0)``) and the incoming price
- outgoing movement: average price unchanged
- ``total_value = quantity * avg_price``

Quantities may go negative; availability checks are the caller's job.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from backoffice.core.config import settings
from backoffice.core.responses import paginated_response
from backoffice.models.product import Product
from backoffice.models.stock import StockBalance, StockMovement
from backoffice.schemas.pagination import paginate_query
from backoffice.schemas.stock import MovementFilter

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
PRICE_PRECISION = Decimal("0.0001")
MONEY_PRECISION = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ============== Read access ==============

def get_balance(db: Session, warehouse_id: int, product_id: int) -> Optional[StockBalance]:
    return (
        db.query(StockBalance)
        .filter(
            StockBalance.warehouse_id == warehouse_id,
            StockBalance.product_id == product_id,
        )
        .first()
    )


def get_available_quantity(db: Session, warehouse_id: int, product_id: int) -> Decimal:
    """Current quantity on hand; a missing balance row counts as zero."""
    balance = get_balance(db, warehouse_id, product_id)
    return _to_decimal(balance.quantity) if balance else ZERO


def get_latest_avg_price(db: Session, product_id: int) -> Decimal:
    """Average price from the most recently updated balance of the product, in any warehouse."""
    balance = (
        db.query(StockBalance)
        .filter(StockBalance.product_id == product_id)
        .order_by(StockBalance.updated_at.desc(), StockBalance.id.desc())
        .first()
    )
    return _to_decimal(balance.avg_price) if balance else ZERO


def list_balances(
    db: Session,
    warehouse_id: Optional[int] = None,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    product_ids: Optional[List[int]] = None,
    category_ids: Optional[List[int]] = None,
    include_zero: bool = False,
) -> List[StockBalance]:
    """Balances ordered by product name.

    Zero-quantity rows are skipped unless ``include_zero`` is set.
    """
    query = (
        db.query(StockBalance)
        .join(Product, StockBalance.product_id == Product.id)
        .options(joinedload(StockBalance.product).joinedload(Product.unit))
    )

    if warehouse_id is not None:
        query = query.filter(StockBalance.warehouse_id == warehouse_id)
    if not include_zero:
        query = query.filter(StockBalance.quantity != 0)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.article.ilike(pattern),
                Product.barcode.ilike(pattern),
            )
        )
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if category_ids:
        query = query.filter(Product.category_id.in_(category_ids))
    if product_ids:
        query = query.filter(Product.id.in_(product_ids))

    return query.order_by(Product.name, StockBalance.id).all()


def list_movements(
    db: Session,
    filters: Optional[MovementFilter] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """Movement journal, newest first, in the paginated envelope."""
    filters = filters or MovementFilter()
    query = db.query(StockMovement).options(
        joinedload(StockMovement.product),
        joinedload(StockMovement.warehouse),
    )

    if filters.warehouse_id is not None:
        query = query.filter(StockMovement.warehouse_id == filters.warehouse_id)
    if filters.product_id is not None:
        query = query.filter(StockMovement.product_id == filters.product_id)
    if filters.type is not None:
        query = query.filter(StockMovement.type == filters.type)
    if filters.document_id is not None:
        query = query.filter(StockMovement.document_id == filters.document_id)
    if filters.date_from is not None:
        query = query.filter(StockMovement.created_at >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(StockMovement.created_at <= filters.date_to)

    query = query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    items, total = paginate_query(query, skip, limit)
    return paginated_response(items, total, skip, limit)


def get_low_stock_items(
    db: Session,
    threshold: Optional[Decimal] = None,
    warehouse_id: Optional[int] = None,
) -> List[StockBalance]:
    """Positive balances at or below ``threshold`` (settings default), lowest first."""
    threshold = _to_decimal(threshold if threshold is not None else settings.low_stock_threshold)

    query = (
        db.query(StockBalance)
        .join(Product, StockBalance.product_id == Product.id)
        .options(joinedload(StockBalance.product), joinedload(StockBalance.warehouse))
        .filter(
            StockBalance.quantity > 0,
            StockBalance.quantity <= threshold,
            Product.active(),
        )
    )
    if warehouse_id is not None:
        query = query.filter(StockBalance.warehouse_id == warehouse_id)

    return query.order_by(StockBalance.quantity.asc(), StockBalance.id).all()


# ============== Movement processing ==============

def _apply_to_balance(balance: StockBalance, quantity: Decimal, price: Decimal) -> None:
    old_quantity = _to_decimal(balance.quantity)
    old_avg = _to_decimal(balance.avg_price)
    new_quantity = old_quantity + quantity

    if quantity > 0:
        existing_weight = max(old_quantity, ZERO)
        total_weight = existing_weight + quantity
        if total_weight > 0:
            new_avg = (existing_weight * old_avg + quantity * price) / total_weight
        else:
            new_avg = price
        balance.avg_price = new_avg.quantize(PRICE_PRECISION, rounding=ROUND_HALF_UP)

    balance.quantity = new_quantity
    balance.total_value = (new_quantity * _to_decimal(balance.avg_price)).quantize(
        MONEY_PRECISION, rounding=ROUND_HALF_UP
    )


def _get_or_create_balance(db: Session, warehouse_id: int, product_id: int) -> StockBalance:
    balance = get_balance(db, warehouse_id, product_id)
    if balance is None:
        balance = StockBalance(
            warehouse_id=warehouse_id,
            product_id=product_id,
            quantity=ZERO,
            avg_price=ZERO,
            total_value=ZERO,
        )
        db.add(balance)
    return balance


def apply_movement(db: Session, movement: StockMovement) -> StockBalance:
    """Record ``movement`` and fold it into the matching balance.

    Flushes but does not commit.
    """
    movement.quantity = _to_decimal(movement.quantity)
    movement.price = _to_decimal(movement.price)
    db.add(movement)

    balance = _get_or_create_balance(db, movement.warehouse_id, movement.product_id)
    _apply_to_balance(balance, movement.quantity, movement.price)
    db.flush()

    logger.debug(
        "Applied %s movement: warehouse=%s product=%s qty=%s price=%s -> balance=%s",
        movement.type.value, movement.warehouse_id, movement.product_id,
        movement.quantity, movement.price, balance.quantity,
    )
    return balance


def recalculate_balance(db: Session, warehouse_id: int, product_id: int) -> Optional[StockBalance]:
    """Rebuild a balance by replaying its remaining movements in id order.

    The balance row is removed when no movements remain. Flushes but does
    not commit.
    """
    db.flush()
    movements = (
        db.query(StockMovement)
        .filter(
            StockMovement.warehouse_id == warehouse_id,
            StockMovement.product_id == product_id,
        )
        .order_by(StockMovement.id)
        .all()
    )
    balance = get_balance(db, warehouse_id, product_id)

    if not movements:
        if balance is not None:
            db.delete(balance)
            db.flush()
        return None

    if balance is None:
        balance = _get_or_create_balance(db, warehouse_id, product_id)
    balance.quantity = ZERO
    balance.avg_price = ZERO
    balance.total_value = ZERO
    for movement in movements:
        _apply_to_balance(balance, _to_decimal(movement.quantity), _to_decimal(movement.price))
    db.flush()

    logger.debug(
        "Recalculated balance warehouse=%s product=%s from %d movements: qty=%s avg=%s",
        warehouse_id, product_id, len(movements), balance.quantity, balance.avg_price,
    )
    return balance
