"""Inventory (stock count) workflow.

An inventory freezes the expected quantity of every counted product when
its line is created. Counts are recorded afterwards; the variance
``actual - expected`` can be turned into INVENTORY_ADJUSTMENT documents
which go through the normal document approval. Approving the inventory
itself does not touch stock.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError, StateConflictError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.document import DocumentType
from backoffice.models.inventory import Inventory, InventoryItem, InventoryStatus
from backoffice.models.product import Product
from backoffice.schemas.document import DocumentCreate, DocumentItemCreate
from backoffice.schemas.inventory import (
    InventoryCreate,
    InventoryFilter,
    InventoryFromBalancesCreate,
    InventoryItemBulkCount,
    InventoryItemCount,
    InventoryItemCreate,
    InventoryUpdate,
)
from backoffice.schemas.pagination import paginate_query
from backoffice.services import document_service, numbering, stock_service, warehouse_service

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
PERCENT_PRECISION = Decimal("0.01")


def _get_inventory(db: Session, inventory_id: int) -> Inventory:
    inventory = db.query(Inventory).filter(Inventory.id == inventory_id).first()
    if not inventory:
        raise NotFoundError("Inventory", inventory_id)
    return inventory


def _require_draft(inventory: Inventory, action: str) -> None:
    if inventory.status != InventoryStatus.DRAFT:
        raise StateConflictError(
            f"Cannot {action} inventory {inventory.number}: status is {inventory.status.value}",
            current_state=inventory.status.value,
        )


# ============== Queries ==============

def get_inventory_by_id(db: Session, inventory_id: int) -> Inventory:
    inventory = (
        db.query(Inventory)
        .options(
            joinedload(Inventory.warehouse),
            joinedload(Inventory.items).joinedload(InventoryItem.product).joinedload(Product.unit),
        )
        .filter(Inventory.id == inventory_id)
        .first()
    )
    if not inventory:
        raise NotFoundError("Inventory", inventory_id)
    return inventory


def get_inventories(
    db: Session,
    filters: Optional[InventoryFilter] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    filters = filters or InventoryFilter()
    query = db.query(Inventory).options(joinedload(Inventory.warehouse))

    if filters.warehouse_id is not None:
        query = query.filter(Inventory.warehouse_id == filters.warehouse_id)
    if filters.status is not None:
        query = query.filter(Inventory.status == filters.status)
    if filters.date_from is not None:
        query = query.filter(Inventory.date >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(Inventory.date <= filters.date_to)

    query = query.order_by(Inventory.created_at.desc(), Inventory.id.desc())
    items, total = paginate_query(query, skip, limit)
    return paginated_response(items, total, skip, limit)


def generate_inventory_sheet(
    db: Session,
    warehouse_id: int,
    category_ids: Optional[List[int]] = None,
    product_ids: Optional[List[int]] = None,
    include_zero_balances: bool = False,
) -> List[Dict[str, Any]]:
    """One row per product held at the warehouse with its current quantity and average price."""
    balances = stock_service.list_balances(
        db,
        warehouse_id=warehouse_id,
        category_ids=category_ids,
        product_ids=product_ids,
        include_zero=include_zero_balances,
    )
    return [
        {
            "product_id": balance.product_id,
            "product_name": balance.product.name,
            "article": balance.product.article,
            "unit_name": balance.product.unit.short_name if balance.product.unit else None,
            "expected_quantity": Decimal(str(balance.quantity)),
            "price": Decimal(str(balance.avg_price)),
        }
        for balance in balances
    ]


# ============== Creation ==============

def _build_item(db: Session, inventory: Inventory, data: InventoryItemCreate) -> InventoryItem:
    product = db.query(Product).filter(Product.id == data.product_id).first()
    if not product:
        raise NotFoundError("Product", data.product_id)

    exists = (
        db.query(InventoryItem.id)
        .filter(InventoryItem.inventory_id == inventory.id, InventoryItem.product_id == product.id)
        .first()
    )
    if exists:
        raise ValidationError(
            f"Product '{product.name}' is already on inventory {inventory.number}",
            field="product_id",
        )

    expected, price = data.expected_quantity, data.price
    if expected is None or price is None:
        balance = stock_service.get_balance(db, inventory.warehouse_id, product.id)
        if expected is None:
            expected = Decimal(str(balance.quantity)) if balance else ZERO
        if price is None:
            price = Decimal(str(balance.avg_price)) if balance else ZERO

    return InventoryItem(
        inventory_id=inventory.id,
        product_id=product.id,
        expected_quantity=expected,
        actual_quantity=data.actual_quantity,
        price=price,
        notes=data.notes,
    )


def _new_inventory(db: Session, data, user_id: Optional[int]) -> Inventory:
    warehouse_service.get_active_warehouse(db, data.warehouse_id)
    inventory = Inventory(
        number=numbering.inventory_number(db),
        warehouse_id=data.warehouse_id,
        date=data.date,
        status=InventoryStatus.DRAFT,
        responsible_person_id=data.responsible_person_id,
        notes=data.notes,
        created_by_id=user_id,
    )
    db.add(inventory)
    db.flush()
    return inventory


def create_inventory(db: Session, data: InventoryCreate, user_id: Optional[int] = None) -> Inventory:
    try:
        inventory = _new_inventory(db, data, user_id)
        for item_data in data.items:
            db.add(_build_item(db, inventory, item_data))
            db.flush()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(inventory)
    logger.info("Created inventory %s for warehouse %s", inventory.number, inventory.warehouse_id)
    return inventory


def create_inventory_from_balances(
    db: Session,
    data: InventoryFromBalancesCreate,
    user_id: Optional[int] = None,
) -> Inventory:
    """Create the inventory and its lines from current balances in one transaction."""
    try:
        inventory = _new_inventory(db, data, user_id)
        sheet = generate_inventory_sheet(
            db,
            warehouse_id=data.warehouse_id,
            category_ids=data.category_ids,
            product_ids=data.product_ids,
            include_zero_balances=data.include_zero_balances,
        )
        db.add_all(
            InventoryItem(
                inventory_id=inventory.id,
                product_id=row["product_id"],
                expected_quantity=row["expected_quantity"],
                price=row["price"],
            )
            for row in sheet
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to create inventory for warehouse %s", data.warehouse_id, exc_info=True)
        raise

    db.refresh(inventory)
    logger.info(
        "Created inventory %s from balances of warehouse %s: %d lines",
        inventory.number, inventory.warehouse_id, len(sheet),
    )
    return inventory


# ============== Editing ==============

def update_inventory(db: Session, inventory_id: int, data: InventoryUpdate) -> Inventory:
    inventory = _get_inventory(db, inventory_id)
    _require_draft(inventory, "update")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(inventory, field, value)

    db.commit()
    db.refresh(inventory)
    return inventory


def add_inventory_item(db: Session, inventory_id: int, data: InventoryItemCreate) -> InventoryItem:
    inventory = _get_inventory(db, inventory_id)
    _require_draft(inventory, "add items to")

    item = _build_item(db, inventory, data)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def _count_item(item: InventoryItem, data: InventoryItemCount, counted_by_id: Optional[int]) -> None:
    item.actual_quantity = data.actual_quantity
    if data.notes is not None:
        item.notes = data.notes
    item.counted_by_id = counted_by_id
    item.counted_at = datetime.now(timezone.utc)


def _get_item(db: Session, item_id: int) -> InventoryItem:
    item = db.query(InventoryItem).filter(InventoryItem.id == item_id).first()
    if not item:
        raise NotFoundError("InventoryItem", item_id)
    return item


def update_inventory_item(
    db: Session,
    item_id: int,
    data: InventoryItemCount,
    counted_by_id: Optional[int] = None,
) -> InventoryItem:
    """Record the counted quantity. The expected snapshot never changes."""
    item = _get_item(db, item_id)
    _require_draft(item.inventory, "count items of")

    _count_item(item, data, counted_by_id)
    db.commit()
    db.refresh(item)
    return item


def bulk_update_inventory_items(
    db: Session,
    counts: List[InventoryItemBulkCount],
    counted_by_id: Optional[int] = None,
) -> List[InventoryItem]:
    """Record several counts atomically."""
    try:
        items = []
        for count in counts:
            item = _get_item(db, count.id)
            _require_draft(item.inventory, "count items of")
            _count_item(item, count, counted_by_id)
            items.append(item)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for item in items:
        db.refresh(item)
    return items


# ============== Variances ==============

def _variance_row(item: InventoryItem) -> Dict[str, Any]:
    expected = Decimal(str(item.expected_quantity))
    actual = Decimal(str(item.actual_quantity))
    price = Decimal(str(item.price))

    quantity_variance = actual - expected
    value_variance = quantity_variance * price
    if expected > 0:
        variance_percent = (quantity_variance / expected * 100).quantize(
            PERCENT_PRECISION, rounding=ROUND_HALF_UP
        )
    else:
        variance_percent = ZERO

    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_name": item.product.name,
        "expected_quantity": expected,
        "actual_quantity": actual,
        "quantity_variance": quantity_variance,
        "price": price,
        "value_variance": value_variance,
        "variance_percent": variance_percent,
    }


def analyze_variances(
    db: Session,
    inventory_id: int,
    variance_threshold: Decimal = ZERO,
) -> Dict[str, Any]:
    """Variance of every counted line plus totals.

    Totals always cover all counted lines; ``items`` is limited to lines
    whose ``|variance_percent| >= variance_threshold`` when a threshold is given.
    """
    _get_inventory(db, inventory_id)
    items = (
        db.query(InventoryItem)
        .options(joinedload(InventoryItem.product))
        .filter(
            InventoryItem.inventory_id == inventory_id,
            InventoryItem.actual_quantity.isnot(None),
        )
        .order_by(InventoryItem.id)
        .all()
    )

    rows = [_variance_row(item) for item in items]
    threshold = Decimal(str(variance_threshold))
    if threshold > 0:
        filtered = [row for row in rows if abs(row["variance_percent"]) >= threshold]
    else:
        filtered = rows

    return {
        "total_items": len(rows),
        "items_with_variance": sum(1 for row in rows if row["quantity_variance"] != 0),
        "total_variance_value": sum((row["value_variance"] for row in rows), ZERO),
        "surplus_value": sum((row["value_variance"] for row in rows if row["value_variance"] > 0), ZERO),
        "shortage_value": sum((-row["value_variance"] for row in rows if row["value_variance"] < 0), ZERO),
        "items": filtered,
    }


def create_adjustment_documents(
    db: Session,
    inventory_id: int,
    user_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Turn counted variances into DRAFT INVENTORY_ADJUSTMENT documents.

    At most two documents are created: one crediting the warehouse with the
    surplus and one debiting it with the shortage. Quantities are absolute.
    The documents still have to be approved to change stock.
    """
    inventory = _get_inventory(db, inventory_id)
    analysis = analyze_variances(db, inventory_id)
    varied = [row for row in analysis["items"] if row["quantity_variance"] != 0]

    if not varied:
        return {
            "message": f"No variances found on inventory {inventory.number}; no documents created",
            "documents": [],
        }

    units = dict(
        db.query(Product.id, Product.unit_id)
        .filter(Product.id.in_([row["product_id"] for row in varied]))
        .all()
    )
    surplus = [row for row in varied if row["quantity_variance"] > 0]
    shortage = [row for row in varied if row["quantity_variance"] < 0]
    groups = [
        ("surplus", surplus, {"warehouse_to_id": inventory.warehouse_id}),
        ("shortage", shortage, {"warehouse_from_id": inventory.warehouse_id}),
    ]

    documents = []
    try:
        for label, rows, warehouse in groups:
            if not rows:
                continue
            data = DocumentCreate(
                type=DocumentType.INVENTORY_ADJUSTMENT,
                notes=f"Adjustment for inventory {inventory.number}: {label}",
                items=[
                    DocumentItemCreate(
                        product_id=row["product_id"],
                        quantity=abs(row["quantity_variance"]),
                        price=row["price"],
                        unit_id=units[row["product_id"]],
                    )
                    for row in rows
                ],
                **warehouse,
            )
            documents.append(document_service.create_document(db, data, user_id, commit=False))
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to create adjustment documents for inventory %s", inventory_id, exc_info=True)
        raise

    for document in documents:
        db.refresh(document)
    logger.info(
        "Created %d adjustment documents for inventory %s", len(documents), inventory.number
    )
    return {
        "message": f"Created {len(documents)} adjustment document(s) for inventory {inventory.number}",
        "documents": documents,
    }


# ============== Lifecycle ==============

def approve_inventory(db: Session, inventory_id: int, user_id: Optional[int] = None) -> Inventory:
    """Mark the count as approved. Stock changes only through the adjustment documents."""
    inventory = _get_inventory(db, inventory_id)
    _require_draft(inventory, "approve")

    inventory.status = InventoryStatus.APPROVED
    inventory.approved_by_id = user_id
    inventory.approved_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(inventory)

    logger.info("Approved inventory %s", inventory.number)
    return inventory


def delete_inventory(db: Session, inventory_id: int) -> None:
    inventory = _get_inventory(db, inventory_id)
    if inventory.status == InventoryStatus.APPROVED:
        raise StateConflictError(
            f"Cannot delete approved inventory {inventory.number}",
            current_state=inventory.status.value,
        )

    number = inventory.number
    db.delete(inventory)
    db.commit()
    logger.info("Deleted inventory %s", number)
