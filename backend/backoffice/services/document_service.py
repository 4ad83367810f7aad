"""Stock document workflow.

State machine::

    DRAFT --approve--> APPROVED --cancel--> CANCELLED
    DRAFT --delete--> (removed)

Items may only change while the document is a DRAFT. Approval emits stock
movements and applies them to the ledger in the same transaction as the
status change; cancellation deletes the document's movements and rebuilds
the affected balances from the remaining journal.

Movement mapping on approval:
- RECEIPT: IN at ``warehouse_to`` (+qty)
- TRANSFER: TRANSFER_OUT at ``warehouse_from`` (-qty) and TRANSFER_IN at ``warehouse_to`` (+qty)
- WRITEOFF: WRITEOFF at ``warehouse_from`` (-qty)
- INVENTORY_ADJUSTMENT: surplus is IN at ``warehouse_to``, shortage is WRITEOFF at ``warehouse_from``
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import NotFoundError, StateConflictError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.document import Document, DocumentItem, DocumentStatus, DocumentType
from backoffice.models.product import Product
from backoffice.models.stock import MovementType, StockMovement
from backoffice.models.supplier import Supplier
from backoffice.models.unit import Unit
from backoffice.models.warehouse import Warehouse
from backoffice.schemas.document import (
    DocumentCreate,
    DocumentFilter,
    DocumentItemCreate,
    DocumentUpdate,
)
from backoffice.schemas.pagination import paginate_query
from backoffice.services import numbering, stock_service

logger = logging.getLogger(__name__)


# ============== Validation ==============

def validate_header(
    doc_type: DocumentType,
    supplier_id: Optional[int],
    warehouse_from_id: Optional[int],
    warehouse_to_id: Optional[int],
) -> None:
    """Check the type-specific warehouse/supplier combination."""
    if doc_type == DocumentType.RECEIPT:
        if not supplier_id or not warehouse_to_id:
            raise ValidationError("A receipt requires a supplier and a destination warehouse")
    elif doc_type == DocumentType.TRANSFER:
        if not warehouse_from_id or not warehouse_to_id:
            raise ValidationError("A transfer requires source and destination warehouses")
        if warehouse_from_id == warehouse_to_id:
            raise ValidationError(
                "Source and destination warehouses must differ", field="warehouse_to_id"
            )
    elif doc_type == DocumentType.WRITEOFF:
        if not warehouse_from_id:
            raise ValidationError("A write-off requires a source warehouse", field="warehouse_from_id")
    elif doc_type == DocumentType.INVENTORY_ADJUSTMENT:
        if bool(warehouse_from_id) == bool(warehouse_to_id):
            raise ValidationError(
                "An inventory adjustment sets exactly one warehouse: "
                "destination for a surplus or source for a shortage"
            )


def _validate_references(
    db: Session,
    supplier_id: Optional[int],
    warehouse_from_id: Optional[int],
    warehouse_to_id: Optional[int],
) -> None:
    if supplier_id is not None:
        supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier or not supplier.is_active:
            raise NotFoundError("Supplier", supplier_id)
    for warehouse_id in (warehouse_from_id, warehouse_to_id):
        if warehouse_id is None:
            continue
        warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()
        if not warehouse or not warehouse.is_active:
            raise NotFoundError("Warehouse", warehouse_id)


def _get_document(db: Session, document_id: int) -> Document:
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise NotFoundError("Document", document_id)
    return document


def _require_draft(document: Document, action: str) -> None:
    if document.status != DocumentStatus.DRAFT:
        raise StateConflictError(
            f"Cannot {action} document {document.number}: status is {document.status.value}",
            current_state=document.status.value,
        )


# ============== Queries ==============

def get_document_by_id(db: Session, document_id: int) -> Document:
    document = (
        db.query(Document)
        .options(
            joinedload(Document.supplier),
            joinedload(Document.warehouse_from),
            joinedload(Document.warehouse_to),
            joinedload(Document.items).joinedload(DocumentItem.product),
            joinedload(Document.items).joinedload(DocumentItem.unit),
        )
        .filter(Document.id == document_id)
        .first()
    )
    if not document:
        raise NotFoundError("Document", document_id)
    return document


def get_documents(
    db: Session,
    filters: Optional[DocumentFilter] = None,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """Documents newest first. ``warehouse_id`` matches either side of the document."""
    filters = filters or DocumentFilter()
    query = db.query(Document).options(
        joinedload(Document.supplier),
        joinedload(Document.warehouse_from),
        joinedload(Document.warehouse_to),
    )

    if filters.type is not None:
        query = query.filter(Document.type == filters.type)
    if filters.status is not None:
        query = query.filter(Document.status == filters.status)
    if filters.warehouse_id is not None:
        query = query.filter(
            or_(
                Document.warehouse_from_id == filters.warehouse_id,
                Document.warehouse_to_id == filters.warehouse_id,
            )
        )
    if filters.supplier_id is not None:
        query = query.filter(Document.supplier_id == filters.supplier_id)
    if filters.date_from is not None:
        query = query.filter(Document.date >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(Document.date <= filters.date_to)

    query = query.order_by(Document.created_at.desc(), Document.id.desc())
    items, total = paginate_query(query, skip, limit)
    return paginated_response(items, total, skip, limit)


# ============== Draft editing ==============

def _build_item(db: Session, data: DocumentItemCreate) -> DocumentItem:
    product = db.query(Product).filter(Product.id == data.product_id).first()
    if not product:
        raise NotFoundError("Product", data.product_id)

    unit_id = data.unit_id or product.unit_id
    if data.unit_id is not None and not db.query(Unit.id).filter(Unit.id == data.unit_id).first():
        raise NotFoundError("Unit", data.unit_id)

    return DocumentItem(
        product_id=product.id,
        unit_id=unit_id,
        quantity=data.quantity,
        price=data.price,
        total=data.quantity * data.price,
        batch_number=data.batch_number,
        expiry_date=data.expiry_date,
    )


def _recalculate_total(db: Session, document: Document) -> None:
    db.flush()
    db.expire(document, ["items"])
    document.total_amount = sum(
        (Decimal(str(item.total)) for item in document.items), Decimal("0")
    )


def create_document(
    db: Session,
    data: DocumentCreate,
    user_id: Optional[int] = None,
    commit: bool = True,
) -> Document:
    """Create a DRAFT document with an optional initial list of items.

    With ``commit=False`` the document is only flushed so the call can take
    part in a larger transaction (inventory adjustments).
    """
    validate_header(data.type, data.supplier_id, data.warehouse_from_id, data.warehouse_to_id)
    _validate_references(db, data.supplier_id, data.warehouse_from_id, data.warehouse_to_id)

    try:
        document = Document(
            number=numbering.document_number(db, data.type),
            type=data.type,
            date=data.date,
            status=DocumentStatus.DRAFT,
            supplier_id=data.supplier_id,
            warehouse_from_id=data.warehouse_from_id,
            warehouse_to_id=data.warehouse_to_id,
            notes=data.notes,
            total_amount=Decimal("0"),
            created_by_id=user_id,
        )
        db.add(document)
        db.flush()

        for item_data in data.items:
            item = _build_item(db, item_data)
            item.document_id = document.id
            db.add(item)
        _recalculate_total(db, document)

        if commit:
            db.commit()
            db.refresh(document)
        else:
            db.flush()
    except Exception:
        if commit:
            db.rollback()
        raise

    logger.info("Created %s document %s", document.type.value, document.number)
    return document


def update_document(db: Session, document_id: int, data: DocumentUpdate) -> Document:
    """Update header fields of a DRAFT; the merged header is re-validated."""
    document = _get_document(db, document_id)
    _require_draft(document, "update")

    updates = data.model_dump(exclude_unset=True)
    merged = {
        "supplier_id": updates.get("supplier_id", document.supplier_id),
        "warehouse_from_id": updates.get("warehouse_from_id", document.warehouse_from_id),
        "warehouse_to_id": updates.get("warehouse_to_id", document.warehouse_to_id),
    }
    validate_header(document.type, **merged)
    _validate_references(db, **merged)

    for field, value in updates.items():
        setattr(document, field, value)

    db.commit()
    db.refresh(document)
    return document


def delete_document(db: Session, document_id: int) -> None:
    document = _get_document(db, document_id)
    _require_draft(document, "delete")

    number = document.number
    db.delete(document)
    db.commit()
    logger.info("Deleted draft document %s", number)


def add_document_item(db: Session, document_id: int, data: DocumentItemCreate) -> DocumentItem:
    document = _get_document(db, document_id)
    _require_draft(document, "add items to")

    try:
        item = _build_item(db, data)
        item.document_id = document.id
        db.add(item)
        _recalculate_total(db, document)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    return item


def remove_document_item(db: Session, document_id: int, item_id: int) -> Document:
    document = _get_document(db, document_id)
    _require_draft(document, "remove items from")

    item = (
        db.query(DocumentItem)
        .filter(DocumentItem.id == item_id, DocumentItem.document_id == document.id)
        .first()
    )
    if not item:
        raise NotFoundError("DocumentItem", item_id)

    try:
        db.delete(item)
        _recalculate_total(db, document)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(document)
    return document


# ============== Workflow transitions ==============

def _item_movements(db: Session, document: Document, item: DocumentItem) -> List[StockMovement]:
    quantity = Decimal(str(item.quantity))
    price = Decimal(str(item.price))

    def movement(warehouse_id, movement_type, signed_quantity, movement_price) -> StockMovement:
        return StockMovement(
            warehouse_id=warehouse_id,
            product_id=item.product_id,
            type=movement_type,
            quantity=signed_quantity,
            price=movement_price,
            batch_number=item.batch_number,
            expiry_date=item.expiry_date,
            document_id=document.id,
        )

    if document.type == DocumentType.RECEIPT:
        return [movement(document.warehouse_to_id, MovementType.IN, quantity, price)]

    if document.type == DocumentType.TRANSFER:
        # Goods keep their cost basis when moved without an explicit price
        in_price = price
        if in_price == 0:
            source = stock_service.get_balance(db, document.warehouse_from_id, item.product_id)
            in_price = Decimal(str(source.avg_price)) if source else Decimal("0")
        return [
            movement(document.warehouse_from_id, MovementType.TRANSFER_OUT, -quantity, price),
            movement(document.warehouse_to_id, MovementType.TRANSFER_IN, quantity, in_price),
        ]

    if document.type == DocumentType.WRITEOFF:
        return [movement(document.warehouse_from_id, MovementType.WRITEOFF, -quantity, price)]

    if document.type == DocumentType.INVENTORY_ADJUSTMENT:
        if document.warehouse_to_id:
            return [movement(document.warehouse_to_id, MovementType.IN, quantity, price)]
        return [movement(document.warehouse_from_id, MovementType.WRITEOFF, -quantity, price)]

    raise ValidationError(f"Unsupported document type: {document.type}")


def approve_document(db: Session, document_id: int, user_id: Optional[int] = None) -> Document:
    """Approve a DRAFT and post its movements to the stock ledger atomically."""
    document = _get_document(db, document_id)
    _require_draft(document, "approve")
    if not document.items:
        raise StateConflictError(
            f"Cannot approve document {document.number}: it has no items",
            current_state=document.status.value,
        )

    try:
        document.status = DocumentStatus.APPROVED
        document.approved_by_id = user_id
        document.approved_at = datetime.now(timezone.utc)

        movements_count = 0
        for item in document.items:
            for movement in _item_movements(db, document, item):
                stock_service.apply_movement(db, movement)
                movements_count += 1

        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to approve document %s", document_id, exc_info=True)
        raise

    db.refresh(document)
    logger.info(
        "Approved %s document %s: %d movements posted",
        document.type.value, document.number, movements_count,
    )
    return document


def cancel_document(db: Session, document_id: int) -> Document:
    """Cancel an APPROVED document: drop its movements and rebuild the touched balances."""
    document = _get_document(db, document_id)
    if document.status != DocumentStatus.APPROVED:
        raise StateConflictError(
            f"Cannot cancel document {document.number}: status is {document.status.value}",
            current_state=document.status.value,
        )

    try:
        movements = db.query(StockMovement).filter(StockMovement.document_id == document.id).all()
        affected = {(m.warehouse_id, m.product_id) for m in movements}
        for movement in movements:
            db.delete(movement)
        db.flush()

        for warehouse_id, product_id in sorted(affected):
            stock_service.recalculate_balance(db, warehouse_id, product_id)

        document.status = DocumentStatus.CANCELLED
        document.approved_by_id = None
        document.approved_at = None
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to cancel document %s", document_id, exc_info=True)
        raise

    db.refresh(document)
    logger.info(
        "Cancelled document %s: %d movements removed, %d balances recalculated",
        document.number, len(movements), len(affected),
    )
    return document
