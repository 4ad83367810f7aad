"""Suppliers."""

import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.core.responses import paginated_response
from backoffice.models.document import Document
from backoffice.models.supplier import Supplier
from backoffice.schemas.pagination import paginate_query
from backoffice.schemas.supplier import SupplierCreate, SupplierUpdate

logger = logging.getLogger(__name__)


def get_supplier_by_id(db: Session, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def get_suppliers(
    db: Session,
    search: Optional[str] = None,
    include_inactive: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> dict:
    query = db.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.active())
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Supplier.name.ilike(pattern),
                Supplier.inn.ilike(pattern),
                Supplier.contact_person.ilike(pattern),
            )
        )

    items, total = paginate_query(query.order_by(Supplier.name, Supplier.id), skip, limit)
    return paginated_response(items, total, skip, limit)


def _check_inn_unique(db: Session, inn: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not inn:
        return
    query = db.query(Supplier.id).filter(Supplier.inn == inn)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise ValidationError(f"Supplier with tax id '{inn}' already exists", field="inn")


def create_supplier(db: Session, data: SupplierCreate) -> Supplier:
    _check_inn_unique(db, data.inn)

    supplier = Supplier(**data.model_dump())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)

    logger.info("Created supplier %s (%s)", supplier.id, supplier.name)
    return supplier


def update_supplier(db: Session, supplier_id: int, data: SupplierUpdate) -> Supplier:
    supplier = get_supplier_by_id(db, supplier_id)
    updates = data.model_dump(exclude_unset=True)
    _check_inn_unique(db, updates.get("inn"), exclude_id=supplier.id)

    for field, value in updates.items():
        setattr(supplier, field, value)

    db.commit()
    db.refresh(supplier)
    return supplier


def deactivate_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = get_supplier_by_id(db, supplier_id)
    supplier.deactivate()
    db.commit()
    logger.info("Deactivated supplier %s", supplier.id)
    return supplier


def get_supplier_documents(db: Session, supplier_id: int, skip: int = 0, limit: int = 20) -> dict:
    """Documents (receipts) of the supplier, newest first."""
    get_supplier_by_id(db, supplier_id)
    query = (
        db.query(Document)
        .filter(Document.supplier_id == supplier_id)
        .order_by(Document.date.desc(), Document.id.desc())
    )
    items, total = paginate_query(query, skip, limit)
    return paginated_response(items, total, skip, limit)
