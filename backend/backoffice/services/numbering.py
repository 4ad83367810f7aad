"""Sequential human-readable numbers for documents, inventories and sales."""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.models.document import Document, DocumentType
from backoffice.models.inventory import Inventory
from backoffice.models.sales import Sale

DOCUMENT_PREFIXES = {
    DocumentType.RECEIPT: "RC",
    DocumentType.TRANSFER: "TR",
    DocumentType.WRITEOFF: "WO",
    DocumentType.INVENTORY_ADJUSTMENT: "AJ",
}


def business_date() -> date:
    """Today's date in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.timezone)).date()


def next_number(db: Session, model, prefix: str, width: int = 4) -> str:
    """Return ``prefix`` followed by the next zero-padded sequence for ``model.number``.

    The highest existing number starting with ``prefix`` determines the
    sequence, so a new prefix (new month, new year) starts again at 1.
    Suffixes are compared by length first, so ``10000`` follows ``9999``.
    """
    last = (
        db.query(model.number)
        .filter(model.number.startswith(prefix))
        .order_by(func.length(model.number).desc(), model.number.desc())
        .first()
    )
    sequence = 1
    if last:
        suffix = last[0][len(prefix):]
        if suffix.isdigit():
            sequence = int(suffix) + 1
    return f"{prefix}{sequence:0{width}d}"


def document_number(db: Session, doc_type: DocumentType, today: Optional[date] = None) -> str:
    """RC-2024030001 style: type prefix, year and month, then a monthly sequence."""
    today = today or business_date()
    return next_number(db, Document, f"{DOCUMENT_PREFIXES[doc_type]}-{today:%Y%m}")


def inventory_number(db: Session, today: Optional[date] = None) -> str:
    today = today or business_date()
    return next_number(db, Inventory, f"INV-{today:%Y}-")


def sale_number(db: Session, today: Optional[date] = None) -> str:
    today = today or business_date()
    return next_number(db, Sale, f"S{today:%Y%m%d}")
