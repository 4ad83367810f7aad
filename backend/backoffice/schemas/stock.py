"""Stock ledger query schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from backoffice.models.stock import MovementType


class MovementFilter(BaseModel):
    """Filters for the movement journal. All fields optional."""

    warehouse_id: Optional[int] = None
    product_id: Optional[int] = None
    type: Optional[MovementType] = None
    document_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
