from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal
import uuid

class Invoice(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    invoice_code: str
    amount: Decimal
    status: str
    issue_date: datetime
    paid_at: Optional[datetime] = None
    document_ref: Optional[str] = None

    model_config = {
        "from_attributes": True
    }

class InvoiceDocument(BaseModel):
    invoice_code: str
    document_ref: str
    content: str
