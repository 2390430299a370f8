import uuid
from sqlalchemy import (Column, DateTime, ForeignKey, Numeric, String, Text, Uuid, func)

from app.db.base import Base
from app.db.models.order import utcnow


class Invoice(Base):
    __tablename__ = 'invoices'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    # At most one invoice per order
    order_id = Column(Uuid(as_uuid=True), ForeignKey('orders.id'), nullable=False, unique=True)
    invoice_code = Column(String(120), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    status = Column(String(20), nullable=False)
    issue_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    document_ref = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
