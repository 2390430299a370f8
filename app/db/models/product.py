import uuid
from sqlalchemy import (Column, DateTime, Numeric, String, Text, Uuid, func)

from app.db.base import Base
from app.db.models.order import utcnow


class Product(Base):
    __tablename__ = 'products'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default='active')
    price = Column(Numeric(14, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
