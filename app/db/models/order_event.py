from sqlalchemy import (Column, DateTime, Integer, String, Uuid, JSON)
from sqlalchemy.dialects.postgresql import JSONB

from app.db.base import Base
from app.db.models.order import utcnow


class OrderEvent(Base):
    __tablename__ = 'order_events'

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: the timeline outlives the order row
    order_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    payload = Column(JSON().with_variant(JSONB(), 'postgresql'), nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
