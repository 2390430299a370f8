import uuid
from datetime import datetime, timezone
from sqlalchemy import (CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, UniqueConstraint, Uuid, func)

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = 'orders'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    order_code = Column(String(100), nullable=False)

    customer_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False, index=True)
    address = Column(Text, nullable=True)
    address_detail = Column(Text, nullable=True)
    ward = Column(String(255), nullable=True)
    district = Column(String(255), nullable=True)
    province = Column(String(255), nullable=True)
    gender = Column(String(10), nullable=True)
    birth_year = Column(Integer, nullable=True)

    product_id = Column(Uuid(as_uuid=True), nullable=True)
    product_name = Column(Text, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    discount_amount = Column(Numeric(14, 2), nullable=True)
    shipping_fee = Column(Numeric(14, 2), nullable=True)
    payment_method = Column(String(30), nullable=False, default='COD')
    channel = Column(String(100), nullable=True)
    source = Column(String(100), nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=True)

    risk_score = Column(Integer, nullable=True)
    risk_level = Column(String(10), nullable=False, default='none')
    status = Column(String(50), nullable=False, index=True)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    confirmation_sent_at = Column(DateTime(timezone=True), nullable=True)
    customer_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    reject_reason = Column(Text, nullable=True)
    verification_reason = Column(Text, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'order_code', name='uq_user_order_code'),
        CheckConstraint(
            'NOT (cancelled_at IS NOT NULL AND completed_at IS NOT NULL)',
            name='ck_orders_not_cancelled_and_completed',
        ),
    )
