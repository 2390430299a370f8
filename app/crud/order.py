from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.order import Order


async def get_order(db: AsyncSession, user_id: UUID, order_id: UUID) -> Optional[Order]:
    """Fetch one order owned by ``user_id``, always reading the current row."""
    stmt = (
        select(Order)
        .where(Order.id == order_id, Order.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_order_by_code(db: AsyncSession, user_id: UUID, order_code: str) -> Optional[Order]:
    stmt = select(Order).where(Order.user_id == user_id, Order.order_code == order_code)
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_orders(
    db: AsyncSession,
    user_id: UUID,
    status: Optional[str] = None,
    payment_method: Optional[str] = None,
    risk_level: Optional[str] = None,
    search: Optional[str] = None,
    offset: int = 0,
    limit: int = 20,
) -> Tuple[List[Order], int]:
    """Return one page of orders (newest first) and the total matching count."""
    conditions = [Order.user_id == user_id]
    if status:
        conditions.append(Order.status == status)
    if payment_method:
        conditions.append(Order.payment_method == payment_method)
    if risk_level:
        conditions.append(Order.risk_level == risk_level)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(
            Order.order_code.ilike(pattern),
            Order.customer_name.ilike(pattern),
            Order.phone.ilike(pattern),
            Order.product_name.ilike(pattern),
        ))

    count_stmt = select(func.count()).select_from(Order).where(*conditions)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.order_code)
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def find_existing_order_codes(db: AsyncSession, user_id: UUID, codes: Sequence[str]) -> List[str]:
    """Return which of ``codes`` already exist for the user.

    Issues a single ``IN`` query; callers are responsible for chunking.
    """
    if not codes:
        return []
    stmt = select(Order.order_code).where(Order.user_id == user_id, Order.order_code.in_(list(codes)))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_statuses_by_phone(db: AsyncSession, user_id: UUID, phone: str) -> List[str]:
    stmt = select(Order.status).where(Order.user_id == user_id, Order.phone == phone)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def insert_order(db: AsyncSession, values: Dict[str, Any]) -> Order:
    """Insert a new order row and commit it."""
    db_order = Order(**values)
    db.add(db_order)
    await db.commit()
    await db.refresh(db_order)
    return db_order


async def update_status_if(
    db: AsyncSession,
    user_id: UUID,
    order_id: UUID,
    allowed_from: Sequence[str],
    values: Dict[str, Any],
) -> int:
    """Conditionally update an order only while its status is in ``allowed_from``.

    The status check and the write happen in one ``UPDATE ... WHERE status IN``
    statement. Returns the number of rows changed (0 or 1).
    """
    stmt = (
        update(Order)
        .where(
            Order.id == order_id,
            Order.user_id == user_id,
            Order.status.in_(list(allowed_from)),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount


async def update_order(db: AsyncSession, db_order: Order, values: Dict[str, Any]) -> Order:
    for field, value in values.items():
        setattr(db_order, field, value)
    await db.commit()
    await db.refresh(db_order)
    return db_order


async def delete_orders(db: AsyncSession, user_id: UUID, order_ids: Sequence[UUID]) -> int:
    """Delete the user's orders among ``order_ids`` without committing."""
    if not order_ids:
        return 0
    stmt = (
        delete(Order)
        .where(Order.user_id == user_id, Order.id.in_(list(order_ids)))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def get_owned_order_ids(db: AsyncSession, user_id: UUID, order_ids: Sequence[UUID]) -> List[UUID]:
    if not order_ids:
        return []
    stmt = select(Order.id).where(Order.user_id == user_id, Order.id.in_(list(order_ids)))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def distinct_values(db: AsyncSession, user_id: UUID, column_name: str) -> List[Optional[str]]:
    column = getattr(Order, column_name)
    stmt = select(column).where(Order.user_id == user_id).distinct()
    result = await db.execute(stmt)
    return list(result.scalars().all())
