from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.product import Product


async def get_active_products(db: AsyncSession, user_id: UUID) -> List[Product]:
    """Read the user's active catalog."""
    stmt = select(Product).where(Product.user_id == user_id, Product.status == 'active').order_by(Product.name)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_products_by_ids(db: AsyncSession, user_id: UUID, product_ids: Sequence[UUID]) -> List[Product]:
    if not product_ids:
        return []
    stmt = select(Product).where(Product.user_id == user_id, Product.id.in_(list(product_ids)))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def bulk_create_products(
    db: AsyncSession,
    user_id: UUID,
    names: Sequence[str],
    price: Optional[Decimal] = None,
) -> List[Product]:
    """Create one active product per name and commit them together."""
    products = [Product(user_id=user_id, name=name, status='active', price=price) for name in names]
    db.add_all(products)
    await db.commit()
    for product in products:
        await db.refresh(product)
    return products
