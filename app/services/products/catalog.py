import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import product as product_crud
from app.db.models.product import Product
from app.utils.text import normalize_text

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Read and extend a user's active product catalog."""

    @staticmethod
    async def active_by_name(db: AsyncSession, user_id: UUID) -> Dict[str, Product]:
        """Active products keyed by normalized name; the first of equal names wins."""
        catalog: Dict[str, Product] = {}
        for product in await product_crud.get_active_products(db, user_id):
            catalog.setdefault(normalize_text(product.name), product)
        return catalog

    @staticmethod
    async def active_by_id(db: AsyncSession, user_id: UUID, product_ids: Sequence[UUID]) -> Dict[UUID, Product]:
        products = await product_crud.get_products_by_ids(db, user_id, product_ids)
        return {product.id: product for product in products if product.status == "active"}

    @staticmethod
    async def bulk_create(
        db: AsyncSession,
        user_id: UUID,
        names: Sequence[str],
        price: Optional[Decimal] = None,
    ) -> List[Product]:
        """Create active products for names not yet in the catalog.

        Names are compared in normalized form, so re-submitting a list is safe.
        """
        existing = await ProductCatalog.active_by_name(db, user_id)
        to_create: List[str] = []
        seen = set(existing)
        for name in names:
            cleaned = (name or "").strip()
            key = normalize_text(cleaned)
            if not key or key in seen:
                continue
            seen.add(key)
            to_create.append(cleaned)

        if not to_create:
            return []
        products = await product_crud.bulk_create_products(db, user_id, to_create, price)
        logger.info(f"Created {len(products)} product(s) for user {user_id}")
        return products
