from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.crud import product as product_crud
from app.db.base import get_db
from app.schemas.product import Product, ProductBulkCreate
from app.services.products.catalog import ProductCatalog

router = APIRouter()

@router.get("/products", response_model=List[Product])
async def list_products(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List the active product catalog.
    """
    return await product_crud.get_active_products(db, current_user.id)

@router.post("/products/bulk", response_model=List[Product])
async def bulk_create_products(
    request: ProductBulkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create the products an import reported missing. Names already in the catalog are skipped.
    """
    return await ProductCatalog.bulk_create(db, current_user.id, request.names, request.price)
