from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.db.base import get_db
from app.schemas.invoice import Invoice, InvoiceDocument
from app.services.exceptions import InvoiceNotFoundError, OrderNotFoundError
from app.services.invoices.documents import InvoiceDocumentService
from app.services.orders.order_service import OrderService

router = APIRouter()

def get_document_service() -> InvoiceDocumentService:
    return InvoiceDocumentService()

@router.get("/invoices/{order_id}", response_model=Invoice)
async def get_invoice(
    order_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        invoice = await OrderService.get_invoice(db, current_user.id, order_id)
        if invoice is None:
            raise InvoiceNotFoundError(order_id)
    except (OrderNotFoundError, InvoiceNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return invoice

@router.get("/invoices/{order_id}/document", response_model=InvoiceDocument)
async def get_invoice_document(
    order_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    documents: InvoiceDocumentService = Depends(get_document_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Return the rendered invoice for an order, re-rendering it if the cached copy is stale or gone.
    """
    try:
        order = await OrderService.get_order(db, current_user.id, order_id)
        invoice = await OrderService.get_invoice(db, current_user.id, order_id)
        if invoice is None:
            raise InvoiceNotFoundError(order_id)
    except (OrderNotFoundError, InvoiceNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    ref = await documents.get_document(db, invoice, order)
    content = await documents.read_document(ref)
    return InvoiceDocument(
        invoice_code=invoice.invoice_code,
        document_ref=ref,
        content=content.decode("utf-8"),
    )
