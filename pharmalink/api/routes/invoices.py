from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db
from pharmalink.db.models.user import User
from pharmalink.schemas.invoice import InvoiceListResponse, InvoiceResponse
from pharmalink.services import invoice_service

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.get("", status_code=status.HTTP_200_OK, response_model=InvoiceListResponse)
def list_invoices(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    invoices = invoice_service.get_user_invoices(db, user.id, limit=limit)
    return InvoiceListResponse(
        invoices=[InvoiceResponse.model_validate(invoice) for invoice in invoices],
        total=len(invoices),
    )


@router.get("/{invoice_id}", status_code=status.HTTP_200_OK, response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    return InvoiceResponse.model_validate(invoice_service.get_invoice(db, user.id, invoice_id))
