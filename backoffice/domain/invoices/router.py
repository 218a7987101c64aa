"""Invoice router - FastAPI endpoints for invoices"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.responses import envelope
from .schemas import (
    DunningRequest,
    InvoiceCreate,
    InvoiceResponse,
    InvoiceUpdate,
    PaymentCreate,
    RefundCreate,
    SendInvoiceRequest,
    SubscribeRequest,
)
from .service import InvoiceService

router = APIRouter(prefix="/api/crm/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("")
async def list_invoices(
    q: Optional[str] = Query(None),
    sort: str = Query("updatedAt"),
    dir: Literal["asc", "desc"] = Query("desc"),
    accountId: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoices = service.list_invoices(q=q, sort=sort, direction=dir, account_id=accountId)
    return envelope({"items": [InvoiceResponse.model_validate(i) for i in invoices]})


@router.post("", status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.create_invoice(data, current_user)))


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.get_invoice(invoice_id)))


@router.put("/{invoice_id}")
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.update_invoice(invoice_id, data, current_user)))


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(service.delete_invoice(invoice_id))


@router.get("/{invoice_id}/history")
async def get_invoice_history(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(service.get_history(invoice_id))


# ============================================================================
# PAYMENTS, REFUNDS, SUBSCRIPTIONS, DUNNING
# ============================================================================


@router.post("/{invoice_id}/payments")
async def record_payment(
    invoice_id: int,
    data: PaymentCreate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.record_payment(invoice_id, data, current_user)))


@router.post("/{invoice_id}/refunds")
async def record_refund(
    invoice_id: int,
    data: RefundCreate,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.record_refund(invoice_id, data, current_user)))


@router.post("/{invoice_id}/subscribe")
async def subscribe(
    invoice_id: int,
    data: SubscribeRequest,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.subscribe(invoice_id, data, current_user)))


@router.post("/{invoice_id}/cancel-subscription")
async def cancel_subscription(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.cancel_subscription(invoice_id, current_user)))


@router.post("/{invoice_id}/dunning")
async def set_dunning_state(
    invoice_id: int,
    data: DunningRequest,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return envelope(InvoiceResponse.model_validate(service.set_dunning_state(invoice_id, data, current_user)))


@router.post("/{invoice_id}/send")
async def send_invoice(
    invoice_id: int,
    data: Optional[SendInvoiceRequest] = None,
    current_user: User = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = await service.send_invoice(invoice_id, data or SendInvoiceRequest(), current_user)
    return envelope(InvoiceResponse.model_validate(invoice))
