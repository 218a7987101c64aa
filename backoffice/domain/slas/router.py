"""SLA contract router - internal CRM endpoints and public signing endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import client_ip, create_rate_limiter
from ...shared.responses import envelope
from .schemas import (
    AmendRequest,
    AttachmentCreate,
    RenderRequest,
    SignatureInviteCreate,
    SignatureInviteResponse,
    SlaContractCreate,
    SlaContractResponse,
    SlaContractUpdate,
)
from .service import SlaService
from .signing import OtpVerifyRequest, SigningService, SignRequest

router = APIRouter(prefix="/api/crm/slas", tags=["SLA Contracts"])
public_router = APIRouter(prefix="/api/public/contracts", tags=["Contract Signing"])

limit_signing = create_rate_limiter(limit=30, window_seconds=60, key_prefix="contract_signing")
limit_otp = create_rate_limiter(limit=10, window_seconds=300, key_prefix="contract_otp")


def get_sla_service(db: Session = Depends(get_db)) -> SlaService:
    """Dependency injection for SlaService"""
    return SlaService(db)


def get_signing_service(db: Session = Depends(get_db)) -> SigningService:
    return SigningService(db)


def serialize(contract) -> SlaContractResponse:
    return SlaContractResponse.model_validate(contract)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("")
async def list_contracts(
    accountId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    contracts = service.list_contracts(account_id=accountId, status=status, contract_type=type)
    return envelope({"items": [serialize(c) for c in contracts]})


@router.get("/by-account")
async def contracts_by_account(
    accountIds: Optional[str] = Query(None, description="Comma separated account ids"),
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope({"items": service.summarize_by_account(accountIds)})


@router.post("", status_code=201)
async def create_contract(
    data: SlaContractCreate,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(serialize(service.create_contract(data, current_user)))


@router.get("/{contract_id}")
async def get_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(serialize(service.get_contract(contract_id)))


@router.put("/{contract_id}")
async def update_contract(
    contract_id: int,
    data: SlaContractUpdate,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(serialize(service.update_contract(contract_id, data)))


@router.delete("/{contract_id}")
async def delete_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(service.delete_contract(contract_id))


# ============================================================================
# AMENDMENTS, RENDERING, DOCUMENTS
# ============================================================================


@router.post("/{contract_id}/amend", status_code=201)
async def amend_contract(
    contract_id: int,
    data: AmendRequest,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(serialize(service.amend_contract(contract_id, data, current_user)))


@router.get("/{contract_id}/versions")
async def list_versions(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope({"items": [serialize(c) for c in service.get_versions(contract_id)]})


@router.post("/{contract_id}/render")
async def render_contract(
    contract_id: int,
    data: Optional[RenderRequest] = None,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    template_key = data.templateKey if data else None
    return envelope(serialize(service.render_contract(contract_id, template_key)))


@router.get("/{contract_id}/pdf")
async def download_pdf(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    pdf_bytes = service.generate_pdf(contract_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="sla-{contract_id}.pdf"'},
    )


@router.post("/{contract_id}/attachments", status_code=201)
async def add_attachment(
    contract_id: int,
    data: AttachmentCreate,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(serialize(service.add_attachment(contract_id, data)))


@router.delete("/{contract_id}/attachments/{attachment_id}")
async def remove_attachment(
    contract_id: int,
    attachment_id: str,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    return envelope(serialize(service.remove_attachment(contract_id, attachment_id)))


# ============================================================================
# SIGNATURE INVITES
# ============================================================================


@router.post("/{contract_id}/signature-invites", status_code=201)
async def create_signature_invite(
    contract_id: int,
    data: SignatureInviteCreate,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    invite = await service.create_invite(contract_id, data, current_user)
    return envelope(SignatureInviteResponse.model_validate(invite))


@router.get("/{contract_id}/signature-invites")
async def list_signature_invites(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: SlaService = Depends(get_sla_service),
):
    invites = service.list_invites(contract_id)
    return envelope({"items": [SignatureInviteResponse.model_validate(i) for i in invites]})


# ============================================================================
# PUBLIC SIGNING (no auth)
# ============================================================================


@public_router.get("/sign/{token}", dependencies=[Depends(limit_signing)])
async def get_signing_page(token: str, service: SigningService = Depends(get_signing_service)):
    return envelope(service.get_signing_view(token))


@public_router.post("/sign/{token}/otp", dependencies=[Depends(limit_otp)])
async def verify_signing_code(
    token: str,
    data: OtpVerifyRequest,
    service: SigningService = Depends(get_signing_service),
):
    return envelope(service.verify_otp(token, data))


@public_router.post("/sign/{token}", dependencies=[Depends(limit_signing)])
async def sign_contract(
    token: str,
    data: SignRequest,
    request: Request,
    service: SigningService = Depends(get_signing_service),
):
    result = await service.sign(
        token,
        data,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return envelope(result)
