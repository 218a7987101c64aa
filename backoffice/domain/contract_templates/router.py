"""Contract template router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.responses import envelope
from .schemas import ContractTemplateCreate, ContractTemplateResponse, ContractTemplateUpdate
from .service import ContractTemplateService

router = APIRouter(prefix="/api/crm/contract-templates", tags=["Contract Templates"])


def get_template_service(db: Session = Depends(get_db)) -> ContractTemplateService:
    return ContractTemplateService(db)


@router.get("")
async def list_templates(
    q: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ContractTemplateService = Depends(get_template_service),
):
    templates = service.list_templates(q)
    return envelope({"items": [ContractTemplateResponse.model_validate(t) for t in templates]})


@router.post("", status_code=201)
async def create_template(
    data: ContractTemplateCreate,
    current_user: User = Depends(get_current_user),
    service: ContractTemplateService = Depends(get_template_service),
):
    return envelope(ContractTemplateResponse.model_validate(service.create_template(data)))


@router.get("/{template_id}")
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: ContractTemplateService = Depends(get_template_service),
):
    return envelope(ContractTemplateResponse.model_validate(service.get_template(template_id)))


@router.put("/{template_id}")
async def update_template(
    template_id: int,
    data: ContractTemplateUpdate,
    current_user: User = Depends(get_current_user),
    service: ContractTemplateService = Depends(get_template_service),
):
    return envelope(ContractTemplateResponse.model_validate(service.update_template(template_id, data)))


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: ContractTemplateService = Depends(get_template_service),
):
    return envelope(service.delete_template(template_id))
