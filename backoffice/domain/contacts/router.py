"""Contact router - FastAPI endpoints for contact operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.responses import envelope
from .schemas import ContactCreate, ContactResponse, ContactUpdate
from .service import ContactService

router = APIRouter(prefix="/api/crm/contacts", tags=["Contacts"])


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService(db)


@router.get("")
async def list_contacts(
    q: Optional[str] = Query(None, description="Search name or email"),
    page: int = Query(0, ge=0),
    limit: Optional[int] = Query(None),
    cursor: Optional[int] = Query(None, description="Last seen contact id"),
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return envelope(service.list_contacts(q=q, page=page, limit=limit, cursor=cursor))


@router.post("", status_code=201)
async def create_contact(
    data: ContactCreate,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    contact = service.create_contact(data, current_user)
    return envelope(ContactResponse.model_validate(contact))


@router.get("/{contact_id}")
async def get_contact(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return envelope(ContactResponse.model_validate(service.get_contact(contact_id)))


@router.put("/{contact_id}")
async def update_contact(
    contact_id: int,
    data: ContactUpdate,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    contact = service.update_contact(contact_id, data, current_user)
    return envelope(ContactResponse.model_validate(contact))


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return envelope(service.delete_contact(contact_id))


@router.get("/{contact_id}/history")
async def get_contact_history(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return envelope(service.get_history(contact_id))
