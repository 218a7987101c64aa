"""Account router - FastAPI endpoints for account operations"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.responses import envelope
from .schemas import AccountCreate, AccountResponse, AccountUpdate
from .service import AccountService

router = APIRouter(prefix="/api/crm/accounts", tags=["Accounts"])


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db)


@router.get("")
async def list_accounts(
    q: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    sort: str = Query("name"),
    dir: Literal["asc", "desc"] = Query("asc"),
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    accounts = service.list_accounts(q=q, limit=limit, sort=sort, direction=dir)
    return envelope({"items": [AccountResponse.model_validate(a) for a in accounts]})


@router.post("", status_code=201)
async def create_account(
    data: AccountCreate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return envelope(AccountResponse.model_validate(service.create_account(data)))


@router.get("/{account_id}")
async def get_account(
    account_id: int,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return envelope(AccountResponse.model_validate(service.get_account(account_id)))


@router.put("/{account_id}")
async def update_account(
    account_id: int,
    data: AccountUpdate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return envelope(AccountResponse.model_validate(service.update_account(account_id, data)))


@router.delete("/{account_id}")
async def delete_account(
    account_id: int,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return envelope(service.delete_account(account_id))
