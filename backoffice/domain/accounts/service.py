"""Account service - Business logic for account operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Account
from ..sequences import ACCOUNT_NUMBER_START, next_sequence
from .repository import AccountRepository
from .schemas import AccountCreate, AccountUpdate

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

FIELD_COLUMNS = {
    "name": "name",
    "companyName": "company_name",
    "primaryContactName": "primary_contact_name",
    "primaryContactEmail": "primary_contact_email",
    "primaryContactPhone": "primary_contact_phone",
}


class AccountService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository()

    def list_accounts(
        self,
        q: Optional[str] = None,
        limit: Optional[int] = None,
        sort: str = "name",
        direction: str = "asc",
    ) -> list[Account]:
        size = max(1, min(MAX_LIMIT, limit or DEFAULT_LIMIT))
        return self.repo.list_accounts(self.db, q, sort, direction == "desc", size)

    def get_account(self, account_id: int) -> Account:
        account = self.repo.get_by_id(self.db, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="not_found")
        return account

    def resolve_account(self, account_id: Optional[int], account_number: Optional[int]) -> Account:
        """Look an account up by id or by account number (invoices accept either)"""
        if account_id is None and account_number is None:
            raise HTTPException(status_code=400, detail="missing_account")
        account = None
        if account_id is not None:
            account = self.repo.get_by_id(self.db, account_id)
        elif account_number is not None:
            account = self.repo.get_by_number(self.db, account_number)
        if not account:
            raise HTTPException(status_code=400, detail="account_not_found")
        return account

    def create_account(self, data: AccountCreate) -> Account:
        account_number = next_sequence(
            self.db, "accountNumber", ACCOUNT_NUMBER_START, floor_column=Account.account_number
        )
        account = self.repo.create(
            self.db,
            account_number=account_number,
            name=data.name.strip(),
            company_name=data.companyName,
            primary_contact_name=data.primaryContactName,
            primary_contact_email=data.primaryContactEmail,
            primary_contact_phone=data.primaryContactPhone,
        )
        logger.info(f"🏢 Account {account.account_number} created")
        return account

    def update_account(self, account_id: int, data: AccountUpdate) -> Account:
        account = self.get_account(account_id)
        updates = {
            FIELD_COLUMNS[field]: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if not (field == "name" and value is None)
        }
        return self.repo.update(self.db, account, **updates)

    def delete_account(self, account_id: int) -> dict:
        account = self.get_account(account_id)
        if self.repo.has_dependents(self.db, account_id):
            raise HTTPException(status_code=409, detail="account_in_use")
        self.repo.delete(self.db, account)
        return {"ok": True}
