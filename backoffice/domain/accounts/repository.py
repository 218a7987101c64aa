"""Account repository - Database operations for accounts"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Account, Invoice, SlaContract

SORT_COLUMNS = {
    "name": Account.name,
    "accountNumber": Account.account_number,
    "createdAt": Account.created_at,
}


class AccountRepository:
    """Repository for account database operations"""

    @staticmethod
    def list_accounts(db: Session, q: Optional[str], sort: str, descending: bool, limit: int) -> list[Account]:
        query = db.query(Account)
        if q:
            pattern = f"%{q.strip().lower()}%"
            query = query.filter(
                or_(func.lower(Account.name).like(pattern), func.lower(Account.company_name).like(pattern))
            )
        column = SORT_COLUMNS.get(sort, Account.name)
        order = column.desc() if descending else column.asc()
        return query.order_by(order, Account.id.asc()).limit(limit).all()

    @staticmethod
    def get_by_id(db: Session, account_id: int) -> Optional[Account]:
        return db.query(Account).filter(Account.id == account_id).first()

    @staticmethod
    def get_by_number(db: Session, account_number: int) -> Optional[Account]:
        return db.query(Account).filter(Account.account_number == account_number).first()

    @staticmethod
    def create(db: Session, **account_data) -> Account:
        account = Account(**account_data)
        db.add(account)
        db.commit()
        db.refresh(account)
        return account

    @staticmethod
    def update(db: Session, account: Account, **updates) -> Account:
        for key, value in updates.items():
            setattr(account, key, value)
        db.commit()
        db.refresh(account)
        return account

    @staticmethod
    def has_dependents(db: Session, account_id: int) -> bool:
        """Invoices and SLA contracts keep a hard reference to their account"""
        invoices = db.query(Invoice.id).filter(Invoice.account_id == account_id).first()
        contracts = db.query(SlaContract.id).filter(SlaContract.account_id == account_id).first()
        return bool(invoices or contracts)

    @staticmethod
    def delete(db: Session, account: Account) -> None:
        db.delete(account)
        db.commit()
