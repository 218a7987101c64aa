"""Invoice repository - Database operations for invoices"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Invoice, InvoiceHistory

SORT_COLUMNS = {
    "updatedAt": Invoice.updated_at,
    "createdAt": Invoice.created_at,
    "invoiceNumber": Invoice.invoice_number,
    "total": Invoice.total,
    "status": Invoice.status,
    "dueDate": Invoice.due_date,
}

MAX_LIST_SIZE = 200


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def list_invoices(
        db: Session,
        q: Optional[str],
        sort: str,
        descending: bool,
        account_id: Optional[int] = None,
    ) -> list[Invoice]:
        query = db.query(Invoice)
        if q:
            pattern = f"%{q.strip().lower()}%"
            query = query.filter(or_(func.lower(Invoice.title).like(pattern), func.lower(Invoice.status).like(pattern)))
        if account_id is not None:
            query = query.filter(Invoice.account_id == account_id)
        column = SORT_COLUMNS.get(sort, Invoice.updated_at)
        order = column.desc() if descending else column.asc()
        return query.order_by(order, Invoice.id.desc()).limit(MAX_LIST_SIZE).all()

    @staticmethod
    def get_by_id(db: Session, invoice_id: int) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.id == invoice_id).first()

    @staticmethod
    def create(db: Session, **invoice_data) -> Invoice:
        invoice = Invoice(**invoice_data)
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def save(db: Session, invoice: Invoice) -> Invoice:
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def delete(db: Session, invoice: Invoice) -> None:
        db.delete(invoice)
        db.commit()

    @staticmethod
    def add_history(
        db: Session,
        invoice_id: int,
        event_type: str,
        description: str,
        user_id: Optional[int] = None,
        meta: Optional[dict] = None,
    ) -> InvoiceHistory:
        entry = InvoiceHistory(
            invoice_id=invoice_id,
            event_type=event_type,
            description=description,
            user_id=user_id,
            meta=meta,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def get_history(db: Session, invoice_id: int) -> list[InvoiceHistory]:
        return (
            db.query(InvoiceHistory)
            .filter(InvoiceHistory.invoice_id == invoice_id)
            .order_by(InvoiceHistory.id.desc())
            .all()
        )
