"""Contact repository - Database operations for contacts"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Appointment, Contact, ContactHistory


class ContactRepository:
    """Repository for contact database operations"""

    @staticmethod
    def _search_filter(query, q: Optional[str]):
        if q:
            pattern = f"%{q.strip().lower()}%"
            query = query.filter(
                or_(func.lower(Contact.name).like(pattern), func.lower(Contact.email).like(pattern))
            )
        return query

    @staticmethod
    def list_page(db: Session, q: Optional[str], page: int, limit: int) -> tuple[list[Contact], int]:
        query = ContactRepository._search_filter(db.query(Contact), q)
        total = query.count()
        items = query.order_by(Contact.id.asc()).offset(page * limit).limit(limit).all()
        return items, total

    @staticmethod
    def list_after(db: Session, q: Optional[str], cursor: int, limit: int) -> list[Contact]:
        """Keyset page: contacts with id greater than the cursor"""
        query = ContactRepository._search_filter(db.query(Contact), q)
        return query.filter(Contact.id > cursor).order_by(Contact.id.asc()).limit(limit).all()

    @staticmethod
    def get_by_id(db: Session, contact_id: int) -> Optional[Contact]:
        return db.query(Contact).filter(Contact.id == contact_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Contact]:
        return (
            db.query(Contact)
            .filter(func.lower(Contact.email) == email.strip().lower())
            .order_by(Contact.id.asc())
            .first()
        )

    @staticmethod
    def create(db: Session, **contact_data) -> Contact:
        contact = Contact(**contact_data)
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def update(db: Session, contact: Contact, **updates) -> Contact:
        for key, value in updates.items():
            setattr(contact, key, value)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def delete(db: Session, contact: Contact) -> None:
        db.delete(contact)
        db.commit()

    @staticmethod
    def add_history(
        db: Session,
        contact_id: int,
        event_type: str,
        description: str,
        user_id: Optional[int] = None,
        meta: Optional[dict] = None,
    ) -> ContactHistory:
        entry = ContactHistory(
            contact_id=contact_id,
            event_type=event_type,
            description=description,
            user_id=user_id,
            meta=meta,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def get_history(db: Session, contact_id: int) -> list[ContactHistory]:
        return (
            db.query(ContactHistory)
            .filter(ContactHistory.contact_id == contact_id)
            .order_by(ContactHistory.id.desc())
            .all()
        )

    @staticmethod
    def get_appointments(db: Session, contact_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.contact_id == contact_id)
            .order_by(Appointment.starts_at.desc())
            .all()
        )
