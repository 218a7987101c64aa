"""Contact service - Business logic for contact operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Contact, User
from ...shared.dates import isoformat_utc
from ..accounts.service import AccountService
from .repository import ContactRepository
from .schemas import ContactCreate, ContactHistoryResponse, ContactResponse, ContactUpdate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100

# API field -> (column, label used in history descriptions)
TRACKED_FIELDS = {
    "name": ("name", "Name"),
    "company": ("company", "Company"),
    "email": ("email", "Email"),
    "mobilePhone": ("mobile_phone", "Mobile phone"),
    "officePhone": ("office_phone", "Office phone"),
    "isPrimary": ("is_primary", "Primary contact status"),
    "primaryPhone": ("primary_phone", "Primary phone"),
    "accountId": ("account_id", "Account"),
}


def clamp_limit(limit: Optional[int]) -> int:
    if not limit:
        return DEFAULT_PAGE_SIZE
    return max(1, min(MAX_PAGE_SIZE, limit))


class ContactService:
    """Service layer for contact business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContactRepository()

    def list_contacts(
        self,
        q: Optional[str] = None,
        page: int = 0,
        limit: Optional[int] = None,
        cursor: Optional[int] = None,
    ) -> dict:
        """Page-based listing, or keyset listing when a cursor is given"""
        size = clamp_limit(limit)

        if cursor is not None:
            items = self.repo.list_after(self.db, q, cursor, size)
            next_cursor = items[-1].id if len(items) == size else None
            return {
                "items": [ContactResponse.model_validate(c) for c in items],
                "nextCursor": next_cursor,
            }

        page = max(0, page or 0)
        items, total = self.repo.list_page(self.db, q, page, size)
        return {
            "items": [ContactResponse.model_validate(c) for c in items],
            "page": page,
            "pageSize": size,
            "total": total,
        }

    def get_contact(self, contact_id: int) -> Contact:
        contact = self.repo.get_by_id(self.db, contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="not_found")
        return contact

    def create_contact(self, data: ContactCreate, user: Optional[User] = None, source: Optional[str] = None) -> Contact:
        if data.accountId is not None:
            AccountService(self.db).resolve_account(data.accountId, None)
        contact = self.repo.create(
            self.db,
            name=data.name.strip(),
            company=data.company,
            email=data.email.lower() if data.email else None,
            mobile_phone=data.mobilePhone,
            office_phone=data.officePhone,
            is_primary=bool(data.isPrimary),
            primary_phone=data.primaryPhone,
            account_id=data.accountId,
            source=source,
        )
        self._record(contact.id, "created", f"Contact created: {contact.name}", user)
        logger.info(f"👤 Contact {contact.id} created")
        return contact

    def update_contact(self, contact_id: int, data: ContactUpdate, user: Optional[User] = None) -> Contact:
        contact = self.get_contact(contact_id)
        changes = data.model_dump(exclude_unset=True)
        if "email" in changes and changes["email"]:
            changes["email"] = changes["email"].lower()
        if changes.get("accountId") is not None:
            AccountService(self.db).resolve_account(changes["accountId"], None)

        updates = {}
        tracked = []
        for field, value in changes.items():
            column, label = TRACKED_FIELDS[field]
            if column == "name" and value is None:
                continue
            old_value = getattr(contact, column)
            if value != old_value:
                tracked.append((field, label, old_value, value))
            updates[column] = value

        contact = self.repo.update(self.db, contact, **updates)

        for field, label, old_value, new_value in tracked:
            self._record(
                contact.id,
                "field_changed",
                f'{label} changed from "{old_value if old_value is not None else "empty"}" '
                f'to "{new_value if new_value is not None else "empty"}"',
                user,
                meta={"field": field, "oldValue": old_value, "newValue": new_value},
            )
        if not tracked:
            self._record(contact.id, "updated", "Contact updated", user)

        return contact

    def delete_contact(self, contact_id: int) -> dict:
        contact = self.get_contact(contact_id)
        self.repo.delete(self.db, contact)
        logger.info(f"🗑️ Contact {contact_id} deleted")
        return {"ok": True}

    def get_history(self, contact_id: int) -> dict:
        contact = self.get_contact(contact_id)
        history = self.repo.get_history(self.db, contact_id)
        appointments = self.repo.get_appointments(self.db, contact_id)
        return {
            "contact": ContactResponse.model_validate(contact),
            "history": [ContactHistoryResponse.model_validate(h) for h in history],
            "appointments": [
                {
                    "id": a.id,
                    "appointmentTypeId": a.appointment_type_id,
                    "status": a.status,
                    "startsAt": isoformat_utc(a.starts_at),
                    "endsAt": isoformat_utc(a.ends_at),
                }
                for a in appointments
            ],
        }

    def find_or_create_by_email(
        self,
        email: str,
        name: str,
        phone: Optional[str] = None,
        source: str = "scheduler",
    ) -> Contact:
        """Match an existing contact by email (case-insensitive) or create one"""
        existing = self.repo.get_by_email(self.db, email)
        if existing:
            return existing
        contact = self.repo.create(
            self.db,
            name=name,
            email=email.strip().lower(),
            mobile_phone=phone,
            is_primary=False,
            source=source,
        )
        self._record(contact.id, "created", f"Contact created from {source}: {name}")
        return contact

    def _record(
        self,
        contact_id: int,
        event_type: str,
        description: str,
        user: Optional[User] = None,
        meta: Optional[dict] = None,
    ) -> None:
        """History is best-effort; failures never fail the request"""
        try:
            self.repo.add_history(
                self.db, contact_id, event_type, description, user.id if user else None, meta
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record contact history for {contact_id}: {e}")
