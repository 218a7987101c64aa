"""SLA contract service - Business logic for contracts, amendments and signature invites"""

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL, SIGNATURE_INVITE_TTL_DAYS, SIGNATURE_OTP_TTL_MINUTES
from ...email_service import send_signature_code_email, send_signature_invite_email
from ...models import Account, SignatureInvite, SlaContract, User
from ...shared.dates import isoformat_utc, parse_date, utcnow
from ..accounts.service import AccountService
from ..contract_templates.service import ContractTemplateService
from .pdf import ContractPDFGenerator
from .repository import SlaRepository
from .schemas import (
    CONTRACT_STATUSES,
    CONTRACT_TYPES,
    AmendRequest,
    AttachmentCreate,
    SignatureInviteCreate,
    SlaContractCreate,
    SlaContractUpdate,
)
from .templating import build_contract_context, render_template

logger = logging.getLogger(__name__)

EXPIRING_SOON_DAYS = 90

DATE_FIELDS = {
    "startDate": "start_date",
    "endDate": "end_date",
    "renewalDate": "renewal_date",
}

FIELD_COLUMNS = {
    "accountId": "account_id",
    "name": "name",
    "type": "type",
    "status": "status",
    "autoRenew": "auto_renew",
    "responseTargetMinutes": "response_target_minutes",
    "resolutionTargetMinutes": "resolution_target_minutes",
    "entitlements": "entitlements",
    "notes": "notes",
    "templateKey": "template_key",
    "billingContactEmail": "billing_contact_email",
    "internalOwnerUserId": "internal_owner_user_id",
}

# Never cleared by an explicit null
REQUIRED_FIELDS = {"accountId", "name", "type", "status", "autoRenew"}

# Carried from a parent contract into its amendment
AMENDABLE_COLUMNS = (
    "account_id",
    "name",
    "type",
    "start_date",
    "end_date",
    "auto_renew",
    "renewal_date",
    "response_target_minutes",
    "resolution_target_minutes",
    "entitlements",
    "notes",
    "template_key",
    "billing_contact_email",
    "internal_owner_user_id",
)


def reconcile_targets(response: Optional[int], resolution: Optional[int]) -> Optional[int]:
    """Resolution can never be faster than response; the response target wins"""
    if response is not None and resolution is not None and resolution < response:
        return response
    return resolution


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def audit_event(event: str, actor: Optional[str] = None, details: Optional[str] = None, **extra) -> dict:
    entry = {"at": isoformat_utc(utcnow()), "event": event}
    if actor:
        entry["actor"] = actor
    if details:
        entry["details"] = details
    entry.update({key: value for key, value in extra.items() if value is not None})
    return entry


def append_json(contract: SlaContract, column: str, entry: dict) -> None:
    # JSON columns are reassigned so the change is flushed
    setattr(contract, column, [*(getattr(contract, column) or []), entry])


class SlaService:
    """Service layer for SLA contract business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlaRepository()

    # ========================================================================
    # CRUD
    # ========================================================================

    def list_contracts(
        self,
        account_id: Optional[int] = None,
        status: Optional[str] = None,
        contract_type: Optional[str] = None,
    ) -> list[SlaContract]:
        return self.repo.list_contracts(
            self.db,
            account_id=account_id,
            status=status if status in CONTRACT_STATUSES else None,
            contract_type=contract_type if contract_type in CONTRACT_TYPES else None,
        )

    def get_contract(self, contract_id: int) -> SlaContract:
        contract = self.repo.get_by_id(self.db, contract_id)
        if not contract:
            raise HTTPException(status_code=404, detail="not_found")
        return contract

    def _column_values(self, payload: dict) -> dict:
        values = {}
        for field, value in payload.items():
            if field in DATE_FIELDS:
                values[DATE_FIELDS[field]] = parse_date(value)
            elif field in FIELD_COLUMNS:
                values[FIELD_COLUMNS[field]] = value
        if isinstance(values.get("name"), str):
            values["name"] = values["name"].strip()
        return values

    def _check_references(self, payload: dict) -> None:
        if payload.get("accountId") is not None:
            AccountService(self.db).resolve_account(payload["accountId"], None)
        owner_id = payload.get("internalOwnerUserId")
        if owner_id is not None and not self.repo.get_user(self.db, owner_id):
            raise HTTPException(status_code=400, detail="owner_not_found")

    def create_contract(self, data: SlaContractCreate, user: Optional[User] = None) -> SlaContract:
        payload = data.model_dump()
        self._check_references(payload)

        values = self._column_values(payload)
        values["resolution_target_minutes"] = reconcile_targets(
            values.get("response_target_minutes"), values.get("resolution_target_minutes")
        )
        if values.get("internal_owner_user_id") is None and user is not None:
            values["internal_owner_user_id"] = user.id

        contract = self.repo.create(
            self.db,
            **values,
            version=1,
            attachments=[],
            signature_audit=[],
            email_sends=[],
        )
        logger.info(f"📑 SLA contract {contract.id} created for account {contract.account_id}")
        return contract

    def update_contract(self, contract_id: int, data: SlaContractUpdate) -> SlaContract:
        contract = self.get_contract(contract_id)
        payload = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in REQUIRED_FIELDS
        }
        self._check_references(payload)

        for column, value in self._column_values(payload).items():
            setattr(contract, column, value)
        contract.resolution_target_minutes = reconcile_targets(
            contract.response_target_minutes, contract.resolution_target_minutes
        )
        return self.repo.save(self.db, contract)

    def delete_contract(self, contract_id: int) -> dict:
        contract = self.get_contract(contract_id)
        self.repo.delete(self.db, contract)
        logger.info(f"🗑️ SLA contract {contract_id} deleted")
        return {"ok": True}

    def summarize_by_account(self, account_ids: Optional[str], now: Optional[datetime] = None) -> list[dict]:
        """Per-account rollup: active count, expiring soon, best targets, next expiry"""
        ids = []
        for part in (account_ids or "").split(","):
            part = part.strip()
            if part.isdigit():
                ids.append(int(part))
        if not ids:
            return []

        now = now or utcnow()
        soon = now + timedelta(days=EXPIRING_SOON_DAYS)
        rollup: dict[int, dict[str, Any]] = {}
        for contract in self.repo.list_for_accounts(self.db, ids):
            row = rollup.setdefault(
                contract.account_id,
                {
                    "accountId": contract.account_id,
                    "activeCount": 0,
                    "expiringSoon": 0,
                    "bestResponse": None,
                    "bestResolution": None,
                    "nextExpiry": None,
                },
            )
            if contract.status == "active":
                row["activeCount"] += 1
            if contract.end_date is not None and now <= contract.end_date <= soon:
                row["expiringSoon"] += 1
            row["bestResponse"] = _min(row["bestResponse"], contract.response_target_minutes)
            row["bestResolution"] = _min(row["bestResolution"], contract.resolution_target_minutes)
            row["nextExpiry"] = _min(row["nextExpiry"], contract.end_date)

        items = []
        for account_id in ids:
            if account_id in rollup:
                row = rollup.pop(account_id)
                row["nextExpiry"] = isoformat_utc(row["nextExpiry"])
                items.append(row)
        return items

    # ========================================================================
    # AMENDMENTS AND VERSIONS
    # ========================================================================

    def amend_contract(self, contract_id: int, data: AmendRequest, user: Optional[User] = None) -> SlaContract:
        parent = self.get_contract(contract_id)
        if parent.status == "cancelled":
            raise HTTPException(status_code=409, detail="contract_cancelled")
        if parent.superseded_by_id is not None:
            raise HTTPException(status_code=409, detail="already_superseded")

        values = {column: getattr(parent, column) for column in AMENDABLE_COLUMNS}
        payload = data.model_dump(exclude_unset=True)
        reason = payload.pop("amendmentReason", None)
        payload.pop("status", None)
        payload = {field: value for field, value in payload.items() if value is not None or field not in REQUIRED_FIELDS}
        self._check_references(payload)
        values.update(self._column_values(payload))
        values["resolution_target_minutes"] = reconcile_targets(
            values.get("response_target_minutes"), values.get("resolution_target_minutes")
        )

        actor = user.email if user is not None else None
        amendment = self.repo.create(
            self.db,
            **values,
            status="draft",
            version=(parent.version or 1) + 1,
            parent_contract_id=parent.id,
            amendment_reason=reason,
            attachments=[],
            email_sends=[],
            signature_audit=[
                audit_event(
                    "amendment_created",
                    actor=actor,
                    details=f"Amends version {parent.version or 1}" + (f": {reason}" if reason else ""),
                )
            ],
        )
        parent.superseded_by_id = amendment.id
        self.repo.save(self.db, parent)
        logger.info(f"📑 SLA contract {parent.id} amended as {amendment.id} (v{amendment.version})")
        return amendment

    def get_versions(self, contract_id: int) -> list[SlaContract]:
        """Every contract in the amendment chain, oldest version first"""
        contract = self.get_contract(contract_id)
        root = contract
        seen = {root.id}
        while root.parent_contract_id is not None:
            parent = self.repo.get_by_id(self.db, root.parent_contract_id)
            if parent is None or parent.id in seen:
                break
            seen.add(parent.id)
            root = parent
        chain = [root, *self.repo.get_descendants(self.db, root.id)]
        return sorted(chain, key=lambda c: (c.version or 1, c.id))

    # ========================================================================
    # RENDERING, PDF, ATTACHMENTS
    # ========================================================================

    def _account(self, contract: SlaContract) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == contract.account_id).first()

    def render_contract(self, contract_id: int, template_key: Optional[str] = None) -> SlaContract:
        contract = self.get_contract(contract_id)
        key = template_key or contract.template_key
        if not key:
            raise HTTPException(status_code=404, detail="template_not_found")
        template = ContractTemplateService(self.db).get_by_key(key)

        context = build_contract_context(contract, self._account(contract))
        contract.rendered_html = render_template(template.html_body, context)
        contract.template_key = template.key
        return self.repo.save(self.db, contract)

    def generate_pdf(self, contract_id: int) -> bytes:
        contract = self.get_contract(contract_id)
        return ContractPDFGenerator(contract, self._account(contract)).generate()

    def add_attachment(self, contract_id: int, data: AttachmentCreate) -> SlaContract:
        contract = self.get_contract(contract_id)
        append_json(
            contract,
            "attachments",
            {
                "id": uuid.uuid4().hex,
                "name": data.name,
                "url": data.url,
                "contentType": data.contentType,
                "size": data.size,
                "uploadedAt": isoformat_utc(utcnow()),
            },
        )
        return self.repo.save(self.db, contract)

    def remove_attachment(self, contract_id: int, attachment_id: str) -> SlaContract:
        contract = self.get_contract(contract_id)
        attachments = contract.attachments or []
        remaining = [a for a in attachments if a.get("id") != attachment_id]
        if len(remaining) == len(attachments):
            raise HTTPException(status_code=404, detail="attachment_not_found")
        contract.attachments = remaining
        return self.repo.save(self.db, contract)

    # ========================================================================
    # SIGNATURE INVITES
    # ========================================================================

    def list_invites(self, contract_id: int) -> list[SignatureInvite]:
        self.get_contract(contract_id)
        return self.repo.list_invites(self.db, contract_id)

    async def create_invite(
        self, contract_id: int, data: SignatureInviteCreate, user: Optional[User] = None
    ) -> SignatureInvite:
        contract = self.get_contract(contract_id)
        now = utcnow()

        cancelled = self.repo.cancel_pending_invites(self.db, contract.id, data.role)
        if cancelled:
            logger.info(f"✉️ Cancelled {cancelled} earlier {data.role} invite(s) for SLA {contract.id}")

        code = None
        otp_values = {}
        if data.requireOtp:
            code = f"{secrets.randbelow(1_000_000):06d}"
            otp_values = {
                "login_id": secrets.token_hex(4).upper(),
                "otp_hash": hash_code(code),
                "otp_expires_at": now + timedelta(minutes=SIGNATURE_OTP_TTL_MINUTES),
            }

        invite = self.repo.create_invite(
            self.db,
            contract_id=contract.id,
            role=data.role,
            email=data.email.lower(),
            name=data.name,
            title=data.title,
            token=secrets.token_urlsafe(32),
            status="pending",
            expires_at=now + timedelta(days=SIGNATURE_INVITE_TTL_DAYS),
            **otp_values,
        )

        sign_url = f"{FRONTEND_URL}/contracts/sign/{invite.token}"
        await self._send_tracked(
            contract,
            to=invite.email,
            subject=f"Signature requested: {contract.name}",
            kind="signature_invite",
            send=lambda: send_signature_invite_email(
                to=invite.email,
                signer_name=invite.name,
                contract_name=contract.name,
                sign_url=sign_url,
                role=invite.role,
                expires_at=invite.expires_at,
                requires_code=code is not None,
                login_id=invite.login_id,
            ),
        )
        if code is not None:
            await self._send_tracked(
                contract,
                to=invite.email,
                subject=f"Your signing code for {contract.name}",
                kind="signature_code",
                send=lambda: send_signature_code_email(
                    invite.email, invite.name, contract.name, code, SIGNATURE_OTP_TTL_MINUTES
                ),
            )

        append_json(
            contract,
            "signature_audit",
            audit_event(
                "invite_sent",
                actor=user.email if user is not None else None,
                details=f"{invite.role} invite sent to {invite.email}",
            ),
        )
        self.repo.save(self.db, contract)
        self.db.refresh(invite)
        return invite

    async def _send_tracked(self, contract: SlaContract, to: str, subject: str, kind: str, send) -> None:
        """Send an email and log the attempt on the contract; failures never fail the request"""
        status = "sent"
        try:
            result = await send()
            if isinstance(result, dict) and result.get("skipped"):
                status = "skipped"
        except Exception as e:
            status = "failed"
            logger.error(f"❌ Failed to send {kind} email for SLA {contract.id}: {str(e)}")
        append_json(
            contract,
            "email_sends",
            {"to": to, "subject": subject, "kind": kind, "sentAt": isoformat_utc(utcnow()), "status": status},
        )


def _min(current, candidate):
    if candidate is None:
        return current
    if current is None:
        return candidate
    return min(current, candidate)
