"""Public contract signing - token invites, one-time codes and execution"""

import logging
import secrets
from typing import Optional

from fastapi import HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from ...email_service import send_contract_executed_email
from ...models import SignatureInvite, SlaContract
from ...shared.dates import utcnow
from .repository import SlaRepository
from .schemas import contract_for_signing
from .service import append_json, audit_event, hash_code

logger = logging.getLogger(__name__)


class OtpVerifyRequest(BaseModel):
    loginId: str = Field(..., min_length=1)
    otpCode: str = Field(..., min_length=1)


class SignRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    title: Optional[str] = None
    email: EmailStr


def signer_summary(invite: SignatureInvite) -> dict:
    return {"email": invite.email, "name": invite.name or "", "title": invite.title or ""}


class SigningService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = SlaRepository()

    def _pending_invite(self, token: str) -> SignatureInvite:
        invite = self.repo.get_invite_by_token(self.db, token)
        if not invite:
            raise HTTPException(status_code=404, detail="invalid_or_expired")
        if invite.status != "pending":
            raise HTTPException(status_code=410, detail="already_used")
        if invite.expires_at and invite.expires_at < utcnow():
            raise HTTPException(status_code=410, detail="expired")
        return invite

    def _contract(self, invite: SignatureInvite) -> SlaContract:
        contract = self.repo.get_by_id(self.db, invite.contract_id)
        if not contract:
            raise HTTPException(status_code=404, detail="contract_not_found")
        return contract

    @staticmethod
    def _awaiting_otp(invite: SignatureInvite) -> bool:
        return bool(invite.otp_hash) and invite.otp_verified_at is None

    def get_signing_view(self, token: str) -> dict:
        invite = self._pending_invite(token)
        if self._awaiting_otp(invite):
            return {"requiresOtp": True, "role": invite.role, "signer": signer_summary(invite)}
        contract = self._contract(invite)
        return {
            "requiresOtp": False,
            "contract": contract_for_signing(contract),
            "role": invite.role,
            "signer": signer_summary(invite),
        }

    def verify_otp(self, token: str, data: OtpVerifyRequest) -> dict:
        invite = self._pending_invite(token)
        if not invite.otp_hash or not invite.login_id:
            raise HTTPException(status_code=400, detail="otp_not_configured")
        if invite.otp_expires_at and invite.otp_expires_at < utcnow():
            raise HTTPException(status_code=410, detail="otp_expired")
        if not secrets.compare_digest(invite.login_id.upper(), data.loginId.strip().upper()):
            raise HTTPException(status_code=401, detail="login_invalid")
        if not secrets.compare_digest(invite.otp_hash, hash_code(data.otpCode.strip())):
            raise HTTPException(status_code=401, detail="otp_invalid")

        invite.otp_verified_at = utcnow()
        self.db.commit()
        logger.info(f"🔐 Signing code verified for invite {invite.id}")
        return {"verified": True, "role": invite.role}

    async def sign(
        self, token: str, data: SignRequest, ip: Optional[str] = None, user_agent: Optional[str] = None
    ) -> dict:
        invite = self._pending_invite(token)
        if self._awaiting_otp(invite):
            raise HTTPException(status_code=403, detail="otp_required")
        contract = self._contract(invite)
        now = utcnow()

        if invite.role == "customerSigner":
            contract.signed_by_customer = data.name
            contract.signed_at_customer = now
        else:
            contract.signed_by_provider = data.name
            contract.signed_at_provider = now
        append_json(
            contract,
            "signature_audit",
            audit_event(
                f"signed_{invite.role}",
                actor=data.name,
                details=f"Email: {data.email}",
                ip=ip,
                userAgent=user_agent,
            ),
        )

        invite.status = "signed"
        invite.used_at = now
        invite.name = data.name
        invite.title = data.title or invite.title

        executed = False
        if contract.signed_at_customer and contract.signed_at_provider and contract.status != "active":
            contract.status = "active"
            contract.executed_date = contract.executed_date or now
            append_json(contract, "signature_audit", audit_event("fully_executed", details="Both parties have signed"))
            executed = True
            self._retire_parent(contract)

        self.db.commit()
        self.db.refresh(contract)
        logger.info(f"✍️ SLA {contract.id} signed by {invite.role}")

        if executed:
            await self._notify_executed(contract)

        return {"contract": contract_for_signing(contract), "role": invite.role}

    def _retire_parent(self, contract: SlaContract) -> None:
        """An executed amendment replaces its parent while the parent is still active"""
        if contract.parent_contract_id is None:
            return
        parent = self.repo.get_by_id(self.db, contract.parent_contract_id)
        if parent is not None and parent.status == "active":
            parent.status = "expired"
            append_json(
                parent,
                "signature_audit",
                audit_event("superseded", details=f"Replaced by version {contract.version}"),
            )

    async def _notify_executed(self, contract: SlaContract) -> None:
        recipients = sorted(
            {
                invite.email
                for invite in self.repo.list_invites(self.db, contract.id)
                if invite.status == "signed" and invite.email
            }
        )
        if not recipients:
            return
        try:
            await send_contract_executed_email(
                to=recipients,
                contract_name=contract.name,
                customer_signer=contract.signed_by_customer,
                provider_signer=contract.signed_by_provider,
                executed_at=contract.executed_date,
            )
        except Exception as e:
            logger.error(f"❌ Failed to send executed email for SLA {contract.id}: {str(e)}")
