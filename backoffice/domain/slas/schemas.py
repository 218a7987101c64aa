"""SLA contract schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ...shared.responses import UtcDateTime

ContractType = Literal["support", "subscription", "project", "other"]
ContractStatus = Literal["draft", "active", "expired", "scheduled", "cancelled"]
SignerRole = Literal["customerSigner", "providerSigner"]

CONTRACT_TYPES = ("support", "subscription", "project", "other")
CONTRACT_STATUSES = ("draft", "active", "expired", "scheduled", "cancelled")


class SlaContractCreate(BaseModel):
    """
    Schema for creating an SLA contract.

    Dates are strings: "YYYY-MM-DD" or ISO-8601. Unparseable values are stored as null.
    """

    accountId: int
    name: str = Field(..., min_length=1, max_length=255)
    type: ContractType = "support"
    status: ContractStatus = "active"
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    autoRenew: bool = False
    renewalDate: Optional[str] = None
    responseTargetMinutes: Optional[int] = Field(None, gt=0)
    resolutionTargetMinutes: Optional[int] = Field(None, gt=0)
    entitlements: Optional[str] = None
    notes: Optional[str] = None
    templateKey: Optional[str] = None
    billingContactEmail: Optional[EmailStr] = None
    internalOwnerUserId: Optional[int] = None


class SlaContractUpdate(BaseModel):
    accountId: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[ContractType] = None
    status: Optional[ContractStatus] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    autoRenew: Optional[bool] = None
    renewalDate: Optional[str] = None
    responseTargetMinutes: Optional[int] = Field(None, gt=0)
    resolutionTargetMinutes: Optional[int] = Field(None, gt=0)
    entitlements: Optional[str] = None
    notes: Optional[str] = None
    templateKey: Optional[str] = None
    billingContactEmail: Optional[EmailStr] = None
    internalOwnerUserId: Optional[int] = None


class AmendRequest(SlaContractUpdate):
    amendmentReason: Optional[str] = None


class RenderRequest(BaseModel):
    templateKey: Optional[str] = None


class AttachmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    contentType: Optional[str] = None
    size: Optional[int] = Field(None, ge=0)


class SignatureInviteCreate(BaseModel):
    role: SignerRole
    email: EmailStr
    name: Optional[str] = None
    title: Optional[str] = None
    requireOtp: bool = False


class SignatureInviteResponse(BaseModel):
    """Invite as shown to staff. The code hash never leaves the server."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    contractId: int = Field(validation_alias="contract_id")
    role: str
    email: str
    name: Optional[str] = None
    title: Optional[str] = None
    token: str
    status: str
    expiresAt: Optional[UtcDateTime] = Field(None, validation_alias="expires_at")
    usedAt: Optional[UtcDateTime] = Field(None, validation_alias="used_at")
    loginId: Optional[str] = Field(None, validation_alias="login_id")
    otpExpiresAt: Optional[UtcDateTime] = Field(None, validation_alias="otp_expires_at")
    otpVerifiedAt: Optional[UtcDateTime] = Field(None, validation_alias="otp_verified_at")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")


class SlaContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    accountId: int = Field(validation_alias="account_id")
    name: str
    type: str = "support"
    status: str = "active"
    startDate: Optional[UtcDateTime] = Field(None, validation_alias="start_date")
    endDate: Optional[UtcDateTime] = Field(None, validation_alias="end_date")
    autoRenew: bool = Field(False, validation_alias="auto_renew")
    renewalDate: Optional[UtcDateTime] = Field(None, validation_alias="renewal_date")
    responseTargetMinutes: Optional[int] = Field(None, validation_alias="response_target_minutes")
    resolutionTargetMinutes: Optional[int] = Field(None, validation_alias="resolution_target_minutes")
    entitlements: Optional[str] = None
    notes: Optional[str] = None
    version: int = 1
    parentContractId: Optional[int] = Field(None, validation_alias="parent_contract_id")
    supersededById: Optional[int] = Field(None, validation_alias="superseded_by_id")
    amendmentReason: Optional[str] = Field(None, validation_alias="amendment_reason")
    templateKey: Optional[str] = Field(None, validation_alias="template_key")
    renderedHtml: Optional[str] = Field(None, validation_alias="rendered_html")
    billingContactEmail: Optional[str] = Field(None, validation_alias="billing_contact_email")
    signedByCustomer: Optional[str] = Field(None, validation_alias="signed_by_customer")
    signedAtCustomer: Optional[UtcDateTime] = Field(None, validation_alias="signed_at_customer")
    signedByProvider: Optional[str] = Field(None, validation_alias="signed_by_provider")
    signedAtProvider: Optional[UtcDateTime] = Field(None, validation_alias="signed_at_provider")
    executedDate: Optional[UtcDateTime] = Field(None, validation_alias="executed_date")
    attachments: list[dict] = []
    signatureAudit: list[dict] = Field([], validation_alias="signature_audit")
    emailSends: list[dict] = Field([], validation_alias="email_sends")
    internalOwnerUserId: Optional[int] = Field(None, validation_alias="internal_owner_user_id")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")


# Fields a signer on the public page never sees
SIGNING_HIDDEN_FIELDS = {"emailSends", "signatureAudit", "attachments", "internalOwnerUserId"}


def contract_for_signing(contract) -> dict:
    return SlaContractResponse.model_validate(contract).model_dump(mode="json", exclude=SIGNING_HIDDEN_FIELDS)
