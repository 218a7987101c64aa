"""Contact domain schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ...shared.responses import UtcDateTime


class ContactCreate(BaseModel):
    """Schema for creating a new contact"""

    name: str = Field(..., min_length=1, max_length=255)
    company: Optional[str] = None
    email: Optional[EmailStr] = None
    mobilePhone: Optional[str] = None
    officePhone: Optional[str] = None
    isPrimary: Optional[bool] = None
    primaryPhone: Optional[Literal["mobile", "office"]] = None
    accountId: Optional[int] = None


class ContactUpdate(BaseModel):
    """Schema for updating a contact. Omitted fields stay untouched."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    company: Optional[str] = None
    email: Optional[EmailStr] = None
    mobilePhone: Optional[str] = None
    officePhone: Optional[str] = None
    isPrimary: Optional[bool] = None
    primaryPhone: Optional[Literal["mobile", "office"]] = None
    accountId: Optional[int] = None


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: str
    company: Optional[str] = None
    email: Optional[str] = None
    mobilePhone: Optional[str] = Field(None, validation_alias="mobile_phone")
    officePhone: Optional[str] = Field(None, validation_alias="office_phone")
    isPrimary: Optional[bool] = Field(False, validation_alias="is_primary")
    primaryPhone: Optional[str] = Field(None, validation_alias="primary_phone")
    accountId: Optional[int] = Field(None, validation_alias="account_id")
    source: Optional[str] = None
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")


class ContactHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    eventType: str = Field(validation_alias="event_type")
    description: Optional[str] = None
    userId: Optional[int] = Field(None, validation_alias="user_id")
    meta: Optional[dict] = None
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
