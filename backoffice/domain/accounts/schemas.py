"""Account domain schemas"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ...shared.responses import UtcDateTime


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    companyName: Optional[str] = None
    primaryContactName: Optional[str] = None
    primaryContactEmail: Optional[EmailStr] = None
    primaryContactPhone: Optional[str] = None


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    companyName: Optional[str] = None
    primaryContactName: Optional[str] = None
    primaryContactEmail: Optional[EmailStr] = None
    primaryContactPhone: Optional[str] = None


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    accountNumber: int = Field(validation_alias="account_number")
    name: str
    companyName: Optional[str] = Field(None, validation_alias="company_name")
    primaryContactName: Optional[str] = Field(None, validation_alias="primary_contact_name")
    primaryContactEmail: Optional[str] = Field(None, validation_alias="primary_contact_email")
    primaryContactPhone: Optional[str] = Field(None, validation_alias="primary_contact_phone")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")
