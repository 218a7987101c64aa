"""Contract template schemas"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ...shared.responses import UtcDateTime


class ContractTemplateCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    htmlBody: str = Field(..., min_length=1)


class ContractTemplateUpdate(BaseModel):
    key: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    htmlBody: Optional[str] = Field(None, min_length=1)


class ContractTemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    key: str
    name: str
    description: Optional[str] = None
    htmlBody: str = Field("", validation_alias="html_body")
    createdAt: Optional[UtcDateTime] = Field(None, validation_alias="created_at")
    updatedAt: Optional[UtcDateTime] = Field(None, validation_alias="updated_at")
