from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, Field, field_validator, model_validator

from app.models.company import CompanySize, CompanyType, Industry
from app.schemas.common import CamelModel


def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v


EmailAddress = Annotated[Optional[str], AfterValidator(_check_email)]
RequiredEmail = Annotated[str, AfterValidator(_check_email)]


class CompanyCreate(CamelModel):
    form_id: int
    name: str = Field(min_length=1, max_length=255)
    industry: Industry
    size: CompanySize
    image_url: str = Field(alias="imageURL", min_length=1)
    type: CompanyType = CompanyType.CLIENT
    partner_id: Optional[int] = None
    provider_email: EmailAddress = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Company name must not be blank")
        return v

    @model_validator(mode="after")
    def check_role(self) -> "CompanyCreate":
        if self.type == CompanyType.PARTNER and self.partner_id is not None:
            raise ValueError("A partner company cannot reference a partner")
        if self.type == CompanyType.CLIENT and self.partner_id is None:
            raise ValueError("A client company must reference a partner")
        return self


class CompanyUpdate(CamelModel):
    form_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    industry: Optional[Industry] = None
    size: Optional[CompanySize] = None
    image_url: Optional[str] = Field(None, alias="imageURL")
    type: Optional[CompanyType] = None
    partner_id: Optional[int] = None
    provider_email: EmailAddress = None


class CompanyResponse(CamelModel):
    id: int
    form_id: int
    name: str
    industry: Industry
    size: CompanySize
    image_url: str = Field(alias="imageURL")
    type: CompanyType
    partner_id: Optional[int]
    provider_email: Optional[str]
    created_at: datetime
