from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from datetime import datetime
from app.config.permissions_config import COMPANY_ROLES, DEFAULT_ROLE


def _check_role(value: str) -> str:
    if value not in COMPANY_ROLES:
        raise ValueError(f"role must be one of {', '.join(COMPANY_ROLES)}")
    return value


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str = DEFAULT_ROLE

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return _check_role(value)


class InvitationResponse(BaseModel):
    id: str
    company_id: str
    email: str
    role: str
    status: str
    validated: Optional[bool] = False
    expiration_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvitationCreateResponse(BaseModel):
    invitation: InvitationResponse
    email_sent: bool
    warning: Optional[str] = None


class AccessCodeCreate(BaseModel):
    role: str = DEFAULT_ROLE
    email: Optional[EmailStr] = None  # omitted => open code anyone may redeem

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return _check_role(value)


class AccessCodeResponse(BaseModel):
    id: str
    company_id: str
    access_code: str
    email: Optional[str] = None
    role: str
    status: str
    validated: Optional[bool] = False
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AcceptInvitationRequest(BaseModel):
    token: str


class RedeemAccessCodeRequest(BaseModel):
    code: str


class RedemptionResponse(BaseModel):
    success: bool = True
    company_id: str
    role: str
