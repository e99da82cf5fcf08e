from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1)


class CompanyResponse(BaseModel):
    id: str
    name: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CompanyWithRoleResponse(BaseModel):
    id: str
    name: str
    role: str
    created_at: Optional[datetime] = None


class CompanyUserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None


class UserCompanyRoleResponse(BaseModel):
    id: str
    user_id: str
    company_id: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
