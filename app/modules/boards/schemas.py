from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class BoardCreate(BaseModel):
    name: str = Field(..., min_length=1)


class BoardResponse(BaseModel):
    id: str
    company_id: str
    name: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
