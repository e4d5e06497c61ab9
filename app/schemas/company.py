from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.enums import CompanyType
from app.schemas.common import CamelModel


class CompanyBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=64)
    type: CompanyType
    description: str = ""


class CompanyCreate(CompanyBase):
    pass


class CompanyUpdate(CompanyBase):
    pass


class CompanyRead(CompanyBase):
    id: str
    icon_url: Optional[str] = None
    order: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
