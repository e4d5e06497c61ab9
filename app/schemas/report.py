from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from app.schemas.enums import ReportCategory
from app.schemas.common import CamelModel


class CommentWrite(CamelModel):
    content: str = Field(..., max_length=10000)

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment content is required")
        return value


class CommentRead(CamelModel):
    id: str
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReportUpdate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    analyst: str = Field(..., min_length=1, max_length=255)
    category: ReportCategory
    # Backdating is allowed; omitted keeps the stored value.
    created_at: Optional[datetime] = None


class ReportRead(CamelModel):
    id: str
    company_id: str
    title: str
    analyst: str
    category: ReportCategory
    file_name: str
    file_size: str
    file_path: str
    page_count: Optional[int] = None
    order: Optional[int] = None
    comments: List[CommentRead] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
