from database import Base
from app.models.base import GUID_LENGTH, GUID_TYPE, default_uuid, utcnow
from app.schemas.enums import CompanyType, ReportCategory
from app.models.company import Company
from app.models.report import Comment, Report

__all__ = [
    "Base",
    "GUID_TYPE",
    "GUID_LENGTH",
    "default_uuid",
    "utcnow",
    "CompanyType",
    "ReportCategory",
    "Company",
    "Report",
    "Comment",
]
