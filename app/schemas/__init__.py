from app.schemas.common import CamelModel, DownloadLink, Envelope, OrderUpdate, ReorderRequest
from app.schemas.company import CompanyCreate, CompanyRead, CompanyUpdate
from app.schemas.report import CommentRead, CommentWrite, ReportRead, ReportUpdate

__all__ = [
    "CamelModel",
    "DownloadLink",
    "Envelope",
    "OrderUpdate",
    "ReorderRequest",
    "CompanyCreate",
    "CompanyRead",
    "CompanyUpdate",
    "CommentRead",
    "CommentWrite",
    "ReportRead",
    "ReportUpdate",
]
