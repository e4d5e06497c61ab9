from __future__ import annotations

from enum import Enum


class CompanyType(str, Enum):
    A_SHARE = "A股"
    HK = "港股"
    US = "美股"
    INDUSTRY = "行业"


class ReportCategory(str, Enum):
    MEETING_NOTES = "会议纪要"
    INITIATION = "首次覆盖"
    FOLLOW_UP = "跟踪"


__all__ = ["CompanyType", "ReportCategory"]
