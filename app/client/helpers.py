from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence

from app.client.ordering import field_value

ALL_TYPES = "全部类型"
ALL_CATEGORIES = "全部"


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def format_file_size(size_bytes: int) -> str:
    """Megabytes with one decimal, e.g. ``3.2MB``."""
    return f"{size_bytes / 1024 / 1024:.1f}MB"


def format_date(value: Any) -> str:
    """``2024/3/7`` style, the way dates are shown in the catalog."""
    parsed = _as_datetime(value)
    if parsed is None:
        return "" if not value else str(value)
    return f"{parsed.year}/{parsed.month}/{parsed.day}"


def latest_report_date(reports: Sequence[Any]) -> str:
    dated = [d for d in (_as_datetime(field_value(r, "created_at")) for r in reports) if d is not None]
    if not dated:
        return "-"
    return format_date(max(dated))


def analyst_count(reports: Iterable[Any]) -> int:
    return len({field_value(r, "analyst") for r in reports})


def total_comments(reports: Iterable[Any]) -> int:
    return sum(len(field_value(r, "comments") or []) for r in reports)


def filter_companies(companies: Iterable[Any], search: str = "", company_type: str = ALL_TYPES) -> List[Any]:
    """Case-insensitive match on name or code, optionally restricted to one type."""
    term = search.strip().lower()
    result = []
    for company in companies:
        name = (field_value(company, "name") or "").lower()
        code = (field_value(company, "code") or "").lower()
        if term and term not in name and term not in code:
            continue
        type_value = field_value(company, "type")
        type_value = getattr(type_value, "value", type_value)
        if company_type != ALL_TYPES and type_value != company_type:
            continue
        result.append(company)
    return result


def filter_reports(reports: Iterable[Any], category: str = ALL_CATEGORIES) -> List[Any]:
    if category == ALL_CATEGORIES:
        return list(reports)
    return [r for r in reports if getattr(field_value(r, "category"), "value", field_value(r, "category")) == category]
