from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from app.client.errors import ClientValidationError
from app.schemas.enums import CompanyType, ReportCategory

MAX_ICON_BYTES = 2 * 1024 * 1024
MAX_REPORT_BYTES = 50 * 1024 * 1024


@dataclass
class FilePayload:
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path) -> "FilePayload":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(filename=path.name, content=path.read_bytes(), content_type=guessed)

    def as_upload(self) -> tuple:
        return self.filename, self.content, self.content_type or "application/octet-stream"


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise ClientValidationError(f"Missing required fields: {', '.join(missing)}")


def validate_company_fields(name: str, code: str, type: str) -> CompanyType:
    _require(name=name, code=code, type=type)
    try:
        return CompanyType(type)
    except ValueError as exc:
        raise ClientValidationError(f"Unknown company type: {type}") from exc


def validate_report_fields(title: str, analyst: str, category: str) -> ReportCategory:
    _require(title=title, analyst=analyst, category=category)
    try:
        return ReportCategory(category)
    except ValueError as exc:
        raise ClientValidationError(f"Unknown report category: {category}") from exc


def validate_comment(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ClientValidationError("Comment content is required")
    return content


def validate_icon(file: FilePayload, max_bytes: int = MAX_ICON_BYTES) -> None:
    content_type = file.content_type or mimetypes.guess_type(file.filename)[0] or ""
    if not content_type.startswith("image/"):
        raise ClientValidationError("Icon must be an image file")
    if file.size > max_bytes:
        raise ClientValidationError(f"Icon must be {max_bytes // (1024 * 1024)}MB or smaller")


def validate_report_file(file: FilePayload, max_bytes: int = MAX_REPORT_BYTES) -> None:
    is_pdf = (file.content_type or "").lower() == "application/pdf" or file.filename.lower().endswith(".pdf")
    if not is_pdf:
        raise ClientValidationError("Only PDF files are allowed")
    if file.size == 0:
        raise ClientValidationError("File is empty")
    if file.size > max_bytes:
        raise ClientValidationError(f"File must be {max_bytes // (1024 * 1024)}MB or smaller")


__all__ = [
    "MAX_ICON_BYTES",
    "MAX_REPORT_BYTES",
    "FilePayload",
    "validate_comment",
    "validate_company_fields",
    "validate_icon",
    "validate_report_fields",
    "validate_report_file",
]
