from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pypdf
from pypdf.errors import PdfReadError

PDF_CONTENT_TYPE = "application/pdf"


def is_pdf_upload(filename: str | None, content_type: str | None) -> bool:
    if content_type and "pdf" in content_type.lower():
        return True
    return Path(filename or "").suffix.lower() == ".pdf"


def is_image_upload(content_type: str | None) -> bool:
    return bool(content_type) and content_type.lower().startswith("image/")


def count_pdf_pages(content: bytes) -> int:
    """Parse the upload with pypdf; raises ValueError when it is not a readable PDF."""
    try:
        reader = pypdf.PdfReader(BytesIO(content))
        return len(reader.pages)
    except (PdfReadError, ValueError, KeyError, OSError) as exc:
        raise ValueError("File is not a readable PDF") from exc


def format_file_size(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.1f}MB"


def file_extension(filename: str | None, default: str) -> str:
    suffix = Path(filename or "").suffix.lower().lstrip(".")
    return suffix or default
