from __future__ import annotations

from typing import Optional


class ResearchClientError(Exception):
    """Base class for every error raised by the research API client."""


class ClientValidationError(ResearchClientError, ValueError):
    """Input rejected locally; no request was sent."""


class ApiError(ResearchClientError):
    """Non-2xx response, or a 2xx response whose envelope says success=false."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}"


class NotFoundError(ApiError):
    pass


class TransportError(ResearchClientError):
    """The request never produced an HTTP response."""


__all__ = ["ApiError", "ClientValidationError", "NotFoundError", "ResearchClientError", "TransportError"]
