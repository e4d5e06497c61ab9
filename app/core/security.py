from __future__ import annotations

import hmac
import logging

from fastapi import Header, HTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)


def require_api_token(authorization: str | None = Header(default=None)) -> None:
    """Bearer-token check; disabled when API_TOKEN is not configured."""
    expected = settings.api_token
    if not expected:
        return
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip(), expected):
        logger.info("Rejected request with missing or invalid bearer token")
        raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"})
