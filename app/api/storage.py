from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from app.services.blob_storage import PUBLIC_BUCKETS, BlobNotFoundError, BlobStore, get_blob_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/storage/{bucket}/{key:path}")
def serve_blob(
    bucket: str,
    key: str,
    expires: int | None = Query(None),
    signature: str | None = Query(None),
    store: BlobStore = Depends(get_blob_store),
):
    if bucket not in PUBLIC_BUCKETS and not store.verify_signature(bucket, key, expires, signature):
        logger.info("Rejected blob access to %s/%s", bucket, key)
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        path = store.locate(bucket, key)
    except BlobNotFoundError as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc
    return FileResponse(path, filename=path.name)
