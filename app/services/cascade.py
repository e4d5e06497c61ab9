from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import Company, Report
from app.services.blob_storage import ICONS_BUCKET, REPORTS_BUCKET, BlobStorageError, BlobStore, StagedBlob

logger = logging.getLogger(__name__)

PURGE_ATTEMPTS = 3

BlobRef = Tuple[str, str]


class CascadeDeleteError(RuntimeError):
    """The cascade was aborted and every staged blob was put back."""


def company_blobs(company: Company) -> List[BlobRef]:
    blobs: List[BlobRef] = []
    if company.icon_path:
        blobs.append((ICONS_BUCKET, company.icon_path))
    for report in company.reports:
        blobs.extend(report_blobs(report))
    return blobs


def report_blobs(report: Report) -> List[BlobRef]:
    return [(REPORTS_BUCKET, report.file_path)] if report.file_path else []


def _restore_all(store: BlobStore, staged: Iterable[StagedBlob]) -> None:
    for blob in staged:
        try:
            store.restore(blob)
        except (BlobStorageError, OSError):
            logger.exception("Failed to restore staged blob %s/%s", blob.bucket, blob.key)


def _purge_all(store: BlobStore, staged: Iterable[StagedBlob]) -> None:
    for blob in staged:
        for attempt in range(1, PURGE_ATTEMPTS + 1):
            try:
                store.purge(blob)
                break
            except BlobStorageError as exc:
                logger.warning(
                    "Purge of %s/%s failed (attempt %d/%d): %s",
                    blob.bucket,
                    blob.key,
                    attempt,
                    PURGE_ATTEMPTS,
                    exc,
                )


def delete_with_blobs(db: Session, entity, blobs: List[BlobRef], store: BlobStore) -> None:
    """
    Delete ``entity`` (and its ORM cascade) together with ``blobs``.

    Blobs are first moved out of their buckets. If staging or the database
    commit fails, staged blobs are moved back and rows are rolled back, so a
    failed delete leaves both stores as they were. Purging the staged copies
    after commit is retried; leftovers sit in the trash area and are no
    longer reachable through any bucket.
    """
    staged: List[StagedBlob] = []
    try:
        for bucket, key in blobs:
            blob = store.stage(bucket, key)
            if blob is None:
                logger.warning("Blob %s/%s missing during cascade delete", bucket, key)
                continue
            staged.append(blob)
    except BlobStorageError as exc:
        _restore_all(store, staged)
        raise CascadeDeleteError(str(exc)) from exc

    try:
        db.delete(entity)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        _restore_all(store, staged)
        raise CascadeDeleteError("Database delete failed") from exc

    _purge_all(store, staged)


__all__ = ["CascadeDeleteError", "company_blobs", "delete_with_blobs", "report_blobs"]
