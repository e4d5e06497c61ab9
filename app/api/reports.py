from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session, selectinload

from app.api.companies import get_company_or_404
from app.core.config import settings
from app.models import Report
from app.models.base import as_naive_utc, default_uuid, utcnow
from app.schemas.enums import ReportCategory
from app.schemas import DownloadLink, Envelope, ReorderRequest, ReportRead, ReportUpdate
from app.services.blob_storage import REPORTS_BUCKET, BlobStorageError, BlobStore, get_blob_store
from app.services.cascade import CascadeDeleteError, delete_with_blobs, report_blobs
from app.services.ordering import apply_order_updates, display_order, next_order
from app.services.report_files import count_pdf_pages, format_file_size, is_pdf_upload
from database import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


def get_report_or_404(db: Session, company_id: str, report_id: str) -> Report:
    report = db.query(Report).filter(Report.id == report_id, Report.company_id == company_id).first()
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("/companies/{company_id}/reports", response_model=Envelope[List[ReportRead]])
def list_reports(company_id: str, db: Session = Depends(get_db)):
    get_company_or_404(db, company_id)
    reports = (
        db.query(Report)
        .options(selectinload(Report.comments))
        .filter(Report.company_id == company_id)
        .order_by(*display_order(Report))
        .all()
    )
    return Envelope(data=[ReportRead.model_validate(r) for r in reports])


@router.post("/companies/{company_id}/reports", response_model=Envelope[ReportRead])
async def upload_report(
    company_id: str,
    title: str = Form(""),
    analyst: str = Form(""),
    category: str = Form(""),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    get_company_or_404(db, company_id)
    title, analyst, category = title.strip(), analyst.strip(), category.strip()
    if not title or not analyst or not category or file is None:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        category_value = ReportCategory(category).value
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unknown report category: {category}") from exc
    if not is_pdf_upload(file.filename, file.content_type):
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(contents) > settings.max_report_bytes:
        raise HTTPException(status_code=400, detail="File must be 50MB or smaller")
    try:
        page_count = count_pdf_pages(contents)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    report_id = default_uuid()
    file_path = f"{company_id}/{report_id}.pdf"
    try:
        store.put(REPORTS_BUCKET, file_path, contents)
    except BlobStorageError as exc:
        logger.exception("Storage upload failed for report %s", report_id)
        raise HTTPException(status_code=500, detail="Failed to upload file") from exc

    now = utcnow()
    report = Report(
        id=report_id,
        company_id=company_id,
        title=title,
        analyst=analyst,
        category=category_value,
        file_name=file.filename or f"{report_id}.pdf",
        file_size=format_file_size(len(contents)),
        file_path=file_path,
        page_count=page_count,
        order=next_order(db, Report, Report.company_id == company_id),
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    try:
        db.commit()
    except Exception:
        db.rollback()
        # Don't leave an unreferenced blob behind.
        store.remove(REPORTS_BUCKET, file_path)
        raise
    db.refresh(report)
    return Envelope(data=ReportRead.model_validate(report))


@router.put("/reports/{company_id}/{report_id}", response_model=Envelope[ReportRead])
def update_report(company_id: str, report_id: str, payload: ReportUpdate, db: Session = Depends(get_db)):
    report = get_report_or_404(db, company_id, report_id)
    report.title = payload.title
    report.analyst = payload.analyst
    report.category = payload.category.value
    if payload.created_at is not None:
        report.created_at = as_naive_utc(payload.created_at)
    report.updated_at = utcnow()
    db.commit()
    db.refresh(report)
    return Envelope(data=ReportRead.model_validate(report))


@router.post("/companies/{company_id}/reports/reorder", response_model=Envelope[None])
def reorder_reports(company_id: str, payload: ReorderRequest, db: Session = Depends(get_db)):
    updated = apply_order_updates(db, Report, payload.order_updates, Report.company_id == company_id)
    logger.info("Reordered %d of %d reports for company %s", updated, len(payload.order_updates), company_id)
    return Envelope()


@router.get("/reports/{company_id}/{report_id}/download", response_model=Envelope[DownloadLink])
def get_download_url(
    company_id: str,
    report_id: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    report = get_report_or_404(db, company_id, report_id)
    if not store.exists(REPORTS_BUCKET, report.file_path):
        logger.error("Report %s has no stored file at %s", report_id, report.file_path)
        raise HTTPException(status_code=500, detail="Failed to generate download link")
    url, expires = store.signed_url(REPORTS_BUCKET, report.file_path, settings.signed_url_ttl_seconds)
    return Envelope(data=DownloadLink(download_url=url, expires_at=expires))


@router.delete("/reports/{company_id}/{report_id}", response_model=Envelope[None])
def delete_report(
    company_id: str,
    report_id: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    report = get_report_or_404(db, company_id, report_id)
    try:
        delete_with_blobs(db, report, report_blobs(report), store)
    except CascadeDeleteError as exc:
        logger.error("Report %s delete aborted: %s", report_id, exc)
        raise HTTPException(status_code=500, detail="Failed to delete report") from exc
    return Envelope()
