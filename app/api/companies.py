from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import Company
from app.models.base import utcnow
from app.schemas import CompanyCreate, CompanyRead, CompanyUpdate, Envelope, ReorderRequest
from app.services.blob_storage import ICONS_BUCKET, BlobStorageError, BlobStore, get_blob_store
from app.services.cascade import CascadeDeleteError, company_blobs, delete_with_blobs
from app.services.ordering import apply_order_updates, display_order, next_order
from app.services.report_files import file_extension, is_image_upload
from database import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


def get_company_or_404(db: Session, company_id: str) -> Company:
    company = db.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("/companies", response_model=Envelope[List[CompanyRead]])
def list_companies(db: Session = Depends(get_db)):
    companies = db.query(Company).order_by(*display_order(Company)).all()
    return Envelope(data=[CompanyRead.model_validate(c) for c in companies])


@router.post("/companies/reorder", response_model=Envelope[None])
def reorder_companies(payload: ReorderRequest, db: Session = Depends(get_db)):
    updated = apply_order_updates(db, Company, payload.order_updates)
    logger.info("Reordered %d of %d companies", updated, len(payload.order_updates))
    return Envelope()


@router.get("/companies/{company_id}", response_model=Envelope[CompanyRead])
def get_company(company_id: str, db: Session = Depends(get_db)):
    return Envelope(data=CompanyRead.model_validate(get_company_or_404(db, company_id)))


@router.post("/companies", response_model=Envelope[CompanyRead])
def create_company(payload: CompanyCreate, db: Session = Depends(get_db)):
    now = utcnow()
    company = Company(
        name=payload.name,
        code=payload.code,
        type=payload.type.value,
        description=payload.description or "",
        order=next_order(db, Company),
        created_at=now,
        updated_at=now,
    )
    db.add(company)
    db.commit()
    db.refresh(company)
    return Envelope(data=CompanyRead.model_validate(company))


@router.put("/companies/{company_id}", response_model=Envelope[CompanyRead])
def update_company(company_id: str, payload: CompanyUpdate, db: Session = Depends(get_db)):
    company = get_company_or_404(db, company_id)
    company.name = payload.name
    company.code = payload.code
    company.type = payload.type.value
    company.description = payload.description or ""
    company.updated_at = utcnow()
    db.commit()
    db.refresh(company)
    return Envelope(data=CompanyRead.model_validate(company))


@router.delete("/companies/{company_id}", response_model=Envelope[None])
def delete_company(
    company_id: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    company = get_company_or_404(db, company_id)
    blobs = company_blobs(company)
    try:
        delete_with_blobs(db, company, blobs, store)
    except CascadeDeleteError as exc:
        logger.error("Company %s delete aborted: %s", company_id, exc)
        raise HTTPException(status_code=500, detail="Failed to delete company") from exc
    logger.info("Deleted company %s with %d blobs", company_id, len(blobs))
    return Envelope()


@router.post("/companies/{company_id}/icon", response_model=Envelope[CompanyRead])
async def upload_company_icon(
    company_id: str,
    icon: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    company = get_company_or_404(db, company_id)
    if not is_image_upload(icon.content_type):
        raise HTTPException(status_code=400, detail="File must be an image")
    contents = await icon.read()
    if not contents:
        raise HTTPException(status_code=400, detail="No icon file provided")
    if len(contents) > settings.max_icon_bytes:
        raise HTTPException(status_code=400, detail="Icon must be 2MB or smaller")

    key = f"{company_id}.{file_extension(icon.filename, 'png')}"
    try:
        store.put(ICONS_BUCKET, key, contents)
    except BlobStorageError as exc:
        logger.exception("Icon upload failed for company %s", company_id)
        raise HTTPException(status_code=500, detail="Failed to upload icon") from exc

    old_key = company.icon_path
    company.icon_path = key
    company.icon_url = store.public_url(ICONS_BUCKET, key)
    company.updated_at = utcnow()
    db.commit()
    db.refresh(company)

    if old_key and old_key != key:
        try:
            store.remove(ICONS_BUCKET, old_key)
        except BlobStorageError:
            logger.warning("Failed to delete old icon %s", old_key)
    return Envelope(data=CompanyRead.model_validate(company))


@router.delete("/companies/{company_id}/icon", response_model=Envelope[CompanyRead])
def remove_company_icon(
    company_id: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    company = get_company_or_404(db, company_id)
    old_key = company.icon_path
    company.icon_path = None
    company.icon_url = None
    company.updated_at = utcnow()
    db.commit()
    db.refresh(company)
    if old_key:
        try:
            store.remove(ICONS_BUCKET, old_key)
        except BlobStorageError:
            logger.warning("Failed to delete icon %s", old_key)
    return Envelope(data=CompanyRead.model_validate(company))
