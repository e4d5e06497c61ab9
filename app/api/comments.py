from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.reports import get_report_or_404
from app.models import Comment
from app.models.base import utcnow
from app.schemas import CommentRead, CommentWrite, Envelope
from database import get_db

router = APIRouter()


def _comment_list(db: Session, report_id: str) -> Envelope[List[CommentRead]]:
    """Every mutation answers with the report's full thread, oldest first."""
    comments = (
        db.query(Comment)
        .filter(Comment.report_id == report_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    return Envelope(data=[CommentRead.model_validate(c) for c in comments])


def _get_comment_or_404(db: Session, report_id: str, comment_id: str) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id, Comment.report_id == report_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.get("/reports/{company_id}/{report_id}/comments", response_model=Envelope[List[CommentRead]])
def list_comments(company_id: str, report_id: str, db: Session = Depends(get_db)):
    report = get_report_or_404(db, company_id, report_id)
    return _comment_list(db, report.id)


@router.post("/reports/{company_id}/{report_id}/comments", response_model=Envelope[List[CommentRead]])
def add_comment(company_id: str, report_id: str, payload: CommentWrite, db: Session = Depends(get_db)):
    report = get_report_or_404(db, company_id, report_id)
    db.add(Comment(report_id=report.id, content=payload.content, created_at=utcnow()))
    db.commit()
    return _comment_list(db, report.id)


@router.put("/reports/{company_id}/{report_id}/comments/{comment_id}", response_model=Envelope[List[CommentRead]])
def update_comment(
    company_id: str,
    report_id: str,
    comment_id: str,
    payload: CommentWrite,
    db: Session = Depends(get_db),
):
    report = get_report_or_404(db, company_id, report_id)
    comment = _get_comment_or_404(db, report.id, comment_id)
    comment.content = payload.content
    comment.updated_at = utcnow()
    db.commit()
    return _comment_list(db, report.id)


@router.delete("/reports/{company_id}/{report_id}/comments/{comment_id}", response_model=Envelope[List[CommentRead]])
def delete_comment(company_id: str, report_id: str, comment_id: str, db: Session = Depends(get_db)):
    report = get_report_or_404(db, company_id, report_id)
    comment = _get_comment_or_404(db, report.id, comment_id)
    db.delete(comment)
    db.commit()
    return _comment_list(db, report.id)
