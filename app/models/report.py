from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from app.models.base import GUID_TYPE, default_uuid, utcnow


class Report(Base):
    __tablename__ = "reports"

    id = Column(GUID_TYPE, primary_key=True, default=default_uuid)
    company_id = Column(GUID_TYPE, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    analyst = Column(String(255), nullable=False)
    category = Column(String(32), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(String(32), nullable=False)
    file_path = Column(String(512), nullable=False)
    page_count = Column(Integer, nullable=True)
    order = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("Company", back_populates="reports")
    comments = relationship(
        "Comment",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(GUID_TYPE, primary_key=True, default=default_uuid)
    report_id = Column(GUID_TYPE, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    # Stays NULL until the comment is edited.
    updated_at = Column(DateTime, nullable=True)

    report = relationship("Report", back_populates="comments")


__all__ = ["Report", "Comment"]
