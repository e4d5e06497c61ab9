from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from app.models.base import GUID_TYPE, default_uuid, utcnow


class Company(Base):
    __tablename__ = "companies"

    id = Column(GUID_TYPE, primary_key=True, default=default_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(64), nullable=False)
    type = Column(String(32), nullable=False)
    description = Column(Text, nullable=False, default="")
    icon_url = Column(String(1024), nullable=True)
    # Storage key of the icon blob; icon_url is derived from it.
    icon_path = Column(String(512), nullable=True)
    order = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    reports = relationship(
        "Report",
        back_populates="company",
        cascade="all, delete-orphan",
    )


__all__ = ["Company"]
