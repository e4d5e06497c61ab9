from __future__ import annotations

from typing import Iterable, List

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.models.base import utcnow
from app.schemas.common import OrderUpdate


def display_order(model) -> list:
    """ORDER BY clauses: explicit order ascending (NULL last), then newest first."""
    order_nulls_last = case((model.order.is_(None), 1), else_=0)
    return [order_nulls_last, model.order.asc(), model.created_at.desc()]


def next_order(db: Session, model, *criteria) -> int:
    """Max existing order (NULL counted as 0) plus one; 0 for an empty collection."""
    current = db.query(func.max(func.coalesce(model.order, 0))).filter(*criteria).scalar()
    return 0 if current is None else current + 1


def apply_order_updates(db: Session, model, updates: Iterable[OrderUpdate], *criteria) -> int:
    """Write the given order values; ids outside ``criteria`` are ignored."""
    by_id = {update.id: update.order for update in updates}
    if not by_id:
        return 0
    rows: List = db.query(model).filter(model.id.in_(list(by_id)), *criteria).all()
    now = utcnow()
    for row in rows:
        row.order = by_id[row.id]
        row.updated_at = now
    db.commit()
    return len(rows)


__all__ = ["apply_order_updates", "display_order", "next_order"]
