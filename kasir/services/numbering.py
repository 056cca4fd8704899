"""
Monthly sequential document numbers, e.g. PO-202401-007.
"""
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session


def next_document_number(db: Session, column, prefix: str, now: datetime) -> str:
    """Next ``{prefix}-YYYYMM-NNN`` for the month of ``now``."""
    stem = f"{prefix}-{now.year}{now.month:02d}"
    stmt = select(column).where(column.like(f"{stem}-%")).order_by(column.desc()).limit(1)
    last = db.execute(stmt).scalar_one_or_none()

    next_number = 1
    if last:
        next_number = int(last.rsplit("-", 1)[1]) + 1
    return f"{stem}-{next_number:03d}"
