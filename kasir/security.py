"""
Password hashing and audit trail.
- Password hashing via bcrypt
- Stock-affecting transitions and user changes are audit-logged
"""
from typing import Optional, Dict
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import bcrypt
import logging

from kasir.config import settings
from kasir import models

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    # bcrypt only reads the first 72 bytes
    return bcrypt.hashpw(password.encode("utf-8")[:72], salt).decode("utf-8")


def audit_log_action(
    db: Session,
    user_id: Optional[int],
    action: str,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    old_values: Optional[Dict] = None,
    new_values: Optional[Dict] = None,
    notes: Optional[str] = None
):
    """
    Create audit log entry in its own commit, after the audited change.
    Audit failure is logged and never undoes the main operation.
    """
    try:
        db.add(models.AuditLog(
            user_id=user_id,
            action=action,
            table_name=table_name,
            record_id=record_id,
            old_values=old_values,
            new_values=new_values,
            notes=notes
        ))
        db.commit()
        logger.info(f"Audit log created: {action} by user {user_id}")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create audit log: {e}")
        db.rollback()
