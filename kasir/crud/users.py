"""
Employee accounts.
Passwords are stored only as bcrypt hashes; emails are kept lower-case.
"""
from sqlalchemy import select, func
from sqlalchemy.orm import Session
import logging
from typing import Any, Dict, List, Optional

from kasir.crud.base import CRUDBase
from kasir.exceptions import ValidationFailed, StateConflict
from kasir.models import User, Order, Shift, Procurement, StockOpname
from kasir.schemas.users import Role, UserIn
from kasir.security import hash_password, audit_log_action

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class CRUDUser(CRUDBase[User]):
    def __init__(self):
        super().__init__(User)

    def list_all(self, db: Session) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc(), User.id.desc())
        return list(db.execute(stmt).scalars().all())

    def _validate(self, db: Session, data: UserIn, *, exclude_id: Optional[int] = None, creating: bool) -> Dict[str, Any]:
        if not data.username or not data.username.strip():
            raise ValidationFailed("Username harus diisi")
        if not data.email or not data.email.strip():
            raise ValidationFailed("Email harus diisi")
        if creating and (not data.password or len(data.password) < MIN_PASSWORD_LENGTH):
            raise ValidationFailed("Password minimal 6 karakter")
        if not creating and data.password and len(data.password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed("Password minimal 6 karakter")
        if not data.first_name or not data.first_name.strip():
            raise ValidationFailed("Nama depan harus diisi")
        if not data.last_name or not data.last_name.strip():
            raise ValidationFailed("Nama belakang harus diisi")
        if data.role not in {r.value for r in Role}:
            raise ValidationFailed("Role tidak valid")

        username = data.username.strip()
        email = data.email.strip().lower()
        if self.exists_other(db, "username", username, exclude_id):
            raise ValidationFailed("Username sudah digunakan")
        if self.exists_other(db, "email", email, exclude_id):
            raise ValidationFailed("Email sudah digunakan")

        values = {
            "username": username,
            "email": email,
            "first_name": data.first_name.strip(),
            "last_name": data.last_name.strip(),
            "role": data.role,
        }
        if data.password:
            values["password_hash"] = hash_password(data.password)
        if data.is_active is not None:
            values["is_active"] = data.is_active
        return values

    def create_user(self, db: Session, data: UserIn) -> User:
        values = self._validate(db, data, creating=True)
        values.setdefault("is_active", True)
        user = self.create(db, obj_in=values)
        logger.info(f"User {user.username} created with role {user.role}")
        audit_log_action(db, None, "USER_CREATED", table_name="users", record_id=user.id,
                         new_values={"username": user.username, "role": user.role})
        return user

    def update_user(self, db: Session, user: User, data: UserIn) -> User:
        values = self._validate(db, data, exclude_id=user.id, creating=False)
        old_values = {"username": user.username, "role": user.role, "is_active": user.is_active}
        user = self.update(db, db_obj=user, obj_in=values)
        logger.info(f"User {user.username} updated")
        audit_log_action(db, None, "USER_UPDATED", table_name="users", record_id=user.id,
                         old_values=old_values,
                         new_values={"username": user.username, "role": user.role, "is_active": user.is_active})
        return user

    def has_related_records(self, db: Session, user_id: int) -> bool:
        for model, column in ((Order, Order.cashier_id), (Shift, Shift.cashier_id),
                              (Procurement, Procurement.created_by_id),
                              (StockOpname, StockOpname.created_by_id)):
            count = db.execute(select(func.count(model.id)).where(column == user_id)).scalar_one()
            if count:
                return True
        return False

    def delete_user(self, db: Session, user: User, permanent: bool = False) -> str:
        """Deactivate the user, or hard-delete when ``permanent`` and unreferenced."""
        user_id = user.id
        if permanent:
            if self.has_related_records(db, user_id):
                raise StateConflict(
                    "Karyawan tidak dapat dihapus karena memiliki riwayat transaksi atau data terkait"
                )
            self.remove(db, db_obj=user)
            logger.info(f"User {user_id} deleted permanently")
            audit_log_action(db, None, "USER_DELETED", table_name="users", record_id=user_id)
            return "Karyawan berhasil dihapus"

        self.update(db, db_obj=user, obj_in={"is_active": False})
        logger.info(f"User {user_id} deactivated")
        audit_log_action(db, None, "USER_DEACTIVATED", table_name="users", record_id=user_id)
        return "Karyawan berhasil dinonaktifkan"


crud_user = CRUDUser()
