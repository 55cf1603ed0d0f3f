"""
Business logic for staff accounts.

Staff log in with email and password to obtain a bearer token.  The
first administrator is created by ``core.db.init_db``; further
administrators and scanner accounts are managed here.
"""

import logging
import sqlite3
from typing import List, Optional

from event_checkin_api.app.core.db import get_connection
from event_checkin_api.app.core.security import ROLE_ADMIN, hash_password, verify_password
from event_checkin_api.app.schemas.staff import StaffCreate, StaffRead
from event_checkin_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

STAFF_COLUMNS = "id, email, full_name, role_id, disabled"


def _row_to_staff(row: sqlite3.Row) -> StaffRead:
    return StaffRead(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role_id=row["role_id"],
        disabled=bool(row["disabled"]),
    )


class StaffService:
    """Service for staff accounts and credential checks."""

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[StaffRead]:
        """Return the staff member if the credentials match and the account is enabled."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {STAFF_COLUMNS}, password FROM staff WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or row["disabled"] or not verify_password(password, row["password"]):
            logger.warning("Failed login attempt for %s", email)
            return None
        return _row_to_staff(row)

    @classmethod
    async def get_staff(cls, staff_id: int) -> Optional[StaffRead]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {STAFF_COLUMNS} FROM staff WHERE id = ?", (staff_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_staff(row) if row else None

    @classmethod
    async def list_staff(cls) -> List[StaffRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {STAFF_COLUMNS} FROM staff ORDER BY id").fetchall()
        finally:
            conn.close()
        return [_row_to_staff(row) for row in rows]

    @classmethod
    async def create_staff(cls, data: StaffCreate, current_user: Optional[dict] = None) -> StaffRead:
        """Create a staff account.  Raises ``ValueError`` if the email is taken."""
        email = data.email.strip().lower()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "INSERT INTO staff (email, full_name, password, role_id) VALUES (?, ?, ?, ?)",
                    (email, data.full_name, hash_password(data.password), data.role_id),
                )
            except sqlite3.IntegrityError as e:
                raise ValueError(f"Staff account {email} already exists") from e
            staff_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Staff account %s created with role %s", email, data.role_id)
        await AuditService.record(
            user_id=(current_user or {}).get("user_id"),
            action="create",
            object_type="staff",
            object_id=staff_id,
            details={"email": email, "role_id": data.role_id},
        )
        return StaffRead(id=staff_id, email=email, full_name=data.full_name, role_id=data.role_id)

    @classmethod
    async def delete_staff(cls, staff_id: int, current_user: Optional[dict] = None) -> bool:
        """Delete a staff account.

        Returns ``False`` if it does not exist.  Raises ``ValueError``
        when asked to delete the acting account or the last
        administrator, either of which would lock admins out.
        """
        if current_user and current_user.get("user_id") == staff_id:
            raise ValueError("You cannot delete your own account")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT role_id FROM staff WHERE id = ?", (staff_id,)).fetchone()
            if not row:
                return False
            if row["role_id"] == ROLE_ADMIN:
                admins = cursor.execute(
                    "SELECT COUNT(*) FROM staff WHERE role_id = ? AND disabled = 0",
                    (ROLE_ADMIN,),
                ).fetchone()[0]
                if admins <= 1:
                    raise ValueError("Cannot delete the last administrator")
            cursor.execute("DELETE FROM staff WHERE id = ?", (staff_id,))
            conn.commit()
        finally:
            conn.close()
        logger.info("Staff account %s deleted", staff_id)
        await AuditService.record(
            user_id=(current_user or {}).get("user_id"),
            action="delete",
            object_type="staff",
            object_id=staff_id,
        )
        return True
