"""
Business logic for registrations and ticket issuance.

A registration starts ``pending``.  Issuing a QR code makes it
``active``; from there the ticket scan state machine in
``ticket_service`` moves it to ``checked-in`` and finally
``exhausted``.  Revoking the QR code resets the ticket to ``pending``
with zero scans.

Registrations are keyed by a short human-readable ticket id
(``REG1234``).  Ids are random; on collision a new id is drawn and the
numeric part widens once the current width is crowded.
"""

import json
import logging
import secrets
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from event_checkin_api.app.core.config import settings
from event_checkin_api.app.core.db import get_connection, now_iso
from event_checkin_api.app.schemas.form import EventFormRead, default_base_fields
from event_checkin_api.app.schemas.registration import (
    RegistrationCreate,
    RegistrationRead,
    RegistrationStatus,
)
from event_checkin_api.app.services.audit_service import AuditService
from event_checkin_api.app.services.qr_service import QRCodeService


logger = logging.getLogger(__name__)

TICKET_PREFIX = "REG"
TICKET_DIGITS = 4
ATTEMPTS_PER_WIDTH = 10

REGISTRATION_COLUMNS = (
    "id, name, email, phone, organization, group_size, scans, max_scans, has_qr, "
    "qr_code_data, status, created_at, form_id, custom_field_data, team_members"
)
SEARCH_COLUMNS = ("id", "name", "email", "phone", "organization", "status")
# Maps base field keys on a form to registration attributes.
BASE_FIELD_ATTRIBUTES = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "organization": "organization",
}


def row_to_registration(row: sqlite3.Row) -> RegistrationRead:
    data = dict(row)
    data["has_qr"] = bool(data["has_qr"])
    data["custom_field_data"] = json.loads(data["custom_field_data"] or "{}")
    data["team_members"] = json.loads(data["team_members"] or "[]")
    return RegistrationRead(**data)


def classify_status(has_qr: bool, scans: int, max_scans: int) -> RegistrationStatus:
    """Status implied by the QR flag and scan counters."""
    if not has_qr:
        return RegistrationStatus.PENDING
    if scans >= max_scans:
        return RegistrationStatus.EXHAUSTED
    if scans > 0:
        return RegistrationStatus.CHECKED_IN
    return RegistrationStatus.ACTIVE


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _validate_group(group_size: int, team_members: List[Any]) -> None:
    if group_size < 1 or group_size > settings.max_group_size:
        raise ValueError(f"Group size must be between 1 and {settings.max_group_size}")
    if len(team_members) > group_size - 1:
        raise ValueError(
            f"A group of {group_size} can list at most {group_size - 1} team member(s) besides the registrant"
        )


def validate_against_form(data: RegistrationCreate, form: EventFormRead) -> None:
    """Check a submission against the form's required fields.

    Raises ``ValueError`` naming the first missing field.  Disabled
    base fields are never required.
    """
    base_fields = default_base_fields()
    base_fields.update(form.base_fields)
    for key, attribute in BASE_FIELD_ATTRIBUTES.items():
        config = base_fields.get(key)
        if config and config.enabled and config.required and _is_blank(getattr(data, attribute)):
            raise ValueError(f"{config.label} is required")
    for field in form.custom_fields:
        if field.required and _is_blank(data.custom_field_data.get(field.id, data.custom_field_data.get(field.label))):
            raise ValueError(f"{field.label} is required")


def _search_clause(search: Optional[str]) -> Tuple[str, List[Any]]:
    if not search:
        return "", []
    escaped = search.casefold().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    # CASEFOLD is registered by core.db.get_connection.
    clause = " OR ".join(f"CASEFOLD({column}) LIKE ? ESCAPE '\\'" for column in SEARCH_COLUMNS)
    return f"({clause})", [pattern] * len(SEARCH_COLUMNS)


class RegistrationService:
    """Service for registrations and their QR tickets."""

    @staticmethod
    def _generate_ticket_id(cursor: sqlite3.Cursor) -> str:
        digits = TICKET_DIGITS
        attempts = 0
        while True:
            low = 10 ** (digits - 1)
            candidate = f"{TICKET_PREFIX}{low + secrets.randbelow(9 * low)}"
            if not cursor.execute("SELECT 1 FROM registrations WHERE id = ?", (candidate,)).fetchone():
                return candidate
            attempts += 1
            if attempts % ATTEMPTS_PER_WIDTH == 0:
                digits += 1

    @classmethod
    async def create_registration(cls, data: RegistrationCreate) -> RegistrationRead:
        """Register an attendee or group and return the new record.

        If ``form_id`` is set, the form must exist and be published and
        the submission must satisfy its required fields.  Raises
        ``LookupError`` for an unknown form and ``ValueError`` for any
        other invalid submission.
        """
        _validate_group(data.group_size, data.team_members)
        if data.form_id is not None:
            from event_checkin_api.app.services.form_service import FormService
            form = await FormService.get_event_form(data.form_id)
            if form is None:
                raise LookupError(f"Form {data.form_id} not found")
            if not form.is_published:
                raise ValueError("This form is not accepting registrations")
            validate_against_form(data, form)

        payload = data.model_dump(mode="json")
        created_at = now_iso()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            ticket_id = cls._generate_ticket_id(cursor)
            cursor.execute(
                f"""
                INSERT INTO registrations ({REGISTRATION_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, 0, NULL, ?, ?, ?, ?, ?)
                """,
                (
                    ticket_id,
                    payload["name"],
                    payload["email"],
                    payload["phone"],
                    payload["organization"],
                    data.group_size,
                    data.group_size,
                    RegistrationStatus.PENDING.value,
                    created_at,
                    data.form_id,
                    json.dumps(payload["custom_field_data"]),
                    json.dumps(payload["team_members"]),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Registration %s created for %s (group of %s)", ticket_id, data.email, data.group_size)
        await AuditService.record(
            user_id=None,
            action="create",
            object_type="registration",
            object_id=ticket_id,
            details={"form_id": data.form_id, "group_size": data.group_size},
        )
        return RegistrationRead(
            id=ticket_id,
            scans=0,
            max_scans=data.group_size,
            has_qr=False,
            qr_code_data=None,
            status=RegistrationStatus.PENDING,
            created_at=created_at,
            **payload,
        )

    @classmethod
    async def get_registration(cls, registration_id: str) -> Optional[RegistrationRead]:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE id = ?",
                (registration_id,),
            ).fetchone()
        finally:
            conn.close()
        return row_to_registration(row) if row else None

    @classmethod
    async def list_registrations(
        cls,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        form_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[RegistrationRead]:
        """List registrations in submission order.

        ``form_id`` restricts to one form; ``search`` is a
        case-insensitive substring match across id, name, email, phone,
        organization and status.  Without ``limit`` all rows from
        ``offset`` onwards are returned.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if form_id is not None:
            where_clauses.append("form_id = ?")
            params.append(form_id)
        clause, search_params = _search_clause(search)
        if clause:
            where_clauses.append(clause)
            params.extend(search_params)
        query = f"SELECT {REGISTRATION_COLUMNS} FROM registrations"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY rowid ASC"
        # SQLite requires a LIMIT clause before OFFSET; -1 means unbounded.
        query += " LIMIT ? OFFSET ?"
        params.extend([limit if limit else -1, offset or 0])

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [row_to_registration(row) for row in rows]

    @classmethod
    async def count_registrations(cls, form_id: Optional[int] = None, search: Optional[str] = None) -> int:
        where_clauses: List[str] = []
        params: List[Any] = []
        if form_id is not None:
            where_clauses.append("form_id = ?")
            params.append(form_id)
        clause, search_params = _search_clause(search)
        if clause:
            where_clauses.append(clause)
            params.extend(search_params)
        query = "SELECT COUNT(*) FROM registrations"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        conn = get_connection()
        try:
            return conn.execute(query, tuple(params)).fetchone()[0]
        finally:
            conn.close()

    @classmethod
    async def update_registration(
        cls,
        registration_id: str,
        updates: Dict[str, Any],
        current_user: Optional[dict] = None,
    ) -> bool:
        """Apply a partial update to a registration.

        ``updates`` comes from ``RegistrationUpdate.model_dump(mode="json",
        exclude_unset=True)``.  A new ``group_size`` also resets
        ``max_scans`` and, for issued tickets, reclassifies the status
        against the new limit.  Returns ``False`` if the registration
        does not exist; raises ``ValueError`` for an invalid group.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE id = ?",
                (registration_id,),
            ).fetchone()
            if not row:
                return False
            current = row_to_registration(row)

            fields: Dict[str, Any] = {}
            for key in ("name", "email", "phone", "organization", "form_id"):
                if key in updates:
                    value = updates[key]
                    fields[key] = value if value is not None or key == "form_id" else ""
            if updates.get("custom_field_data") is not None:
                fields["custom_field_data"] = json.dumps(updates["custom_field_data"])
            team_members = current.team_members
            if updates.get("team_members") is not None:
                team_members = updates["team_members"]
                fields["team_members"] = json.dumps(team_members)
            group_size = current.group_size
            if updates.get("group_size") is not None:
                group_size = updates["group_size"]
                fields["group_size"] = group_size
                fields["max_scans"] = group_size
                fields["status"] = classify_status(current.has_qr, current.scans, group_size).value
            _validate_group(group_size, team_members)

            if fields:
                assignments = ", ".join(f"{key} = ?" for key in fields)
                cursor.execute(
                    f"UPDATE registrations SET {assignments} WHERE id = ?",
                    (*fields.values(), registration_id),
                )
                conn.commit()
        finally:
            conn.close()
        await AuditService.record(
            user_id=(current_user or {}).get("user_id"),
            action="update",
            object_type="registration",
            object_id=registration_id,
            details={"fields": sorted(updates)},
        )
        return True

    @classmethod
    async def delete_registration(cls, registration_id: str, current_user: Optional[dict] = None) -> bool:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM registrations WHERE id = ?", (registration_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        if deleted:
            logger.info("Registration %s deleted", registration_id)
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="delete",
                object_type="registration",
                object_id=registration_id,
            )
        return deleted

    @classmethod
    async def generate_qr_code(cls, registration_id: str, current_user: Optional[dict] = None) -> bool:
        """Issue a QR ticket: store the PNG data URL and mark the ticket active.

        Re-issuing keeps the scan counter; only :meth:`revoke_qr_code`
        resets it.  Returns ``False`` for an unknown registration.
        """
        qr_code_data = QRCodeService.ticket_data_url(registration_id)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE registrations SET has_qr = 1, qr_code_data = ?, status = ? WHERE id = ?",
                (qr_code_data, RegistrationStatus.ACTIVE.value, registration_id),
            )
            updated = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        if updated:
            logger.info("QR code issued for %s", registration_id)
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="issue_qr",
                object_type="registration",
                object_id=registration_id,
            )
        return updated

    @classmethod
    async def revoke_qr_code(cls, registration_id: str, current_user: Optional[dict] = None) -> bool:
        """Withdraw a ticket: drop the QR code, reset scans and return to ``pending``."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE registrations SET has_qr = 0, qr_code_data = NULL, status = ?, scans = 0 WHERE id = ?",
                (RegistrationStatus.PENDING.value, registration_id),
            )
            updated = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        if updated:
            logger.info("QR code revoked for %s", registration_id)
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="revoke_qr",
                object_type="registration",
                object_id=registration_id,
            )
        return updated
