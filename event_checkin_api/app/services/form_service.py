"""
Business logic for event registration forms.

Forms are stored in the ``event_forms`` table with their list and map
valued attributes serialized as JSON.  Publishing a form unpublishes
every other form in the same transaction, so the public registration
page always has at most one form to show.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from event_checkin_api.app.core.db import get_connection, now_iso
from event_checkin_api.app.schemas.form import EventFormCreate, EventFormRead
from event_checkin_api.app.schemas.registration import RegistrationRead, RegistrationStats
from event_checkin_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

FORM_COLUMNS = (
    "id, title, subtitle, description, hero_image_url, background_image_url, "
    "watermark_url, logo_url, custom_links, custom_fields, base_fields, "
    "success_title, success_message, is_published, created_at, updated_at"
)
JSON_COLUMNS = {"custom_links": "[]", "custom_fields": "[]", "base_fields": "{}"}
UPDATABLE_COLUMNS = {
    "title",
    "subtitle",
    "description",
    "hero_image_url",
    "background_image_url",
    "watermark_url",
    "logo_url",
    "custom_links",
    "custom_fields",
    "base_fields",
    "success_title",
    "success_message",
}


def _row_to_form(row: sqlite3.Row) -> EventFormRead:
    data = dict(row)
    for column, empty in JSON_COLUMNS.items():
        data[column] = json.loads(data[column] or empty)
    data["is_published"] = bool(data["is_published"])
    return EventFormRead(**data)


class FormService:
    """Service for creating, editing and publishing registration forms."""

    @classmethod
    async def create_event_form(cls, data: EventFormCreate, current_user: Optional[dict] = None) -> EventFormRead:
        """Insert a new, unpublished form and return it."""
        payload = data.model_dump(mode="json")
        timestamp = now_iso()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO event_forms (
                    title, subtitle, description, hero_image_url, background_image_url,
                    watermark_url, logo_url, custom_links, custom_fields, base_fields,
                    success_title, success_message, is_published, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    payload["title"],
                    payload["subtitle"],
                    payload["description"],
                    payload["hero_image_url"],
                    payload["background_image_url"],
                    payload["watermark_url"],
                    payload["logo_url"],
                    json.dumps(payload["custom_links"]),
                    json.dumps(payload["custom_fields"]),
                    json.dumps(payload["base_fields"]),
                    payload["success_title"],
                    payload["success_message"],
                    timestamp,
                    timestamp,
                ),
            )
            form_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Created event form %s '%s'", form_id, data.title)
        await AuditService.record(
            user_id=(current_user or {}).get("user_id"),
            action="create",
            object_type="form",
            object_id=form_id,
            details={"title": data.title},
        )
        return EventFormRead(id=form_id, is_published=False, created_at=timestamp, updated_at=timestamp, **payload)

    @classmethod
    async def get_event_form(cls, form_id: int) -> Optional[EventFormRead]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {FORM_COLUMNS} FROM event_forms WHERE id = ?", (form_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_form(row) if row else None

    @classmethod
    async def get_published_form(cls) -> Optional[EventFormRead]:
        """Return the form currently shown on the public page, if any."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {FORM_COLUMNS} FROM event_forms WHERE is_published = 1 ORDER BY id LIMIT 1"
            ).fetchone()
        finally:
            conn.close()
        return _row_to_form(row) if row else None

    @classmethod
    async def get_all_event_forms(cls) -> List[EventFormRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {FORM_COLUMNS} FROM event_forms ORDER BY id").fetchall()
        finally:
            conn.close()
        return [_row_to_form(row) for row in rows]

    @classmethod
    async def update_event_form(
        cls,
        form_id: int,
        updates: Dict[str, Any],
        current_user: Optional[dict] = None,
    ) -> bool:
        """Apply a partial update and bump ``updated_at``.

        ``updates`` is expected to be JSON-compatible (as produced by
        ``EventFormUpdate.model_dump(mode="json", exclude_unset=True)``).
        Unknown keys are ignored.  Returns ``False`` if the form does
        not exist.
        """
        fields: List[str] = []
        values: List[Any] = []
        for key, value in updates.items():
            if key not in UPDATABLE_COLUMNS:
                continue
            if key in JSON_COLUMNS:
                value = json.dumps(value if value is not None else json.loads(JSON_COLUMNS[key]))
            elif key == "title" and not value:
                raise ValueError("Form title cannot be empty")
            fields.append(f"{key} = ?")
            values.append(value)
        fields.append("updated_at = ?")
        values.append(now_iso())
        values.append(form_id)

        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(f"UPDATE event_forms SET {', '.join(fields)} WHERE id = ?", tuple(values))
            updated = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        if updated:
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="update",
                object_type="form",
                object_id=form_id,
                details={"fields": sorted(k for k in updates if k in UPDATABLE_COLUMNS)},
            )
        return updated

    @classmethod
    async def publish_event_form(cls, form_id: int, current_user: Optional[dict] = None) -> bool:
        """Publish ``form_id`` and unpublish all others."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            exists = cursor.execute("SELECT id FROM event_forms WHERE id = ?", (form_id,)).fetchone()
            if not exists:
                return False
            timestamp = now_iso()
            cursor.execute(
                "UPDATE event_forms SET is_published = 0, updated_at = ? WHERE is_published = 1 AND id != ?",
                (timestamp, form_id),
            )
            cursor.execute(
                "UPDATE event_forms SET is_published = 1, updated_at = ? WHERE id = ?",
                (timestamp, form_id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Published event form %s", form_id)
        await AuditService.record(
            user_id=(current_user or {}).get("user_id"),
            action="publish",
            object_type="form",
            object_id=form_id,
        )
        return True

    @classmethod
    async def unpublish_event_form(cls, form_id: int, current_user: Optional[dict] = None) -> bool:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE event_forms SET is_published = 0, updated_at = ? WHERE id = ?",
                (now_iso(), form_id),
            )
            updated = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        if updated:
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="unpublish",
                object_type="form",
                object_id=form_id,
            )
        return updated

    @classmethod
    async def delete_event_form(cls, form_id: int, current_user: Optional[dict] = None) -> bool:
        """Delete a form.

        Registrations submitted through the form are kept; their
        ``form_id`` simply no longer resolves.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM event_forms WHERE id = ?", (form_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
        finally:
            conn.close()
        if deleted:
            logger.info("Deleted event form %s", form_id)
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="delete",
                object_type="form",
                object_id=form_id,
            )
        return deleted

    @classmethod
    async def get_registrations_by_form_id(
        cls,
        form_id: int,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[RegistrationRead]:
        from event_checkin_api.app.services.registration_service import RegistrationService
        return await RegistrationService.list_registrations(limit=limit, offset=offset, form_id=form_id)

    @classmethod
    async def get_registrations_by_form_id_count(cls, form_id: int) -> int:
        from event_checkin_api.app.services.registration_service import RegistrationService
        return await RegistrationService.count_registrations(form_id=form_id)

    @classmethod
    async def get_form_stats(cls, form_id: int) -> RegistrationStats:
        from event_checkin_api.app.services.statistics_service import StatisticsService
        return await StatisticsService.get_form_stats(form_id)
