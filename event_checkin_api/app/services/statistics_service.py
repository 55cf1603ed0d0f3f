"""
Service layer for dashboard statistics.

Counts are computed in a single aggregate query over ``registrations``.
"Entries" counts tickets that have been admitted at least once, i.e.
status ``checked-in`` or ``exhausted``; "active" counts tickets that
have not been used yet (``pending`` or ``active``).
"""

from __future__ import annotations

from typing import Optional

from event_checkin_api.app.core.db import get_connection
from event_checkin_api.app.schemas.registration import RegistrationStats


STATS_QUERY = """
    SELECT
        COUNT(*) AS total_registrations,
        COALESCE(SUM(has_qr), 0) AS qr_codes_generated,
        COALESCE(SUM(CASE WHEN status IN ('checked-in', 'exhausted') THEN 1 ELSE 0 END), 0) AS total_entries,
        COALESCE(SUM(CASE WHEN status IN ('active', 'pending') THEN 1 ELSE 0 END), 0) AS active_registrations
    FROM registrations
"""


class StatisticsService:
    """Aggregated registration metrics for the admin dashboard."""

    @classmethod
    async def get_stats(cls, form_id: Optional[int] = None) -> RegistrationStats:
        query = STATS_QUERY
        params: tuple = ()
        if form_id is not None:
            query += " WHERE form_id = ?"
            params = (form_id,)
        conn = get_connection()
        try:
            row = conn.execute(query, params).fetchone()
        finally:
            conn.close()
        return RegistrationStats(**dict(row))

    @classmethod
    async def get_form_stats(cls, form_id: int) -> RegistrationStats:
        """The same metrics as :meth:`get_stats`, restricted to one form."""
        return await cls.get_stats(form_id=form_id)
