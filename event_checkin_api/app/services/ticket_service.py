"""
Ticket verification at the door.

``verify_and_scan`` walks a fixed sequence of checks: unknown ticket,
QR code not issued, already exhausted, no scans left.  If all checks
pass it consumes one scan.  The scan itself is a single conditional
``UPDATE`` guarded on the same conditions, so two devices scanning the
last remaining entry at the same moment cannot both be admitted; the
loser re-reads the ticket and is told it is exhausted.

Every attempt, valid or not, is appended to ``scan_history``.
"""

import logging
import sqlite3
from typing import List, Optional, Tuple

from event_checkin_api.app.core.db import get_connection, now_iso
from event_checkin_api.app.schemas.registration import (
    RegistrationStatus,
    ScanRecord,
    ScanResult,
)
from event_checkin_api.app.services.audit_service import AuditService
from event_checkin_api.app.services.registration_service import (
    REGISTRATION_COLUMNS,
    row_to_registration,
)


logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Invalid ticket - not found"
MSG_NO_QR = "QR code not generated yet"
MSG_EXHAUSTED = "Ticket exhausted - max scans reached"
MSG_MAX_REACHED = "Maximum scans reached"
MSG_RESCAN = "Ticket busy - please scan again"

# A conditional update can only lose a race a handful of times before
# the ticket is exhausted or revoked; this bounds the retry loop.
MAX_SCAN_ATTEMPTS = 5


def _rejection(cursor: sqlite3.Cursor, row: Optional[sqlite3.Row]) -> Optional[str]:
    """Return the reason a ticket cannot be scanned, or ``None`` if it can.

    A ticket that has used all its scans but was never marked
    exhausted (e.g. its group size was reduced) is marked exhausted
    here as a side effect.
    """
    if row is None:
        return MSG_NOT_FOUND
    if not row["has_qr"]:
        return MSG_NO_QR
    if row["status"] == RegistrationStatus.EXHAUSTED.value:
        return MSG_EXHAUSTED
    if row["scans"] >= row["max_scans"]:
        cursor.execute(
            "UPDATE registrations SET status = ? WHERE id = ?",
            (RegistrationStatus.EXHAUSTED.value, row["id"]),
        )
        return MSG_MAX_REACHED
    return None


class TicketService:
    """Service implementing the ticket scan state machine and scan history."""

    @classmethod
    async def verify_and_scan(cls, ticket_id: str, current_user: Optional[dict] = None) -> ScanResult:
        """Validate a presented ticket and consume one scan if allowed.

        Returns a ``ScanResult`` whose ``message`` is suitable for
        display at the door.  Never raises for an invalid ticket.
        """
        ticket_id = ticket_id.strip()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            valid, message, row = cls._scan(cursor, ticket_id)
            cursor.execute(
                "INSERT INTO scan_history (ticket_id, scanned_at, valid, message) VALUES (?, ?, ?, ?)",
                (ticket_id, now_iso(), int(valid), message),
            )
            conn.commit()
        finally:
            conn.close()

        registration = row_to_registration(row) if row is not None else None
        if valid:
            logger.info("Ticket %s admitted: %s", ticket_id, message)
            await AuditService.record(
                user_id=(current_user or {}).get("user_id"),
                action="scan",
                object_type="registration",
                object_id=ticket_id,
                details={"scans": registration.scans, "max_scans": registration.max_scans},
            )
        else:
            logger.warning("Ticket %s rejected: %s", ticket_id, message)
        return ScanResult(valid=valid, message=message, registration=registration)

    @staticmethod
    def _fetch(cursor: sqlite3.Cursor, ticket_id: str) -> Optional[sqlite3.Row]:
        return cursor.execute(
            f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE id = ?",
            (ticket_id,),
        ).fetchone()

    @classmethod
    def _scan(cls, cursor: sqlite3.Cursor, ticket_id: str) -> Tuple[bool, str, Optional[sqlite3.Row]]:
        for _ in range(MAX_SCAN_ATTEMPTS):
            row = cls._fetch(cursor, ticket_id)
            reason = _rejection(cursor, row)
            if reason is not None:
                return False, reason, cls._fetch(cursor, ticket_id) if row is not None else None
            cursor.execute(
                """
                UPDATE registrations
                SET scans = scans + 1,
                    status = CASE WHEN scans + 1 >= max_scans THEN ? ELSE ? END
                WHERE id = ? AND has_qr = 1 AND status != ? AND scans = ? AND scans < max_scans
                """,
                (
                    RegistrationStatus.EXHAUSTED.value,
                    RegistrationStatus.CHECKED_IN.value,
                    ticket_id,
                    RegistrationStatus.EXHAUSTED.value,
                    row["scans"],
                ),
            )
            if cursor.rowcount == 1:
                row = cls._fetch(cursor, ticket_id)
                return True, f"Valid! {row['scans']}/{row['max_scans']} scans used", row
        # Out of attempts: classify the ticket as it stands now.
        row = cls._fetch(cursor, ticket_id)
        reason = _rejection(cursor, row) or MSG_RESCAN
        return False, reason, cls._fetch(cursor, ticket_id) if row is not None else None

    @classmethod
    async def get_scan_history(cls, limit: int = 50, ticket_id: Optional[str] = None) -> List[ScanRecord]:
        """Most recent scan attempts first, optionally for one ticket."""
        query = "SELECT id, ticket_id, scanned_at, valid, message FROM scan_history"
        params: list = []
        if ticket_id:
            query += " WHERE ticket_id = ?"
            params.append(ticket_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [
            ScanRecord(
                id=row["id"],
                ticket_id=row["ticket_id"],
                scanned_at=row["scanned_at"],
                valid=bool(row["valid"]),
                message=row["message"],
            )
            for row in rows
        ]
