"""
Tests for the ticket scan state machine and scan history.
"""

import pytest
from httpx import AsyncClient

from event_checkin_api.app.core.db import get_connection
from event_checkin_api.app.schemas.registration import RegistrationCreate, RegistrationStatus
from event_checkin_api.app.services.registration_service import REGISTRATION_COLUMNS, RegistrationService
from event_checkin_api.app.services.ticket_service import (
    MAX_SCAN_ATTEMPTS,
    MSG_EXHAUSTED,
    MSG_MAX_REACHED,
    MSG_NO_QR,
    MSG_NOT_FOUND,
    MSG_RESCAN,
    TicketService,
)


async def _issued_ticket(group_size: int = 1) -> str:
    registration = await RegistrationService.create_registration(
        RegistrationCreate(name="Door Test", email="door@example.com", group_size=group_size)
    )
    assert await RegistrationService.generate_qr_code(registration.id)
    return registration.id


def _snapshot(ticket_id: str) -> dict:
    conn = get_connection()
    try:
        return dict(conn.execute(f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE id = ?", (ticket_id,)).fetchone())
    finally:
        conn.close()


def _set_counters(ticket_id: str, scans: int, status: str) -> None:
    conn = get_connection()
    try:
        conn.execute("UPDATE registrations SET scans = ?, status = ? WHERE id = ?", (scans, status, ticket_id))
        conn.commit()
    finally:
        conn.close()


def _serve_stale_rows(monkeypatch, stale: dict, count: int) -> dict:
    """Make the first ``count`` ticket reads return ``stale``; later reads hit the database."""
    original = TicketService._fetch
    calls = {"n": 0}

    def fetch(cursor, ticket_id):
        calls["n"] += 1
        if calls["n"] <= count:
            return stale
        return original(cursor, ticket_id)

    monkeypatch.setattr(TicketService, "_fetch", staticmethod(fetch))
    return calls


class TestVerifyAndScan:
    """The four rejection branches and the admitting branch, in order."""

    @pytest.mark.asyncio
    async def test_unknown_ticket(self):
        result = await TicketService.verify_and_scan("REG0000")
        assert result.valid is False
        assert result.message == MSG_NOT_FOUND
        assert result.registration is None

    @pytest.mark.asyncio
    async def test_ticket_without_qr_code(self):
        registration = await RegistrationService.create_registration(
            RegistrationCreate(name="No QR", email="noqr@example.com")
        )
        result = await TicketService.verify_and_scan(registration.id)
        assert result.valid is False
        assert result.message == MSG_NO_QR
        assert result.registration.scans == 0

    @pytest.mark.asyncio
    async def test_group_ticket_is_admitted_once_per_member(self):
        ticket_id = await _issued_ticket(group_size=2)

        first = await TicketService.verify_and_scan(ticket_id)
        assert first.valid is True
        assert first.message == "Valid! 1/2 scans used"
        assert first.registration.status == RegistrationStatus.CHECKED_IN

        second = await TicketService.verify_and_scan(ticket_id)
        assert second.valid is True
        assert second.message == "Valid! 2/2 scans used"
        assert second.registration.status == RegistrationStatus.EXHAUSTED

        third = await TicketService.verify_and_scan(ticket_id)
        assert third.valid is False
        assert third.message == MSG_EXHAUSTED
        assert third.registration.scans == 2

    @pytest.mark.asyncio
    async def test_used_up_ticket_not_yet_marked_exhausted(self):
        """A ticket whose counters are used up is rejected and marked exhausted."""
        ticket_id = await _issued_ticket(group_size=1)
        conn = get_connection()
        try:
            conn.execute("UPDATE registrations SET scans = 1, status = 'active' WHERE id = ?", (ticket_id,))
            conn.commit()
        finally:
            conn.close()

        result = await TicketService.verify_and_scan(ticket_id)
        assert result.valid is False
        assert result.message == MSG_MAX_REACHED
        assert result.registration.status == RegistrationStatus.EXHAUSTED

        registration = await RegistrationService.get_registration(ticket_id)
        assert registration.scans == 1
        assert registration.status == RegistrationStatus.EXHAUSTED

    @pytest.mark.asyncio
    async def test_surrounding_whitespace_is_ignored(self):
        ticket_id = await _issued_ticket()
        result = await TicketService.verify_and_scan(f"  {ticket_id}\n")
        assert result.valid is True

    @pytest.mark.asyncio
    async def test_last_slot_taken_by_another_scanner(self, monkeypatch):
        """A scan working from a stale read cannot consume an entry another device already used."""
        ticket_id = await _issued_ticket(group_size=1)
        stale = _snapshot(ticket_id)
        _set_counters(ticket_id, scans=1, status=RegistrationStatus.EXHAUSTED.value)
        calls = _serve_stale_rows(monkeypatch, stale, count=1)

        result = await TicketService.verify_and_scan(ticket_id)
        assert calls["n"] > 1
        assert result.valid is False
        assert result.message == MSG_EXHAUSTED
        assert result.registration.scans == 1
        assert (await RegistrationService.get_registration(ticket_id)).scans == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted_with_entries_left(self, monkeypatch):
        """Losing every attempt asks for a rescan instead of reporting a false exhaustion."""
        ticket_id = await _issued_ticket(group_size=2)
        stale = _snapshot(ticket_id)
        _set_counters(ticket_id, scans=1, status=RegistrationStatus.CHECKED_IN.value)
        _serve_stale_rows(monkeypatch, stale, count=MAX_SCAN_ATTEMPTS)

        result = await TicketService.verify_and_scan(ticket_id)
        assert result.valid is False
        assert result.message == MSG_RESCAN
        assert result.registration.scans == 1
        assert result.registration.status == RegistrationStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_revoked_ticket_is_rejected_and_reset(self):
        ticket_id = await _issued_ticket(group_size=2)
        await TicketService.verify_and_scan(ticket_id)
        assert await RegistrationService.revoke_qr_code(ticket_id)

        result = await TicketService.verify_and_scan(ticket_id)
        assert result.valid is False
        assert result.message == MSG_NO_QR
        assert result.registration.scans == 0
        assert result.registration.status == RegistrationStatus.PENDING


class TestScanHistory:
    """Every attempt is recorded, newest first."""

    @pytest.mark.asyncio
    async def test_history_records_valid_and_invalid_attempts(self):
        ticket_id = await _issued_ticket()
        await TicketService.verify_and_scan(ticket_id)
        await TicketService.verify_and_scan(ticket_id)
        await TicketService.verify_and_scan("REG9999")

        history = await TicketService.get_scan_history()
        assert [h.ticket_id for h in history] == ["REG9999", ticket_id, ticket_id]
        assert [h.valid for h in history] == [False, False, True]
        assert history[0].message == MSG_NOT_FOUND
        assert history[1].message == MSG_EXHAUSTED

    @pytest.mark.asyncio
    async def test_history_limit_and_ticket_filter(self):
        ticket_id = await _issued_ticket(group_size=3)
        for _ in range(3):
            await TicketService.verify_and_scan(ticket_id)
        await TicketService.verify_and_scan("REG0001")

        assert len(await TicketService.get_scan_history(limit=2)) == 2
        only_ticket = await TicketService.get_scan_history(ticket_id=ticket_id)
        assert len(only_ticket) == 3
        assert all(h.valid for h in only_ticket)


class TestVerifyEndpoint:
    """HTTP surface of the door check-in."""

    @pytest.mark.asyncio
    async def test_scanner_token_can_verify(self, client: AsyncClient, scanner_headers: dict):
        ticket_id = await _issued_ticket()
        response = await client.get("/api/v1/verify", params={"t": ticket_id}, headers=scanner_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["registration"]["id"] == ticket_id
        assert body["registration"]["status"] == "exhausted"

    @pytest.mark.asyncio
    async def test_rejection_is_not_an_http_error(self, client: AsyncClient, scanner_headers: dict):
        response = await client.get("/api/v1/verify", params={"t": "REG4242"}, headers=scanner_headers)
        assert response.status_code == 200
        assert response.json() == {"valid": False, "message": MSG_NOT_FOUND, "registration": None}

    @pytest.mark.asyncio
    async def test_verify_requires_ticket_and_auth(self, client: AsyncClient, scanner_headers: dict):
        assert (await client.get("/api/v1/verify", params={"t": "REG1000"})).status_code == 401
        assert (await client.get("/api/v1/verify", headers=scanner_headers)).status_code == 422

    @pytest.mark.asyncio
    async def test_scan_history_is_admin_only(
        self, client: AsyncClient, admin_headers: dict, scanner_headers: dict
    ):
        await client.get("/api/v1/verify", params={"t": "REG1234"}, headers=scanner_headers)
        assert (await client.get("/api/v1/scan-history", headers=scanner_headers)).status_code == 403

        response = await client.get("/api/v1/scan-history", params={"limit": 10}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()[0]["ticket_id"] == "REG1234"
        assert response.json()[0]["valid"] is False
