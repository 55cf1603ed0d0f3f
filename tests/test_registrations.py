"""
Tests for registration submission, administration and QR issuance.
"""

import pytest
from httpx import AsyncClient

from event_checkin_api.app.schemas.registration import RegistrationStatus
from event_checkin_api.app.services.qr_service import DATA_URL_PREFIX
from event_checkin_api.app.services.registration_service import classify_status


BASE = "/api/v1/registrations"


class TestCreateRegistration:
    """Public submissions."""

    @pytest.mark.asyncio
    async def test_create_sets_initial_ticket_state(self, client: AsyncClient, sample_registration: dict):
        response = await client.post(f"{BASE}/", json=sample_registration)
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["id"].startswith("REG")
        assert body["id"][3:].isdigit()
        assert body["scans"] == 0
        assert body["max_scans"] == 2
        assert body["has_qr"] is False
        assert body["qr_code_data"] is None
        assert body["status"] == "pending"
        assert body["team_members"][0]["name"] == "Jane Roe"

    @pytest.mark.asyncio
    async def test_ticket_ids_are_unique(self, client: AsyncClient, sample_registration: dict):
        ids = set()
        for _ in range(20):
            response = await client.post(f"{BASE}/", json=sample_registration)
            ids.add(response.json()["id"])
        assert len(ids) == 20

    @pytest.mark.asyncio
    @pytest.mark.parametrize("group_size", [0, 5])
    async def test_group_size_out_of_range(self, client: AsyncClient, sample_registration: dict, group_size: int):
        sample_registration.update(group_size=group_size, team_members=[])
        response = await client.post(f"{BASE}/", json=sample_registration)
        assert response.status_code in (400, 422)

    @pytest.mark.asyncio
    async def test_too_many_team_members(self, client: AsyncClient, sample_registration: dict):
        sample_registration["team_members"] = [{"name": "A"}, {"name": "B"}]
        response = await client.post(f"{BASE}/", json=sample_registration)
        assert response.status_code == 400
        assert "team member" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_unknown_form_is_404(self, client: AsyncClient, sample_registration: dict):
        sample_registration["form_id"] = 999
        response = await client.post(f"{BASE}/", json=sample_registration)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_public_ticket_lookup(self, client: AsyncClient, sample_registration: dict):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        response = await client.get(f"{BASE}/{created['id']}")
        assert response.status_code == 200
        assert response.json()["email"] == sample_registration["email"]
        assert (await client.get(f"{BASE}/REG0000")).status_code == 404


class TestListRegistrations:
    """Admin listing with search and pagination."""

    @pytest.mark.asyncio
    async def test_listing_requires_admin(self, client: AsyncClient, scanner_headers: dict):
        assert (await client.get(f"{BASE}/")).status_code == 401
        assert (await client.get(f"{BASE}/", headers=scanner_headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_pagination_keeps_submission_order(self, client: AsyncClient, admin_headers: dict):
        for index in range(5):
            await client.post(f"{BASE}/", json={"name": f"Person {index}", "email": f"p{index}@example.com"})

        response = await client.get(f"{BASE}/", params={"limit": 2, "offset": 1}, headers=admin_headers)
        body = response.json()
        assert body["total"] == 5
        assert body["limit"] == 2
        assert body["offset"] == 1
        assert [r["name"] for r in body["registrations"]] == ["Person 1", "Person 2"]

        everything = (await client.get(f"{BASE}/", headers=admin_headers)).json()
        assert len(everything["registrations"]) == 5

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self, client: AsyncClient, admin_headers: dict):
        await client.post(f"{BASE}/", json={"name": "Alice", "email": "alice@example.com", "organization": "Globex"})
        await client.post(f"{BASE}/", json={"name": "Bob", "email": "bob@example.com", "organization": "Initech"})

        body = (await client.get(f"{BASE}/", params={"search": "gLoB"}, headers=admin_headers)).json()
        assert body["total"] == 1
        assert body["registrations"][0]["name"] == "Alice"

        body = (await client.get(f"{BASE}/", params={"search": "pending"}, headers=admin_headers)).json()
        assert body["total"] == 2

    @pytest.mark.asyncio
    async def test_search_folds_non_ascii_case(self, client: AsyncClient, admin_headers: dict):
        await client.post(f"{BASE}/", json={"name": "Émile Zoë", "email": "emile@example.com", "organization": "ÜBER GmbH"})
        await client.post(f"{BASE}/", json={"name": "Other", "email": "other@example.com"})

        body = (await client.get(f"{BASE}/", params={"search": "émile"}, headers=admin_headers)).json()
        assert body["total"] == 1
        assert body["registrations"][0]["name"] == "Émile Zoë"

        body = (await client.get(f"{BASE}/", params={"search": "über"}, headers=admin_headers)).json()
        assert body["total"] == 1

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, client: AsyncClient, admin_headers: dict):
        await client.post(f"{BASE}/", json={"name": "Plain", "email": "plain@example.com"})
        body = (await client.get(f"{BASE}/", params={"search": "%"}, headers=admin_headers)).json()
        assert body["total"] == 0


class TestUpdateAndDelete:
    """Admin edits."""

    @pytest.mark.asyncio
    async def test_partial_update(self, client: AsyncClient, admin_headers: dict, sample_registration: dict):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        response = await client.put(
            f"{BASE}/{created['id']}",
            json={"organization": "Globex"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["organization"] == "Globex"
        assert body["name"] == sample_registration["name"]

    @pytest.mark.asyncio
    async def test_group_size_change_recomputes_max_scans(
        self, client: AsyncClient, admin_headers: dict, scanner_headers: dict
    ):
        created = (await client.post(f"{BASE}/", json={"name": "Trio", "email": "t@example.com", "group_size": 3})).json()
        await client.post(f"{BASE}/{created['id']}/qr", headers=admin_headers)
        await client.get("/api/v1/verify", params={"t": created["id"]}, headers=scanner_headers)

        body = (
            await client.put(f"{BASE}/{created['id']}", json={"group_size": 1}, headers=admin_headers)
        ).json()
        assert body["max_scans"] == 1
        assert body["scans"] == 1
        assert body["status"] == "exhausted"

    @pytest.mark.asyncio
    async def test_update_rejects_invalid_group(
        self, client: AsyncClient, admin_headers: dict, sample_registration: dict
    ):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        response = await client.put(f"{BASE}/{created['id']}", json={"group_size": 1}, headers=admin_headers)
        # The existing team member no longer fits a group of one.
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_and_delete_unknown(self, client: AsyncClient, admin_headers: dict):
        assert (await client.put(f"{BASE}/REG0000", json={"name": "X"}, headers=admin_headers)).status_code == 404
        assert (await client.delete(f"{BASE}/REG0000", headers=admin_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, admin_headers: dict, sample_registration: dict):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        assert (await client.delete(f"{BASE}/{created['id']}", headers=admin_headers)).status_code == 204
        assert (await client.get(f"{BASE}/{created['id']}")).status_code == 404


class TestQrCodes:
    """Issuing, rendering and revoking QR tickets."""

    @pytest.mark.asyncio
    async def test_generate_qr_code(self, client: AsyncClient, admin_headers: dict, sample_registration: dict):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        response = await client.post(f"{BASE}/{created['id']}/qr", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["has_qr"] is True
        assert body["status"] == "active"
        assert body["qr_code_data"].startswith(DATA_URL_PREFIX)

        png = await client.get(f"{BASE}/{created['id']}/qr.png")
        assert png.status_code == 200
        assert png.headers["content-type"] == "image/png"
        assert png.content.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_qr_png_missing_before_issue(self, client: AsyncClient, sample_registration: dict):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        assert (await client.get(f"{BASE}/{created['id']}/qr.png")).status_code == 404

    @pytest.mark.asyncio
    async def test_generate_for_unknown_registration(self, client: AsyncClient, admin_headers: dict):
        assert (await client.post(f"{BASE}/REG0000/qr", headers=admin_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_revoke_resets_ticket(
        self, client: AsyncClient, admin_headers: dict, scanner_headers: dict, sample_registration: dict
    ):
        created = (await client.post(f"{BASE}/", json=sample_registration)).json()
        await client.post(f"{BASE}/{created['id']}/qr", headers=admin_headers)
        await client.get("/api/v1/verify", params={"t": created["id"]}, headers=scanner_headers)

        body = (await client.delete(f"{BASE}/{created['id']}/qr", headers=admin_headers)).json()
        assert body["has_qr"] is False
        assert body["qr_code_data"] is None
        assert body["scans"] == 0
        assert body["status"] == "pending"


class TestClassifyStatus:
    def test_classification(self):
        assert classify_status(False, 0, 2) == RegistrationStatus.PENDING
        assert classify_status(True, 0, 2) == RegistrationStatus.ACTIVE
        assert classify_status(True, 1, 2) == RegistrationStatus.CHECKED_IN
        assert classify_status(True, 2, 2) == RegistrationStatus.EXHAUSTED
