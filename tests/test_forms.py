"""
Tests for event forms: CRUD, the single-published-form rule and
form-driven registration validation.
"""

import pytest
from httpx import AsyncClient

from event_checkin_api.app.schemas.form import EventFormCreate
from event_checkin_api.app.services.form_service import FormService


FORMS = "/api/v1/forms"


async def _create_form(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post(f"{FORMS}/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestFormCrud:
    """Administrative form management."""

    @pytest.mark.asyncio
    async def test_new_forms_start_unpublished(self, client: AsyncClient, admin_headers: dict, sample_form: dict):
        form = await _create_form(client, admin_headers, sample_form)
        assert form["is_published"] is False
        assert form["created_at"] == form["updated_at"]
        assert [f["id"] for f in form["custom_fields"]] == ["diet", "photo"]

    @pytest.mark.asyncio
    async def test_update_bumps_updated_at(self, client: AsyncClient, admin_headers: dict, sample_form: dict):
        form = await _create_form(client, admin_headers, sample_form)
        response = await client.put(
            f"{FORMS}/{form['id']}",
            json={"subtitle": "Doors open at nine"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["subtitle"] == "Doors open at nine"
        assert body["title"] == sample_form["title"]
        assert body["updated_at"] >= form["updated_at"]

    @pytest.mark.asyncio
    async def test_update_rejects_empty_title(self, client: AsyncClient, admin_headers: dict, sample_form: dict):
        form = await _create_form(client, admin_headers, sample_form)
        response = await client.put(f"{FORMS}/{form['id']}", json={"title": None}, headers=admin_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_form(self, client: AsyncClient, admin_headers: dict):
        assert (await client.get(f"{FORMS}/42", headers=admin_headers)).status_code == 404
        assert (await client.put(f"{FORMS}/42", json={"subtitle": "x"}, headers=admin_headers)).status_code == 404
        assert (await client.delete(f"{FORMS}/42", headers=admin_headers)).status_code == 404
        assert (await client.post(f"{FORMS}/42/publish", headers=admin_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_keeps_registrations(
        self, client: AsyncClient, admin_headers: dict, sample_form: dict, sample_registration: dict
    ):
        form = await _create_form(client, admin_headers, sample_form)
        await client.post(f"{FORMS}/{form['id']}/publish", headers=admin_headers)
        sample_registration.update(form_id=form["id"], custom_field_data={"diet": "None"})
        created = (await client.post("/api/v1/registrations/", json=sample_registration)).json()

        assert (await client.delete(f"{FORMS}/{form['id']}", headers=admin_headers)).status_code == 204
        assert (await client.get(f"/api/v1/registrations/{created['id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_form_admin_requires_admin(self, client: AsyncClient, scanner_headers: dict, sample_form: dict):
        assert (await client.get(f"{FORMS}/", headers=scanner_headers)).status_code == 403
        assert (await client.post(f"{FORMS}/", json=sample_form)).status_code == 401


class TestPublishing:
    """At most one form is published at a time."""

    @pytest.mark.asyncio
    async def test_publishing_unpublishes_others(self, client: AsyncClient, admin_headers: dict, sample_form: dict):
        first = await _create_form(client, admin_headers, sample_form)
        second = await _create_form(client, admin_headers, {**sample_form, "title": "Workshop"})

        assert (await client.post(f"{FORMS}/{first['id']}/publish", headers=admin_headers)).json()["is_published"]
        published = (await client.get(f"{FORMS}/published")).json()
        assert published["id"] == first["id"]

        await client.post(f"{FORMS}/{second['id']}/publish", headers=admin_headers)
        forms = (await client.get(f"{FORMS}/", headers=admin_headers)).json()
        assert [f["is_published"] for f in forms] == [False, True]
        assert (await client.get(f"{FORMS}/published")).json()["title"] == "Workshop"

    @pytest.mark.asyncio
    async def test_no_published_form(self, client: AsyncClient, admin_headers: dict, sample_form: dict):
        form = await _create_form(client, admin_headers, sample_form)
        await client.post(f"{FORMS}/{form['id']}/publish", headers=admin_headers)
        response = await client.post(f"{FORMS}/{form['id']}/unpublish", headers=admin_headers)
        assert response.json()["is_published"] is False

        response = await client.get(f"{FORMS}/published")
        assert response.status_code == 200
        assert response.json() is None

    @pytest.mark.asyncio
    async def test_service_publish_invariant(self):
        ids = []
        for title in ("A", "B", "C"):
            form = await FormService.create_event_form(EventFormCreate(title=title))
            ids.append(form.id)
        for form_id in ids:
            assert await FormService.publish_event_form(form_id)
            forms = await FormService.get_all_event_forms()
            assert [f.id for f in forms if f.is_published] == [form_id]


class TestFormRegistrations:
    """Registrations submitted through a form."""

    @pytest.mark.asyncio
    async def test_unpublished_form_rejects_registrations(
        self, client: AsyncClient, admin_headers: dict, sample_form: dict, sample_registration: dict
    ):
        form = await _create_form(client, admin_headers, sample_form)
        sample_registration.update(form_id=form["id"], custom_field_data={"diet": "Vegan"})
        response = await client.post("/api/v1/registrations/", json=sample_registration)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_required_custom_field(
        self, client: AsyncClient, admin_headers: dict, sample_form: dict, sample_registration: dict
    ):
        form = await _create_form(client, admin_headers, sample_form)
        await client.post(f"{FORMS}/{form['id']}/publish", headers=admin_headers)

        sample_registration["form_id"] = form["id"]
        response = await client.post("/api/v1/registrations/", json=sample_registration)
        assert response.status_code == 400
        assert response.json()["detail"] == "Dietary requirements is required"

        sample_registration["custom_field_data"] = {"diet": "Vegan"}
        response = await client.post("/api/v1/registrations/", json=sample_registration)
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_disabled_base_field_is_not_required(
        self, client: AsyncClient, admin_headers: dict, sample_registration: dict
    ):
        form = await _create_form(
            client,
            admin_headers,
            {
                "title": "Minimal",
                "base_fields": {
                    "phone": {"label": "Phone Number", "required": True, "enabled": False},
                    "organization": {"label": "Organization", "required": False},
                },
            },
        )
        await client.post(f"{FORMS}/{form['id']}/publish", headers=admin_headers)
        sample_registration.update(form_id=form["id"], phone="", organization="")
        response = await client.post("/api/v1/registrations/", json=sample_registration)
        assert response.status_code == 201, response.text

        sample_registration["email"] = ""
        response = await client.post("/api/v1/registrations/", json=sample_registration)
        assert response.status_code == 400
        assert response.json()["detail"] == "Email Address is required"

    @pytest.mark.asyncio
    async def test_form_registrations_and_stats(
        self, client: AsyncClient, admin_headers: dict, sample_form: dict, sample_registration: dict
    ):
        form = await _create_form(client, admin_headers, sample_form)
        await client.post(f"{FORMS}/{form['id']}/publish", headers=admin_headers)
        sample_registration.update(form_id=form["id"], custom_field_data={"diet": "Vegan"})
        created = (await client.post("/api/v1/registrations/", json=sample_registration)).json()
        await client.post("/api/v1/registrations/", json={"name": "Walk-in", "email": "w@example.com"})
        await client.post(f"/api/v1/registrations/{created['id']}/qr", headers=admin_headers)

        listing = (await client.get(f"{FORMS}/{form['id']}/registrations", headers=admin_headers)).json()
        assert listing["total"] == 1
        assert listing["registrations"][0]["id"] == created["id"]

        stats = (await client.get(f"{FORMS}/{form['id']}/stats", headers=admin_headers)).json()
        assert stats == {
            "total_registrations": 1,
            "qr_codes_generated": 1,
            "total_entries": 0,
            "active_registrations": 1,
        }
