"""
Tests for the Listing and Admin API

Tests covering:
1. Health, reference data and published templates
2. HTML form preview
3. Listing create / draft / submit flow and error mapping
4. Template administration lifecycle
5. Moderation listing and transitions
"""

from __future__ import annotations

import inspect

import pytest
import requests
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from listing_engine.forms import reset_template_repository
from listing_engine.reference import reset_reference_provider
from listing_engine.workflow import reset_listing_repository
from utils.config import Config
from web.app import create_app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client():
    """Client over a fresh in-memory app with the default templates seeded."""
    reset_reference_provider()
    reset_template_repository()
    reset_listing_repository()
    config = Config(
        reference_api_url=None,
        data_dir=None,
        seed_default_templates=True,
        check_option_membership=True,
    )
    with TestClient(create_app(config)) as test_client:
        yield test_client
    reset_reference_provider()
    reset_template_repository()
    reset_listing_repository()


@pytest.fixture
def template_id(client):
    response = client.get("/api/form-templates", params={"seller_type": "individual"})
    return response.json()["items"][0]["template_id"]


@pytest.fixture
def listing_id(client, template_id):
    """A draft listing owned by owner-1."""
    response = client.post("/api/listings", json={"template_id": template_id, "owner_id": "owner-1"})
    return response.json()["listing_id"]


def _submit_valid(client, listing_id, valid_values):
    response = client.post(f"/api/listings/{listing_id}/submit", json={"values": valid_values})
    assert response.status_code == 200
    return response


def _transition(client, listing_id, target, reason=None):
    return client.post(
        f"/api/admin/listings/{listing_id}/transition",
        json={"target_state": target, "reason": reason},
    )


# =============================================================================
# Health and Reference Data
# =============================================================================


class TestReferenceEndpoints:
    """Tests for health and reference data routes."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_states(self, client):
        items = client.get("/api/reference/states").json()["items"]
        assert len(items) == 36
        assert {"code", "name", "type"} <= set(items[0])

    def test_linked_options(self, client):
        items = client.get("/api/reference/linked-options", params={"parent": "Maharashtra"}).json()["items"]
        names = [i["name"] for i in items]
        assert "Mumbai" in names

    def test_linked_options_unknown_parent(self, client):
        response = client.get("/api/reference/linked-options", params={"parent": "Atlantis"})
        assert response.json() == {"items": []}

    def test_categories(self, client):
        items = client.get("/api/reference/categories").json()["items"]
        assert "Apartments" in [i["name"] for i in items]


# =============================================================================
# Form Templates
# =============================================================================


class TestFormTemplateEndpoints:
    """Tests for public template routes."""

    def test_one_published_template_per_seller_type(self, client):
        items = client.get("/api/form-templates").json()["items"]
        assert sorted(i["seller_type"] for i in items) == ["broker", "builder", "individual"]
        assert all(i["status"] == "published" for i in items)

    def test_invalid_seller_type(self, client):
        assert client.get("/api/form-templates", params={"seller_type": "agent"}).status_code == 400

    def test_get_template(self, client, template_id):
        data = client.get(f"/api/form-templates/{template_id}").json()
        assert data["template_id"] == template_id
        assert data["sections"][0]["name"] == "Basic Info"

    def test_unknown_template(self, client):
        assert client.get("/api/form-templates/TPL-MISSING").status_code == 404

    def test_preview_renders_test_ids(self, client, template_id):
        response = client.get(f"/api/form-templates/{template_id}/preview")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        html = response.text
        assert 'data-testid="select-state"' in html
        assert 'data-testid="field-wrapper-property_title"' in html
        assert 'data-testid="checkbox-group-amenities"' in html

    def test_preview_single_stage(self, client, template_id):
        html = client.get(f"/api/form-templates/{template_id}/preview", params={"stage": 3}).text
        assert 'data-testid="field-wrapper-property_images"' in html
        assert 'data-testid="field-wrapper-property_title"' not in html


# =============================================================================
# Listing Flow
# =============================================================================


class TestListingEndpoints:
    """Tests for the listing persistence API."""

    def test_create_listing(self, client, template_id):
        response = client.post("/api/listings", json={"template_id": template_id, "owner_id": "owner-1"})
        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "draft"
        assert data["progress_label"] == "20%"
        assert data["state_label"] == "Draft"

    def test_save_draft(self, client, listing_id):
        response = client.put(f"/api/listings/{listing_id}/draft", json={"values": {"locality": "Baner"}})
        assert response.status_code == 200
        assert client.get(f"/api/listings/{listing_id}").json()["values"] == {"locality": "Baner"}

    def test_invalid_submit_returns_errors(self, client, listing_id):
        response = client.post(f"/api/listings/{listing_id}/submit", json={})
        assert response.status_code == 422
        errors = response.json()["errors"]
        assert errors["state"] == "State is required"
        assert errors["property_images"] == "Property Images is required"

    @pytest.mark.parametrize("images", [["front.jpg"], [{"content_type": "image/jpeg"}]])
    def test_malformed_files_return_error_map(self, client, listing_id, valid_values, images):
        valid_values["property_images"] = images
        response = client.post(f"/api/listings/{listing_id}/submit", json={"values": valid_values})
        assert response.status_code == 422
        assert response.json()["errors"] == {"property_images": "Property Images contains an invalid file"}

    def test_valid_submit(self, client, listing_id, valid_values):
        response = _submit_valid(client, listing_id, valid_values)
        assert response.json() == {"listing_id": listing_id, "state": "submitted"}

    def test_draft_save_on_submitted_listing_is_locked(self, client, listing_id, valid_values):
        _submit_valid(client, listing_id, valid_values)
        response = client.put(f"/api/listings/{listing_id}/draft", json={"values": {"locality": "Juhu"}})
        assert response.status_code == 423
        assert response.json()["state"] == "submitted"

    def test_unknown_listing(self, client):
        assert client.get("/api/listings/LST-MISSING").status_code == 404
        assert client.post("/api/listings/LST-MISSING/submit", json={}).status_code == 404

    def test_history_chain(self, client, listing_id, valid_values):
        _submit_valid(client, listing_id, valid_values)
        data = client.get(f"/api/listings/{listing_id}/history").json()
        assert data["chain"]["valid"]
        assert [e["action"] for e in data["events"]] == ["created", "submitted"]


# =============================================================================
# Template Administration
# =============================================================================


class TestAdminTemplateEndpoints:
    """Tests for template administration routes."""

    SECTIONS = [
        {
            "name": "Location",
            "stage": 1,
            "fields": [
                {"key": "state", "label": "State", "field_type": "dropdown",
                 "required": True, "source_type": "state_master"},
                {"key": "city", "label": "City", "field_type": "dropdown",
                 "source_type": "linked_to_parent", "linked_field_key": "state"},
            ],
        },
    ]

    def _create(self, client, sections):
        return client.post("/api/admin/form-templates", json={
            "name": "Plots Form",
            "seller_type": "builder",
            "sections": sections,
        })

    def test_create_and_publish(self, client):
        created = self._create(client, self.SECTIONS)
        assert created.status_code == 201
        template = created.json()
        assert template["status"] == "draft"
        assert template["version"] == 1

        published = client.post(f"/api/admin/form-templates/{template['template_id']}/publish")
        assert published.status_code == 200
        assert published.json()["status"] == "published"

    def test_publish_broken_template_reports_issues(self, client):
        broken = [{
            "name": "Location",
            "fields": [{"key": "city", "label": "City", "field_type": "dropdown",
                        "source_type": "linked_to_parent", "linked_field_key": "state"}],
        }]
        template_id = self._create(client, broken).json()["template_id"]

        response = client.post(f"/api/admin/form-templates/{template_id}/publish")

        assert response.status_code == 409
        assert "Field 'city' is linked to unknown field 'state'" in response.json()["issues"]

    def test_create_requires_name_and_seller_type(self, client):
        assert client.post("/api/admin/form-templates", json={"name": " ", "seller_type": "builder"}).status_code == 400
        assert client.post("/api/admin/form-templates", json={"name": "X", "seller_type": "agent"}).status_code == 400

    def test_published_template_cannot_be_edited(self, client, template_id):
        response = client.put(f"/api/admin/form-templates/{template_id}", json={"name": "Renamed"})
        assert response.status_code == 409

    def test_update_draft(self, client):
        template_id = self._create(client, self.SECTIONS).json()["template_id"]
        response = client.put(f"/api/admin/form-templates/{template_id}", json={"name": "Land Form"})
        assert response.json()["name"] == "Land Form"

    def test_clone(self, client, template_id):
        response = client.post(f"/api/admin/form-templates/{template_id}/clone", json={"name": "Copy"})
        assert response.status_code == 201
        clone = response.json()
        assert clone["name"] == "Copy"
        assert clone["status"] == "draft"
        assert clone["template_id"] != template_id

    def test_revise_once_per_lineage(self, client, template_id):
        first = client.post(f"/api/admin/form-templates/{template_id}/revise")
        assert first.status_code == 201
        assert first.json()["version"] == 2

        second = client.post(f"/api/admin/form-templates/{template_id}/revise")
        assert second.status_code == 409

        lineage_id = first.json()["lineage_id"]
        versions = client.get("/api/admin/form-templates", params={"lineage_id": lineage_id}).json()["items"]
        assert [v["version"] for v in versions] == [1, 2]

    def test_archived_template_takes_no_new_listings(self, client, template_id):
        client.post(f"/api/admin/form-templates/{template_id}/archive")
        response = client.post("/api/listings", json={"template_id": template_id, "owner_id": "owner-1"})
        assert response.status_code == 409


# =============================================================================
# Moderation
# =============================================================================


class TestModerationEndpoints:
    """Tests for moderator routes."""

    def test_full_moderation_path(self, client, listing_id, valid_values):
        _submit_valid(client, listing_id, valid_values)
        for target in ("under_review", "approved", "live"):
            response = _transition(client, listing_id, target)
            assert response.status_code == 200
            assert response.json()["state"] == target

        listing = client.get(f"/api/listings/{listing_id}").json()
        assert listing["progress_label"] == "100%"

    def test_illegal_transition(self, client, listing_id, valid_values):
        _submit_valid(client, listing_id, valid_values)
        _transition(client, listing_id, "under_review")

        response = _transition(client, listing_id, "live")

        assert response.status_code == 409
        assert response.json()["code"] == "illegal_transition"

    def test_reject_requires_reason(self, client, listing_id, valid_values):
        _submit_valid(client, listing_id, valid_values)
        _transition(client, listing_id, "under_review")

        assert _transition(client, listing_id, "rejected").status_code == 409
        response = _transition(client, listing_id, "rejected", reason="Photos are blurry")
        assert response.json()["listing"]["rejection_reason"] == "Photos are blurry"

    def test_invalid_target_state(self, client, listing_id):
        assert _transition(client, listing_id, "deleted").status_code == 400

    def test_listing_overview(self, client, listing_id, valid_values, template_id):
        client.post("/api/listings", json={"template_id": template_id, "owner_id": "owner-2"})
        _submit_valid(client, listing_id, valid_values)

        data = client.get("/api/admin/listings", params={"state": "submitted"}).json()

        assert [i["listing_id"] for i in data["items"]] == [listing_id]
        assert data["items"][0]["moderator_actions"] == ["under_review"]
        assert data["summary"]["total_listings"] == 2
        assert data["summary"]["awaiting_moderation"] == 1

    def test_invalid_state_filter(self, client):
        assert client.get("/api/admin/listings", params={"state": "archived"}).status_code == 400


# =============================================================================
# Remote Reference API
# =============================================================================


class TestRemoteReferenceApi:
    """Routes backed by the blocking HTTP reference provider."""

    @pytest.fixture
    def remote_client(self, monkeypatch):
        """Client whose reference provider calls an unreachable API."""
        def refuse(self, url, **kwargs):
            raise requests.ConnectionError(f"refused: {url}")

        monkeypatch.setattr(requests.Session, "get", refuse)
        reset_reference_provider()
        reset_template_repository()
        reset_listing_repository()
        config = Config(reference_api_url="http://reference.invalid", data_dir=None)
        with TestClient(create_app(config)) as test_client:
            yield test_client
        reset_reference_provider()
        reset_template_repository()
        reset_listing_repository()

    def test_route_handlers_run_in_threadpool(self, remote_client):
        """Handlers are plain functions so blocking calls stay off the event loop."""
        routes = [r for r in remote_client.app.routes if isinstance(r, APIRoute) and r.path.startswith("/api")]
        assert routes
        assert not [r.path for r in routes if inspect.iscoroutinefunction(r.endpoint)]

    def test_unreachable_reference_api(self, remote_client):
        response = remote_client.get("/api/reference/states")
        assert response.status_code == 502

    def test_preview_renders_without_options(self, remote_client):
        template_id = remote_client.get("/api/form-templates").json()["items"][0]["template_id"]
        response = remote_client.get(f"/api/form-templates/{template_id}/preview")
        assert response.status_code == 200
        assert 'data-testid="select-state"' in response.text
