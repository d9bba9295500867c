"""Tests for hierarchy, event and resource routers."""

import base64
from datetime import UTC, datetime, timedelta

from fastapi import FastAPI
from fastapi.testclient import TestClient

from mvcp.auth.middleware import require_auth
from mvcp.auth.models import AuthContext, UserRole
from mvcp.routers import events, hierarchy, resources


def _make_app(auth_ctx: AuthContext | None = None) -> FastAPI:
    app = FastAPI()
    app.include_router(hierarchy.router)
    app.include_router(events.router)
    app.include_router(resources.router)
    if auth_ctx is not None:
        app.dependency_overrides[require_auth] = lambda: auth_ctx
    return app


def _client(auth_ctx: AuthContext | None = None) -> TestClient:
    return TestClient(_make_app(auth_ctx), raise_server_exceptions=False)


def _ctx(role: UserRole, region=None, group_id=None, district_id=None) -> AuthContext:
    return AuthContext(
        user_id="u-1",
        email=f"{role.value}@mvcp.org",
        role=role,
        region=region,
        group_id=group_id,
        district_id=district_id,
        auth_method="bearer",
    )


def _national() -> AuthContext:
    return _ctx(UserRole.NATIONAL_COORDINATOR)


def _cell_body(district_id: str, **overrides) -> dict:
    body = {
        "district_id": district_id,
        "cell_name": "Cellule Nouvelle",
        "cell_category": "Femmes",
        "leader_name": "Ablavi",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Groups and districts
# ---------------------------------------------------------------------------


class TestGroupDistrictRoutes:
    def test_regions_reference_list(self):
        data = _client(_ctx(UserRole.DISTRICT_PASTOR, "Zou")).get("/api/hierarchy/regions").json()
        assert "Littoral" in data["regions"]
        assert "En pause" in data["cell_statuses"]

    def test_tree_is_scoped(self, network):
        client = _client(_ctx(UserRole.REGIONAL_PASTOR, "Littoral"))
        resp = client.get("/api/hierarchy/tree")
        assert resp.status_code == 200
        (node,) = resp.json()
        assert node["region"] == "Littoral"
        assert [g["name"] for g in node["groups"]] == ["Groupe Cotonou"]

    def test_tree_requires_auth(self):
        assert _client().get("/api/hierarchy/tree").status_code == 401

    def test_group_crud(self):
        client = _client(_national())
        resp = client.post("/api/hierarchy/groups", json={"region": "Mono", "name": "Groupe Lokossa"})
        assert resp.status_code == 200
        group_id = resp.json()["group_id"]

        resp = client.put(f"/api/hierarchy/groups/{group_id}", json={"region": "Mono", "name": "Groupe Comè"})
        assert resp.json()["name"] == "Groupe Comè"
        assert [g["name"] for g in client.get("/api/hierarchy/groups", params={"region": "Mono"}).json()] == [
            "Groupe Comè"
        ]

        assert client.delete(f"/api/hierarchy/groups/{group_id}").status_code == 200
        assert client.get("/api/hierarchy/groups").json() == []

    def test_duplicate_group_conflicts(self):
        client = _client(_national())
        client.post("/api/hierarchy/groups", json={"region": "Mono", "name": "Groupe Lokossa"})
        resp = client.post("/api/hierarchy/groups", json={"region": "Mono", "name": "GROUPE LOKOSSA"})
        assert resp.status_code == 409

    def test_unknown_region_is_bad_request(self):
        resp = _client(_national()).post("/api/hierarchy/groups", json={"region": "Atlantis", "name": "X"})
        assert resp.status_code == 400

    def test_delete_non_empty_group_conflicts(self, network):
        resp = _client(_national()).delete(f"/api/hierarchy/groups/{network['littoral']['group_id']}")
        assert resp.status_code == 409

    def test_hierarchy_management_is_national_only(self, network):
        client = _client(_ctx(UserRole.REGIONAL_PASTOR, "Littoral"))
        assert client.post("/api/hierarchy/groups", json={"region": "Littoral", "name": "X"}).status_code == 403
        resp = client.post("/api/hierarchy/districts", json={"group_id": network["littoral"]["group_id"], "name": "X"})
        assert resp.status_code == 403

    def test_district_crud(self, network):
        client = _client(_national())
        resp = client.post("/api/hierarchy/districts", json={"group_id": network["zou"]["group_id"], "name": "Bohicon"})
        assert resp.status_code == 200
        district_id = resp.json()["district_id"]
        assert resp.json()["region"] == "Zou"

        resp = client.put(
            f"/api/hierarchy/districts/{district_id}",
            json={"group_id": network["zou"]["group_id"], "name": "Bohicon Centre"},
        )
        assert resp.json()["name"] == "Bohicon Centre"
        assert client.delete(f"/api/hierarchy/districts/{district_id}").status_code == 200

    def test_district_in_missing_group(self):
        resp = _client(_national()).post("/api/hierarchy/districts", json={"group_id": "grp_missing", "name": "X"})
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------


class TestCellRoutes:
    def test_list_scoped(self, network):
        client = _client(_ctx(UserRole.REGIONAL_PASTOR, "Zou"))
        assert client.get("/api/hierarchy/cells").json() == []

        client = _client(_ctx(UserRole.GROUP_PASTOR, "Littoral", network["littoral"]["group_id"]))
        assert len(client.get("/api/hierarchy/cells").json()) == 2

    def test_group_pastor_adds_cell_in_scope(self, network):
        client = _client(_ctx(UserRole.GROUP_PASTOR, "Littoral", network["littoral"]["group_id"]))
        resp = client.post("/api/hierarchy/cells", json=_cell_body(network["cotonou_2"]["district_id"]))
        assert resp.status_code == 200
        assert resp.json()["district"] == "Cotonou 2"

    def test_group_pastor_cannot_add_outside_scope(self, network):
        client = _client(_ctx(UserRole.GROUP_PASTOR, "Littoral", network["littoral"]["group_id"]))
        resp = client.post("/api/hierarchy/cells", json=_cell_body(network["abomey_1"]["district_id"]))
        assert resp.status_code == 403

    def test_district_pastor_cannot_manage_cells(self, network):
        ctx = _ctx(
            UserRole.DISTRICT_PASTOR,
            "Littoral",
            network["littoral"]["group_id"],
            network["cotonou_1"]["district_id"],
        )
        resp = _client(ctx).post("/api/hierarchy/cells", json=_cell_body(network["cotonou_1"]["district_id"]))
        assert resp.status_code == 403

    def test_regional_pastor_cannot_move_cell_out_of_region(self, network):
        client = _client(_ctx(UserRole.REGIONAL_PASTOR, "Littoral"))
        cell = network["cell_a"]
        resp = client.put(
            f"/api/hierarchy/cells/{cell['cell_id']}",
            json=_cell_body(network["abomey_1"]["district_id"], cell_name=cell["cell_name"]),
        )
        assert resp.status_code == 403

    def test_update_and_delete(self, network):
        client = _client(_national())
        cell = network["cell_b"]
        resp = client.put(
            f"/api/hierarchy/cells/{cell['cell_id']}",
            json=_cell_body(cell["district_id"], cell_name="Cellule Fidjrossè Plage", status="En multiplication"),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "En multiplication"

        assert client.delete(f"/api/hierarchy/cells/{cell['cell_id']}").status_code == 200
        assert client.delete(f"/api/hierarchy/cells/{cell['cell_id']}").status_code == 404

    def test_invalid_status_is_bad_request(self, network):
        client = _client(_national())
        resp = client.post(
            "/api/hierarchy/cells", json=_cell_body(network["cotonou_1"]["district_id"], status="Fermée")
        )
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEventRoutes:
    def test_crud_and_public_listing(self):
        client = _client(_national())
        upcoming = (datetime.now(UTC) + timedelta(days=3)).isoformat()
        resp = client.post(
            "/api/events",
            json={"title": "Convention nationale", "event_date": upcoming, "status": "published"},
        )
        assert resp.status_code == 200
        event_id = resp.json()["event_id"]
        client.post("/api/events", json={"title": "Brouillon", "event_date": upcoming})

        assert len(client.get("/api/events").json()) == 2
        public = _client().get("/api/public/events").json()
        assert [e["title"] for e in public] == ["Convention nationale"]

        resp = client.put(
            f"/api/events/{event_id}",
            json={"title": "Convention 2024", "event_date": upcoming, "status": "published"},
        )
        assert resp.json()["title"] == "Convention 2024"
        assert client.delete(f"/api/events/{event_id}").status_code == 200

    def test_update_missing(self):
        resp = _client(_national()).put(
            "/api/events/evt_missing", json={"title": "X", "event_date": "2024-06-01T10:00:00Z"}
        )
        assert resp.status_code == 404

    def test_bad_status(self):
        resp = _client(_national()).post(
            "/api/events", json={"title": "X", "event_date": "2024-06-01T10:00:00Z", "status": "archived"}
        )
        assert resp.status_code == 400

    def test_management_is_national_only(self):
        assert _client(_ctx(UserRole.REGIONAL_PASTOR, "Zou")).get("/api/events").status_code == 403


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class TestResourceRoutes:
    def test_upload_list_download(self):
        payload = base64.b64encode(b"Programme du trimestre").decode()
        client = _client(_national())
        resp = client.post("/api/resources", json={"name": "programme.txt", "content_type": "text/plain", "data_b64": payload})
        assert resp.status_code == 200
        resource_id = resp.json()["resource_id"]

        pastor = _client(_ctx(UserRole.DISTRICT_PASTOR, "Zou"))
        assert [r["name"] for r in pastor.get("/api/resources").json()] == ["programme.txt"]
        assert pastor.get(f"/api/resources/{resource_id}").json()["data_b64"] == payload
        assert pastor.delete(f"/api/resources/{resource_id}").status_code == 403

        assert client.delete(f"/api/resources/{resource_id}").status_code == 200
        assert client.get(f"/api/resources/{resource_id}").status_code == 404

    def test_invalid_payload_is_bad_request(self):
        resp = _client(_national()).post("/api/resources", json={"name": "x", "data_b64": "***"})
        assert resp.status_code == 400
