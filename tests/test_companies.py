# tests/test_companies.py: Companies, memberships and role checks
import pytest
from httpx import AsyncClient

from app.config.permissions_config import get_permission_matrix, role_has_permission


@pytest.mark.asyncio
async def test_create_company_makes_creator_admin(client: AsyncClient, fake_db):
    user_id, token = fake_db.create_user("founder@example.com", "Fran Founder")
    headers = {"Authorization": f"Bearer {token}"}

    resp = await client.post("/api/v1/companies", json={"name": "  Acme  "}, headers=headers)
    assert resp.status_code == 201
    company = resp.json()
    assert company["name"] == "Acme"

    roles = fake_db.rows("user_company_roles")
    assert len(roles) == 1
    assert roles[0]["user_id"] == user_id
    assert roles[0]["company_id"] == company["id"]
    assert roles[0]["role"] == "Admin"

    resp = await client.get("/api/v1/companies", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == [{
        "id": company["id"],
        "name": "Acme",
        "role": "Admin",
        "created_at": company["created_at"],
    }]


@pytest.mark.asyncio
async def test_blank_company_name_rejected(client: AsyncClient, fake_db):
    _, token = fake_db.create_user("founder@example.com")
    resp = await client.post("/api/v1/companies", json={"name": "   "}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 400
    assert fake_db.rows("companies") == []


@pytest.mark.asyncio
async def test_company_users_lists_profiles(client: AsyncClient, fake_db, acme):
    orphan_id, _ = fake_db.create_user("ghost@example.com")
    fake_db.tables["profiles"] = [p for p in fake_db.rows("profiles") if p["id"] != orphan_id]
    fake_db.grant(acme.company_id, orphan_id, "Viewer")

    resp = await client.get(f"/api/v1/companies/{acme.company_id}/users", headers=acme.viewer)
    assert resp.status_code == 200
    users = {u["id"]: u for u in resp.json()}
    assert users[acme.admin_id]["name"] == "Ada Admin"
    assert users[acme.member_id]["role"] == "Member"
    assert users[orphan_id]["name"] == "Unknown User"
    assert users[orphan_id]["email"] == "No email"


@pytest.mark.asyncio
async def test_non_member_cannot_read_company(client: AsyncClient, fake_db, acme):
    _, token = fake_db.create_user("outsider@example.com")
    resp = await client.get(f"/api/v1/companies/{acme.company_id}", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "You must be a member of this company"


@pytest.mark.asyncio
async def test_viewer_cannot_create_board(client: AsyncClient, acme):
    resp = await client.post(f"/api/v1/companies/{acme.company_id}/boards", json={"name": "Sprint 1"}, headers=acme.viewer)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Insufficient permissions. Required: boards:create"


@pytest.mark.asyncio
async def test_boards_listed_newest_first(client: AsyncClient, acme):
    for name in ("Sprint 1", "Sprint 2"):
        resp = await client.post(f"/api/v1/companies/{acme.company_id}/boards", json={"name": name}, headers=acme.member)
        assert resp.status_code == 201

    resp = await client.get(f"/api/v1/companies/{acme.company_id}/boards", headers=acme.viewer)
    assert resp.status_code == 200
    assert [b["name"] for b in resp.json()] == ["Sprint 2", "Sprint 1"]

    board_id = resp.json()[0]["id"]
    resp = await client.get(f"/api/v1/boards/{board_id}", headers=acme.viewer)
    assert resp.status_code == 200
    assert resp.json()["company_id"] == acme.company_id


@pytest.mark.asyncio
async def test_unknown_board_is_404(client: AsyncClient, acme):
    resp = await client.get("/api/v1/boards/does-not-exist", headers=acme.admin)
    assert resp.status_code == 404


def test_role_matrix():
    matrix = get_permission_matrix()
    names = {p["name"] for p in matrix["permissions"]}
    assert set(matrix["roles"]["Admin"]) == names
    assert role_has_permission("Member", "cells:update")
    assert not role_has_permission("Member", "invitations:create")
    assert not role_has_permission("Viewer", "cells:update")
    assert role_has_permission("Viewer", "boards:read")
    assert not role_has_permission("Unknown", "boards:read")
