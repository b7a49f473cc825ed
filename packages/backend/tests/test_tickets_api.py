"""Ticket API tests — every route sits behind a session token."""

import pytest


async def _open_ticket(client, headers, title="Printer on fire", description="Floor 3"):
    r = await client.post(
        "/tickets",
        json={"title": title, "description": description},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["ticket"]


@pytest.mark.asyncio
async def test_create_ticket(client, registered_user, auth_headers):
    r = await client.post(
        "/tickets",
        json={"title": "Printer on fire", "description": "Floor 3"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Ticket created successfully"
    ticket = body["ticket"]
    assert ticket["title"] == "Printer on fire"
    assert ticket["status"] == "open"
    assert ticket["user_id"] == registered_user["user"]["id"]
    assert ticket["resolved_at"] is None


@pytest.mark.asyncio
async def test_create_ticket_without_description(client, auth_headers):
    ticket = await _open_ticket(client, auth_headers, description=None)
    assert ticket["description"] == ""


@pytest.mark.asyncio
async def test_create_ticket_requires_title(client, auth_headers):
    r = await client.post("/tickets", json={"description": "no title"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Title is required."


@pytest.mark.asyncio
async def test_list_tickets_includes_author(client, registered_user, auth_headers):
    await _open_ticket(client, auth_headers, title="First")
    await _open_ticket(client, auth_headers, title="Second")

    r = await client.get("/tickets", headers=auth_headers)

    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert {t["title"] for t in body["tickets"]} == {"First", "Second"}
    for t in body["tickets"]:
        assert t["user_name"] == "Test User"
        assert t["user_email"] == registered_user["user"]["email"]


@pytest.mark.asyncio
async def test_list_tickets_empty(client, auth_headers):
    r = await client.get("/tickets", headers=auth_headers)
    assert r.json() == {"tickets": [], "count": 0}


@pytest.mark.asyncio
async def test_resolve_ticket(client, auth_headers):
    ticket = await _open_ticket(client, auth_headers)

    r = await client.post(f"/tickets/{ticket['id']}/resolve", headers=auth_headers)

    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Ticket resolved successfully"
    assert body["ticket"]["status"] == "resolved"
    assert body["ticket"]["resolved_at"] is not None


@pytest.mark.asyncio
async def test_resolve_twice(client, auth_headers):
    ticket = await _open_ticket(client, auth_headers)
    await client.post(f"/tickets/{ticket['id']}/resolve", headers=auth_headers)

    r = await client.post(f"/tickets/{ticket['id']}/resolve", headers=auth_headers)

    assert r.status_code == 400
    assert r.json()["detail"] == "Ticket is already resolved."


@pytest.mark.asyncio
async def test_resolve_missing_ticket(client, auth_headers):
    r = await client.post("/tickets/999999/resolve", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Ticket not found."


# ═══════════════════════════════════════════════════════════
# Protection
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [("GET", "/tickets"), ("POST", "/tickets"), ("POST", "/tickets/1/resolve")],
)
async def test_ticket_routes_require_token(client, method, path):
    r = await client.request(method, path, json={"title": "x"})
    assert r.status_code == 401
    assert r.json() == {"detail": "Access denied. No token provided."}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "authorization",
    ["Bearer not-a-jwt", "Bearer a.b.c", "Basic dXNlcjpwYXNz"],
)
async def test_ticket_routes_reject_bad_headers(client, authorization):
    r = await client.get("/tickets", headers={"Authorization": authorization})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_bearer_scheme_is_case_insensitive(client, registered_user):
    r = await client.get(
        "/tickets", headers={"Authorization": f"bearer {registered_user['token']}"}
    )
    assert r.status_code == 200
