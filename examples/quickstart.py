#!/usr/bin/env python3
"""
TicketDesk Quickstart — sign in, open a ticket, resolve it.

Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:5000 (or set TICKETDESK_API_URL)
"""

import httpx

from _common import BASE, create_client


def main():
    client, user = create_client()

    # ── Protected routes need the token ───────────────────────────
    print("\n1. Calling /tickets without a token...")
    resp = httpx.get(f"{BASE}/tickets", timeout=10)
    assert resp.status_code == 401, f"Expected 401, got {resp.status_code}"
    print(f"   Rejected: {resp.json()['detail']}")

    # ── Who am I ──────────────────────────────────────────────────
    print("\n2. Reading the session identity...")
    me = client.get("/auth/me").json()
    print(f"   {me['name']} <{me['email']}>, token expires {me['expires_at']}")

    # ── Open a ticket ─────────────────────────────────────────────
    print("\n3. Opening a ticket...")
    resp = client.post("/tickets", json={
        "title": "Printer on fire",
        "description": "Third floor, the one by the kitchen",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    ticket = resp.json()["ticket"]
    print(f"   Ticket #{ticket['id']}: {ticket['title']} ({ticket['status']})")

    # ── List ──────────────────────────────────────────────────────
    print("\n4. Listing tickets...")
    board = client.get("/tickets").json()
    for t in board["tickets"][:5]:
        print(f"   #{t['id']} [{t['status']}] {t['title']} (by {t['user_name']})")
    print(f"   {board['count']} tickets total")

    # ── Resolve ───────────────────────────────────────────────────
    print("\n5. Resolving the ticket...")
    resp = client.post(f"/tickets/{ticket['id']}/resolve")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Resolved at {resp.json()['ticket']['resolved_at']}")

    resp = client.post(f"/tickets/{ticket['id']}/resolve")
    print(f"   Resolving again → {resp.status_code}: {resp.json()['detail']}")

    print(f"\n✓ Done. Signed in as {user['name']}, ticket #{ticket['id']} is resolved.")


if __name__ == "__main__":
    main()
