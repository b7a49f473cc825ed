"""
Shared helpers for TicketDesk examples.

Handles the health check and authentication (register + login) so each
example can focus on its specific workflow.
"""

import os
import sys
import uuid

import httpx

BASE = os.environ.get("TICKETDESK_API_URL", "http://localhost:5000")


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  ticketdesk init-db && ticketdesk serve")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    if health["database"] != "ok":
        print(f"\nERROR: Database is not reachable ({health['database']})")
        sys.exit(1)


def authenticate() -> tuple[str, dict]:
    """Register a fresh user, then log in with the same password.

    Uses a unique email per run so examples are repeatable. Returns the
    session token from the login and the user it belongs to.
    """
    run_id = uuid.uuid4().hex[:8]
    email = f"demo-{run_id}@example.com"
    password = "demo-password-123"

    resp = httpx.post(
        f"{BASE}/auth/register",
        json={"email": email, "name": f"Demo User {run_id}", "password": password},
        timeout=10,
    )
    if resp.status_code != 201:
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    resp = httpx.post(
        f"{BASE}/auth/login",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    body = resp.json()
    return body["token"], body["user"]


def create_client() -> tuple[httpx.Client, dict]:
    """Check backend, authenticate, and return an httpx Client with auth headers."""
    check_backend()
    token, user = authenticate()
    print(f"  Auth:     ✓ ({user['email']})")
    client = httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {token}"},
    )
    return client, user
