#!/usr/bin/env python3
"""
ProjectHub Quickstart — onboarding a new company in one script.

Magic link → set password → company admin → invite → project → listing.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running in development mode (magic links are returned
in the response instead of being mailed): http://localhost:3001
"""

import sys
import uuid

import httpx

BASE = "http://localhost:3001/api/v1"


def main():
    run_id = uuid.uuid4().hex[:6]
    email = f"founder-{run_id}@example.com"
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  projecthub serve")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {health['database']}")
    print(f"  Redis:    {health['redis']}")

    # ── Request a magic link ─────────────────────────────────────
    print(f"\n1. Requesting a magic link for {email}...")
    resp = client.post("/auth/magic-link", json={"email": email})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    link = resp.json()
    if "token" not in link:
        print("   The server mailed the link (production mode); nothing more to do here.")
        sys.exit(1)
    print(f"   {link['message']}")
    print(f"   Link: {link['magicLink'][:60]}...")

    # ── Verify it (does not consume it) ──────────────────────────
    print("\n2. Verifying the link...")
    resp = client.get("/auth/verify-magic-link", params={"token": link["token"]})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Bound to: {resp.json()['email']}")

    # ── Redeem it: first user of a new company ───────────────────
    print("\n3. Setting a password...")
    resp = client.post(
        "/auth/set-password",
        json={"token": link["token"], "password": "demo-password-123"},
    )
    assert resp.status_code == 200, f"Failed: {resp.text}"
    session = resp.json()
    user = session["user"]
    print(f"   Role:    {user['role']}")
    print(f"   Company: {user['companyName']}")
    client.headers["Authorization"] = f"Bearer {session['token']}"

    # ── The link is single-use ───────────────────────────────────
    resp = client.post(
        "/auth/set-password",
        json={"token": link["token"], "password": "another-password"},
    )
    print(f"   Reusing the link → {resp.status_code} {resp.json()['detail']}")

    # ── Rename the company ───────────────────────────────────────
    print("\n4. Renaming the company...")
    resp = client.put("/users/profile", json={
        "firstName": "Demo",
        "lastName": "Founder",
        "companyName": f"Demo Corp {run_id}",
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Company: {resp.json()['companyName']}")

    # ── Create a project ─────────────────────────────────────────
    print("\n5. Creating a project...")
    resp = client.post("/projects", json={
        "name": "Website relaunch",
        "type": "Marketing",
        "startDate": "2026-01-05",
        "endDate": "2026-03-31",
        "memberIds": [user["id"]],
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    project = resp.json()
    print(f"   Project: {project['name']} ({project['id'][:8]}...)")
    print(f"   Members: {', '.join(m['email'] for m in project['members'])}")

    # ── List what the admin sees ─────────────────────────────────
    print("\n6. Projects visible to the admin:")
    for p in client.get("/projects").json():
        print(f"   - {p['name']} [{p['startDate']} → {p['endDate']}]")

    print("\n7. Templates available:")
    templates = client.get("/templates").json()
    for t in templates:
        scope = "global" if t["isGlobal"] else "company"
        print(f"   - {t['name']} ({scope})")
    if not templates:
        print("   (none yet)")

    # ── Done ──────────────────────────────────────────────────────
    print(f"\n✓ Onboarding finished. Log in again with {email} / demo-password-123.")


if __name__ == "__main__":
    main()
