#!/usr/bin/env python3
"""
Devfolio Quickstart — a developer's whole journey in one script.

Registers a user → verifies the emailed code → logs in → fills in the
profile → publishes a project → lists it back.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000 (devfolio serve)
The one-time code is emailed through DEVFOLIO_SMTP_*; the script asks for it.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"
PASSWORD = "demo-password-123"


def main():
    run_id = uuid.uuid4().hex[:6]
    username = f"demo-{run_id}"
    email = sys.argv[1] if len(sys.argv) > 1 else f"{username}@example.com"
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    # ── Register (stages the account, emails a code) ──────────────
    print(f"\n1. Registering {username} <{email}>...")
    resp = client.post("/users/register", data={
        "username": username,
        "fullname": "Demo Developer",
        "email": email,
        "password": PASSWORD,
        "githubId": username,
        "position": "Backend Engineer",
        "description": "Trying out Devfolio",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    pending = resp.json()["data"]
    print(f"   Code sent, expires at {pending['expiresAt']}")

    # ── Verify ────────────────────────────────────────────────────
    otp = input("\n2. Enter the code from the email: ").strip()
    resp = client.post("/users/verify-otp", json={
        "registrationId": pending["registrationId"],
        "otp": otp,
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Account created: {resp.json()['data']['id'][:8]}...")

    # ── Login (session arrives as cookies) ────────────────────────
    print("\n3. Logging in...")
    resp = client.post("/users/login", json={"username": username, "password": PASSWORD})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    token = resp.json()["data"]["accessToken"]
    client.headers["Authorization"] = f"Bearer {token}"

    # ── Profile ───────────────────────────────────────────────────
    print("\n4. Updating profile...")
    resp = client.patch("/users/me", json={"techStack": "python, fastapi", "domains": "backend"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Tech stack: {', '.join(resp.json()['data']['techStack'])}")

    # ── Publish a project ─────────────────────────────────────────
    print("\n5. Publishing a project...")
    resp = client.post("/users/projects", data={
        "name": "hello-devfolio",
        "repoId": "1",
        "url": f"https://github.com/{username}/hello-devfolio",
        "description": "My first showcased project",
        "domain": "web",
        "techStack": "python, fastapi",
        "stars": "0",
        "ownersUsernames": username,
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    project = resp.json()["data"]
    print(f"   Project: {project['name']} ({project['id'][:8]}...)")

    # ── Browse ────────────────────────────────────────────────────
    print("\n6. Listing the profile's projects...")
    resp = client.get(f"/users/{username}/projects")
    for p in resp.json()["data"]["projectObjects"]:
        owners = ", ".join(o["username"] for o in p["owners"])
        print(f"   {p['name']:<20} {p['domain']:<8} owners: {owners}")

    print(f"\nDone. Try: devfolio projects {username}")


if __name__ == "__main__":
    main()
