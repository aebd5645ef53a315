"""Auth API tests.

Learn: Tests cover:
1. check-user
2. Password login and its failure modes
3. Magic link issue → verify → set-password (dev mode and production)
4. Protected /me and logout, including live re-validation of the user

Pattern: test_<verb>_<noun>_<scenario>
"""

import pytest
from sqlalchemy import func, select

from projecthub.auth.jwt import create_magic_link_token
from projecthub.auth.roles import Role
from projecthub.config import settings
from projecthub.db.models import Tenant, User
from projecthub.services.mailer import get_mailer
from projecthub.main import app


class RecordingMailer:
    """Stands in for SMTP delivery; remembers what would have been sent."""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    async def send_magic_link(self, to: str, link: str) -> bool:
        self.sent.append((to, link))
        return self.ok


@pytest.fixture()
def production(monkeypatch):
    """Run the test in production mode with a recording mailer."""
    mailer = RecordingMailer()
    monkeypatch.setattr(settings, "environment", "production")
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield mailer
    app.dependency_overrides.pop(get_mailer, None)


async def _magic_link_token(client, email: str) -> str:
    r = await client.post("/api/v1/auth/magic-link", json={"email": email})
    assert r.status_code == 200, r.text
    return r.json()["token"]


# ═══════════════════════════════════════════════════════════
# check-user
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_check_user_unknown(client):
    r = await client.post("/api/v1/auth/check-user", json={"email": "nobody@example.com"})
    assert r.status_code == 200
    assert r.json() == {"exists": False, "hasPassword": False}


@pytest.mark.asyncio
async def test_check_user_without_password(client, make_user):
    await make_user("invited@example.com")
    r = await client.post("/api/v1/auth/check-user", json={"email": "invited@example.com"})
    assert r.json() == {"exists": True, "hasPassword": False}


@pytest.mark.asyncio
async def test_check_user_with_password(client, make_user):
    await make_user("member@example.com", password="password_123")
    r = await client.post("/api/v1/auth/check-user", json={"email": "member@example.com"})
    assert r.json() == {"exists": True, "hasPassword": True}


@pytest.mark.asyncio
async def test_check_user_rejects_malformed_email(client):
    r = await client.post("/api/v1/auth/check-user", json={"email": "not-an-email"})
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "Validation error"
    assert body["errors"][0]["loc"][-1] == "email"


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, make_tenant, make_user):
    tenant = await make_tenant("Acme")
    user = await make_user(
        "login@example.com",
        role=Role.COMPANY_ADMINISTRATOR,
        tenant=tenant,
        password="my_password_123",
        first_name="Ada",
        last_name="Lovelace",
    )

    r = await client.post(
        "/api/v1/auth/login",
        json={"email": "login@example.com", "password": "my_password_123"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["token"]
    assert data["user"] == {
        "id": str(user.id),
        "email": "login@example.com",
        "name": "Ada Lovelace",
        "role": "CompanyAdministrator",
        "tenantId": str(tenant.id),
        "companyName": "Acme",
    }


@pytest.mark.asyncio
async def test_login_nonexistent_user(client):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "whatever"},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("password", ["whatever", "", None])
async def test_login_without_password_hash_is_invalid_state(client, make_user, password):
    """No password hash → InvalidState (400) whatever the password, never 401."""
    await make_user("nopass@example.com")
    body = {"email": "nopass@example.com"}
    if password is not None:
        body["password"] = password

    r = await client.post("/api/v1/auth/login", json=body)
    assert r.status_code == 400
    assert "magic link" in r.json()["detail"]


@pytest.mark.asyncio
async def test_login_password_required(client, make_user):
    await make_user("haspass@example.com", password="correct_password")
    r = await client.post("/api/v1/auth/login", json={"email": "haspass@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Password required"


@pytest.mark.asyncio
async def test_login_wrong_password(client, make_user):
    await make_user("wrong@example.com", password="correct_password")
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": "wrong@example.com", "password": "wrong_password"},
    )
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


# ═══════════════════════════════════════════════════════════
# Magic links: development mode
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_magic_link_new_user_creates_company_admin(client, db_session, magic_links):
    """a@x.com → magic link → set password → new tenant "a Company" with an admin."""
    r = await client.post("/api/v1/auth/magic-link", json={"email": "a@x.com"})
    assert r.status_code == 200
    data = r.json()
    assert data["userExists"] is False
    assert data["hasPassword"] is False
    assert data["magicLink"].endswith(f"/magic-link?token={data['token']}")
    assert len(magic_links) == 1

    r = await client.post(
        "/api/v1/auth/set-password",
        json={"token": data["token"], "password": "longenough1"},
    )
    assert r.status_code == 200
    auth = r.json()
    assert auth["user"]["email"] == "a@x.com"
    assert auth["user"]["role"] == "CompanyAdministrator"
    assert auth["user"]["companyName"] == "a Company"

    tenant = (await db_session.execute(select(Tenant))).scalars().one()
    assert tenant.name == "a Company"
    assert str(tenant.id) == auth["user"]["tenantId"]

    # The returned session credential works
    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {auth['token']}"}
    )
    assert me.status_code == 200
    assert me.json()["email"] == "a@x.com"

    # And the password now works for login
    r = await client.post(
        "/api/v1/auth/login", json={"email": "a@x.com", "password": "longenough1"}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_magic_link_existing_user_sets_password(client, db_session, make_tenant, make_user):
    tenant = await make_tenant("Acme")
    user = await make_user("invited@example.com", tenant=tenant)

    r = await client.post("/api/v1/auth/magic-link", json={"email": "invited@example.com"})
    data = r.json()
    assert data["userExists"] is True
    assert data["message"] == "Magic link generated (dev mode)"

    r = await client.post(
        "/api/v1/auth/set-password",
        json={"token": data["token"], "password": "brand_new_pw"},
    )
    assert r.status_code == 200
    assert r.json()["user"]["id"] == str(user.id)
    assert r.json()["user"]["role"] == "User"

    # No extra tenant was created
    count = await db_session.scalar(select(func.count()).select_from(Tenant))
    assert count == 1


@pytest.mark.asyncio
async def test_verify_magic_link_does_not_consume(client, magic_links):
    token = await _magic_link_token(client, "verify@example.com")

    for _ in range(2):
        r = await client.get("/api/v1/auth/verify-magic-link", params={"token": token})
        assert r.status_code == 200
        assert r.json() == {"email": "verify@example.com", "token": token}

    assert len(magic_links) == 1


@pytest.mark.asyncio
async def test_verify_magic_link_unknown_token(client):
    r = await client.get("/api/v1/auth/verify-magic-link", params={"token": "nope"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_verify_magic_link_requires_token(client):
    r = await client.get("/api/v1/auth/verify-magic-link")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_set_password_token_is_single_use(client, db_session):
    token = await _magic_link_token(client, "once@example.com")

    r1 = await client.post(
        "/api/v1/auth/set-password", json={"token": token, "password": "first_password"}
    )
    assert r1.status_code == 200

    r2 = await client.post(
        "/api/v1/auth/set-password", json={"token": token, "password": "second_password"}
    )
    assert r2.status_code == 400
    assert r2.json()["detail"] == "Invalid or expired token"

    r3 = await client.get("/api/v1/auth/verify-magic-link", params={"token": token})
    assert r3.status_code == 400

    users = await db_session.scalar(select(func.count()).select_from(User))
    assert users == 1


@pytest.mark.asyncio
async def test_set_password_too_short(client, magic_links):
    token = await _magic_link_token(client, "short@example.com")
    r = await client.post(
        "/api/v1/auth/set-password", json={"token": token, "password": "abc"}
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Validation error"
    # Validation failed before redemption; the link is still pending
    assert len(magic_links) == 1


@pytest.mark.asyncio
async def test_set_password_rejects_wrong_token_type(client, magic_links, make_user, auth_headers):
    """A validly signed session token placed in the store is still not a magic link."""
    from datetime import datetime, timedelta, timezone

    user = await make_user("victim@example.com")
    session_token = auth_headers(user)["Authorization"][7:]
    await magic_links.put(
        session_token,
        "victim@example.com",
        datetime.now(timezone.utc) + timedelta(hours=1),
    )

    r = await client.get("/api/v1/auth/verify-magic-link", params={"token": session_token})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid token type"

    r = await client.post(
        "/api/v1/auth/set-password",
        json={"token": session_token, "password": "hijacked_pw"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid token type"


@pytest.mark.asyncio
async def test_magic_link_token_is_not_a_session(client):
    """Magic-link tokens are signed with the same key but must not authenticate."""
    token = await _magic_link_token(client, "sneaky@example.com")
    r = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_magic_link_tokens_are_unique(client):
    t1 = await _magic_link_token(client, "twice@example.com")
    t2 = await _magic_link_token(client, "twice@example.com")
    assert t1 != t2


# ═══════════════════════════════════════════════════════════
# Magic links: production mode
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_magic_link_production_unknown_email(client, production, magic_links):
    r = await client.post("/api/v1/auth/magic-link", json={"email": "stranger@example.com"})
    assert r.status_code == 404
    assert production.sent == []
    assert len(magic_links) == 0


@pytest.mark.asyncio
async def test_magic_link_production_mails_link(client, production, make_user):
    await make_user("known@example.com")
    r = await client.post("/api/v1/auth/magic-link", json={"email": "known@example.com"})
    assert r.status_code == 200
    assert r.json() == {"message": "Magic link sent to your email"}

    assert len(production.sent) == 1
    to, link = production.sent[0]
    assert to == "known@example.com"
    assert "/magic-link?token=" in link


@pytest.mark.asyncio
async def test_magic_link_production_mail_failure(client, production, make_user, magic_links):
    production.ok = False
    await make_user("known@example.com")
    r = await client.post("/api/v1/auth/magic-link", json={"email": "known@example.com"})
    assert r.status_code == 503
    assert len(magic_links) == 0


# ═══════════════════════════════════════════════════════════
# Current user & logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_round_trip(client, make_tenant, make_user, auth_headers):
    tenant = await make_tenant("Acme")
    user = await make_user("me@example.com", role=Role.VENDOR, tenant=tenant)

    r = await client.get("/api/v1/auth/me", headers=auth_headers(user))
    assert r.status_code == 200
    data = r.json()
    assert data["id"] == str(user.id)
    assert data["email"] == "me@example.com"
    assert data["tenantId"] == str(tenant.id)
    assert data["role"] == "Vendor"


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_with_invalid_token(client):
    r = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": "Bearer invalid_token_here"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_rejects_deleted_user(client, db_session, make_user, auth_headers):
    user = await make_user("gone@example.com")
    headers = auth_headers(user)

    await db_session.delete(user)
    await db_session.commit()

    r = await client.get("/api/v1/auth/me", headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_reflects_role_change_without_relogin(client, db_session, make_user, auth_headers):
    user = await make_user("promoted@example.com", role=Role.USER)
    headers = auth_headers(user)

    user.role = Role.COMPANY_ADMINISTRATOR
    await db_session.commit()

    r = await client.get("/api/v1/auth/me", headers=headers)
    assert r.json()["role"] == "CompanyAdministrator"


@pytest.mark.asyncio
async def test_logout(client, make_user, auth_headers):
    user = await make_user("bye@example.com")
    r = await client.post("/api/v1/auth/logout", headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json() == {"message": "Logged out"}


@pytest.mark.asyncio
async def test_logout_requires_auth(client):
    r = await client.post("/api/v1/auth/logout")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_forged_magic_link_token_rejected(client, magic_links):
    """A token signed with another key fails even when it sits in the store."""
    import jwt
    from datetime import datetime, timedelta, timezone

    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    forged = jwt.encode(
        {"email": "a@example.com", "type": "magic-link", "exp": expires},
        "some-other-secret",
        algorithm="HS256",
    )
    await magic_links.put(forged, "a@example.com", expires)

    r = await client.get("/api/v1/auth/verify-magic-link", params={"token": forged})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid token"

    # The genuine helper still produces verifiable tokens
    genuine = create_magic_link_token("a@example.com", expires)
    await magic_links.put(genuine, "a@example.com", expires)
    r = await client.get("/api/v1/auth/verify-magic-link", params={"token": genuine})
    assert r.status_code == 200
