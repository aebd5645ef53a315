"""Template API tests — global templates plus the caller's tenant templates."""

import uuid

import pytest

from projecthub.auth.roles import Role


@pytest.mark.asyncio
async def test_list_templates(client, make_tenant, make_user, make_template, auth_headers):
    acme = await make_tenant("Acme")
    globex = await make_tenant("Globex")
    user = await make_user("alice@acme.com", Role.USER, acme)
    await make_template("Kickoff", is_global=True)
    await make_template("Acme retro", tenant=acme)
    await make_template("Globex secret", tenant=globex)

    r = await client.get("/api/v1/templates", headers=auth_headers(user))
    assert r.status_code == 200
    assert [t["name"] for t in r.json()] == ["Acme retro", "Kickoff"]
    assert r.json()[1]["isGlobal"] is True


@pytest.mark.asyncio
async def test_list_templates_without_tenant(client, make_tenant, make_user, make_template, auth_headers):
    acme = await make_tenant("Acme")
    root = await make_user("root@example.com", Role.GLOBAL_ADMINISTRATOR)
    await make_template("Kickoff", is_global=True)
    await make_template("Acme retro", tenant=acme)

    r = await client.get("/api/v1/templates", headers=auth_headers(root))
    assert [t["name"] for t in r.json()] == ["Kickoff"]


@pytest.mark.asyncio
async def test_get_template(client, make_tenant, make_user, make_template, auth_headers):
    acme = await make_tenant("Acme")
    user = await make_user("alice@acme.com", Role.USER, acme)
    template = await make_template("Acme retro", tenant=acme)

    r = await client.get(f"/api/v1/templates/{template.id}", headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json()["content"] == "Acme retro body"
    assert r.json()["tenantId"] == str(acme.id)


@pytest.mark.asyncio
async def test_get_other_tenant_template_forbidden(
    client, make_tenant, make_user, make_template, auth_headers
):
    acme = await make_tenant("Acme")
    globex = await make_tenant("Globex")
    user = await make_user("alice@acme.com", Role.USER, acme)
    template = await make_template("Globex secret", tenant=globex)

    r = await client.get(f"/api/v1/templates/{template.id}", headers=auth_headers(user))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_get_template_missing(client, make_user, auth_headers):
    user = await make_user("alice@example.com")
    r = await client.get(f"/api/v1/templates/{uuid.uuid4()}", headers=auth_headers(user))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_templates_require_auth(client):
    r = await client.get("/api/v1/templates")
    assert r.status_code == 401
