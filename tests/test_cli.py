"""CLI tests.

Learn: Click's CliRunner invokes commands in-process. HTTP calls made by
the magic-link command are intercepted by monkeypatching httpx.post.
"""

import httpx
from click.testing import CliRunner

from projecthub.cli import main as cli_main
from projecthub.cli.main import cli


class FakeResponse:
    def __init__(self, status_code: int, data: dict):
        self.status_code = status_code
        self._data = data
        self.text = str(data)

    def json(self):
        return self._data


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output


def test_seed_admin_rejects_short_password(monkeypatch):
    called = []

    async def fake_seed(email, password, name):
        called.append(email)
        return True

    monkeypatch.setattr(cli_main, "_seed_admin", fake_seed)
    result = CliRunner().invoke(cli, ["seed-admin", "--password", "short"])
    assert result.exit_code == 1
    assert "at least 8" in result.output
    assert called == []


def test_seed_admin_reports_existing(monkeypatch):
    async def fake_seed(email, password, name):
        return False

    monkeypatch.setattr(cli_main, "_seed_admin", fake_seed)
    result = CliRunner().invoke(
        cli, ["seed-admin", "--email", "root@example.com", "--password", "long_enough"]
    )
    assert result.exit_code == 0
    assert "already exists" in result.output


def test_seed_admin_creates(monkeypatch):
    seen = {}

    async def fake_seed(email, password, name):
        seen.update(email=email, password=password, name=name)
        return True

    monkeypatch.setattr(cli_main, "_seed_admin", fake_seed)
    result = CliRunner().invoke(
        cli, ["seed-admin", "--email", "root@example.com", "--password", "long_enough"]
    )
    assert result.exit_code == 0
    assert "Created global admin: root@example.com" in result.output
    assert seen == {
        "email": "root@example.com",
        "password": "long_enough",
        "name": "Global Admin",
    }


def test_magic_link_prints_link(monkeypatch):
    requests = []

    def fake_post(url, json=None, timeout=None):
        requests.append((url, json))
        return FakeResponse(
            200,
            {
                "message": "Magic link generated (dev mode)",
                "magicLink": "http://localhost:3000/magic-link?token=abc",
                "token": "abc",
            },
        )

    monkeypatch.setenv("PROJECTHUB_API_URL", "http://api.test/api/v1/")
    monkeypatch.setattr(httpx, "post", fake_post)

    result = CliRunner().invoke(cli, ["magic-link", "a@example.com"])
    assert result.exit_code == 0
    assert result.output.strip() == "http://localhost:3000/magic-link?token=abc"
    assert requests == [
        ("http://api.test/api/v1/auth/magic-link", {"email": "a@example.com"})
    ]


def test_magic_link_production_prints_message(monkeypatch):
    monkeypatch.setattr(
        httpx,
        "post",
        lambda url, json=None, timeout=None: FakeResponse(
            200, {"message": "Magic link sent to your email"}
        ),
    )
    result = CliRunner().invoke(cli, ["magic-link", "a@example.com"])
    assert result.exit_code == 0
    assert "Magic link sent to your email" in result.output


def test_magic_link_api_error(monkeypatch):
    monkeypatch.setattr(
        httpx,
        "post",
        lambda url, json=None, timeout=None: FakeResponse(404, {"detail": "User not found"}),
    )
    result = CliRunner().invoke(cli, ["magic-link", "nobody@example.com"])
    assert result.exit_code == 1


def test_magic_link_api_unreachable(monkeypatch):
    def refuse(url, json=None, timeout=None):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx, "post", refuse)
    result = CliRunner().invoke(cli, ["magic-link", "a@example.com"])
    assert result.exit_code == 1
    assert "not reachable" in result.output
