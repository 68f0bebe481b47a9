import json
import shutil
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parent.parent

CONTENT = {
    "pages": [
        {"id": "1", "path": "/", "title": "Startsida", "fields": {"body": "Välkommen"}},
        {
            "id": "2",
            "path": "/kontakt",
            "title": "Kontakt",
            "form": {
                "name": "contact",
                "fields": [
                    {"name": "name", "required": True},
                    {"name": "email", "type": "email", "required": True},
                    {"name": "message", "type": "textarea"},
                ],
                "recipients": ["info@example.com"],
            },
        },
        {"id": "3", "path": "/tack", "title": "Tack", "template": "form_success"},
        {"id": "4", "path": "/fel", "title": "Fel", "template": "form_failed"},
        {"id": "5", "path": "/utkast", "title": "Utkast", "published": False},
        {"id": "6", "path": "/gammal", "title": "Gammal", "redirect": "/kontakt"},
        {"id": "7", "path": "/medlemmar", "title": "Medlemmar", "requires_login": True},
        {"id": "8", "path": "/nyheter", "title": "Nyheter", "module": "news"},
        {"id": "9", "path": "/about", "title": "About us", "culture": "en-US"},
        {"id": "10", "path": "/about", "title": "Om oss"},
    ],
    "images": [{"id": "100", "filename": "hero.png", "path": "images/hero.png"}],
    "documents": [
        {
            "id": "200",
            "filename": "villkor.pdf",
            "path": "documents/villkor.pdf",
            "content_type": "application/pdf",
        }
    ],
}


@pytest.fixture
def site_root(tmp_path, monkeypatch):
    # Keep appsettings.json and .env from the repo out of test settings
    monkeypatch.chdir(tmp_path)

    root = tmp_path / "site"
    shutil.copytree(REPO_ROOT / "views", root / "views")
    shutil.copytree(REPO_ROOT / "resources", root / "resources")
    (root / "content.json").write_text(json.dumps(CONTENT), encoding="utf-8")
    return root


@pytest.fixture
def make_settings(site_root):
    from easyweb.config import Settings

    def _make(**overrides):
        values = {
            "environment": "Production",
            "content_root": site_root,
            "database_path": site_root / "data" / "test.db",
            "data": {"cache_seconds": 0},
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_client(make_settings):
    clients = []

    def _make(settings=None, base_url="http://testserver", **kwargs):
        from easyweb.main import create_app

        app = create_app(settings or make_settings(), **kwargs)
        client = TestClient(app, base_url=base_url, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def captcha_token(client):
    return client.app.state.services.captcha.issue_token()
