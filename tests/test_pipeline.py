import json
import re

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from easyweb.filters import ANTIFORGERY_COOKIE


def broken_form_service(client, monkeypatch):
    def handle_form(*args, **kwargs):
        raise RuntimeError("form storage is down")

    monkeypatch.setattr(client.app.state.services.forms, "handle_form", handle_form)


def test_static_js_served(client, site_root):
    (site_root / "js" / "app.js").write_text("console.log('hi');")
    resp = client.get("/js/app.js")
    assert resp.status_code == 200
    assert resp.text == "console.log('hi');"


def test_static_css_served(client, site_root):
    (site_root / "css" / "site.css").write_text("body { margin: 0; }")
    resp = client.get("/css/site.css")
    assert resp.status_code == 200
    assert "margin: 0" in resp.text
    assert resp.headers["content-type"].startswith("text/css")


def test_missing_static_file_is_404(client):
    assert client.get("/js/missing.js").status_code == 404
    assert client.get("/css/missing.css").status_code == 404


def test_production_error_renders_custom_error_view(client, captcha_token, monkeypatch):
    broken_form_service(client, monkeypatch)
    resp = client.post("/kontakt", data={"name": "A", "email": "a@example.com", "ew_captcha": captcha_token})
    assert resp.status_code == 500
    assert "ew-static-error" in resp.text
    assert "Traceback" not in resp.text


def test_production_error_falls_back_to_static_document(client, site_root, captcha_token, monkeypatch):
    (site_root / "views" / "static.html").unlink()
    broken_form_service(client, monkeypatch)
    resp = client.post("/kontakt", data={"name": "A", "email": "a@example.com", "ew_captcha": captcha_token})
    assert resp.status_code == 500
    assert "Ett fel uppstod" in resp.text
    assert "ew-static-error" not in resp.text


def test_development_error_shows_diagnostic_page(make_client, make_settings, captcha_token, monkeypatch):
    client = make_client(make_settings(environment="Development"))
    broken_form_service(client, monkeypatch)
    resp = client.post(
        "/kontakt",
        data={"name": "A", "email": "a@example.com", "ew_captcha": captcha_token},
        headers={"Accept": "text/html"},
    )
    assert resp.status_code == 500
    assert "form storage is down" in resp.text
    assert "Traceback" in resp.text


def test_development_creates_wwwroot(make_client, make_settings, site_root):
    assert not (site_root / "wwwroot").exists()
    make_client(make_settings(environment="Development"))
    assert (site_root / "wwwroot").is_dir()


def test_hsts_in_production_over_https(make_client):
    client = make_client(base_url="https://www.example.com")
    resp = client.get("/")
    assert resp.headers["strict-transport-security"] == "max-age=2592000"


def test_no_hsts_over_http_or_in_development(make_client, make_settings):
    assert "strict-transport-security" not in make_client().get("/").headers

    dev = make_client(make_settings(environment="Development"), base_url="https://www.example.com")
    assert "strict-transport-security" not in dev.get("/").headers


def test_defaults_issue_antiforgery_cookie_and_headers(client):
    resp = client.get("/")
    assert ANTIFORGERY_COOKIE in resp.cookies
    assert resp.headers["x-content-type-options"] == "nosniff"


def test_permanent_redirects(make_client, make_settings):
    client = make_client(make_settings(site={"redirects": {"/old-contact": "/kontakt"}}))
    resp = client.get("/Old-Contact/", follow_redirects=False)
    assert resp.status_code == 301
    assert resp.headers["location"] == "/kontakt"


@pytest.fixture
def cached_client(make_client, make_settings):
    return make_client(make_settings(output_cache={"enabled": True}))


def test_output_cache(cached_client):
    # The first visit issues the antiforgery cookie and is never stored
    welcome = cached_client.get("/")
    assert welcome.headers["x-output-cache"] == "MISS"
    assert len(cached_client.app.state.services.output_cache) == 0

    first = cached_client.get("/")
    assert first.status_code == 200
    assert first.headers["x-output-cache"] == "MISS"

    second = cached_client.get("/")
    assert second.headers["x-output-cache"] == "HIT"
    assert second.text == first.text

    fresh = cached_client.get("/", headers={"Cache-Control": "no-cache"})
    assert "x-output-cache" not in fresh.headers


def test_output_cache_skips_errors_and_posts(cached_client, captcha_token):
    cached_client.get("/finns-inte")
    cached_client.get("/finns-inte")
    resp = cached_client.post(
        "/kontakt", data={"name": "A", "email": "a@example.com", "ew_captcha": captcha_token},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert "x-output-cache" not in resp.headers
    assert len(cached_client.app.state.services.output_cache) == 0


def test_output_cache_never_shares_antiforgery_tokens(cached_client):
    cached_client.get("/easyweb/login")
    assert cached_client.get("/easyweb/login").headers["x-output-cache"] == "MISS"
    assert len(cached_client.app.state.services.output_cache) == 0

    visitor = TestClient(cached_client.app, raise_server_exceptions=False)
    page = visitor.get("/easyweb/login")
    assert page.headers["x-output-cache"] == "MISS"

    token = re.search(r'name="__RequestVerificationToken" value="([^"]+)"', page.text).group(1)
    assert token == visitor.cookies[ANTIFORGERY_COOKIE]

    resp = visitor.post(
        "/easyweb/login",
        data={"username": "nobody", "password": "wrong", "__RequestVerificationToken": token},
    )
    assert resp.status_code == 401


def test_output_cache_bypassed_for_logged_in_users(make_client, make_settings):
    client = make_client(
        make_settings(
            output_cache={"enabled": True},
            security={"admin_username": "admin", "admin_password": "password123"},
        )
    )
    client.get("/easyweb/login")
    resp = client.post(
        "/easyweb/login",
        data={
            "username": "admin",
            "password": "password123",
            "__RequestVerificationToken": client.cookies.get(ANTIFORGERY_COOKIE),
        },
        follow_redirects=False,
    )
    assert resp.status_code == 303

    for _ in range(2):
        page = client.get("/")
        assert page.status_code == 200
        assert "x-output-cache" not in page.headers
    assert len(client.app.state.services.output_cache) == 0


def write_content(site_root, *pages):
    content = json.loads((site_root / "content.json").read_text(encoding="utf-8"))
    content["pages"].extend(pages)
    (site_root / "content.json").write_text(json.dumps(content), encoding="utf-8")


def test_asset_and_login_routes_win_over_pages(make_client, site_root):
    write_content(
        site_root,
        {"id": "20", "path": "/images/100/hero.png", "title": "Skuggbild"},
        {"id": "21", "path": "/easyweb/login", "title": "Skugginloggning"},
    )
    (site_root / "media" / "images").mkdir(parents=True)
    Image.new("RGB", (40, 20)).save(site_root / "media" / "images" / "hero.png")
    client = make_client()

    image = client.get("/images/100/hero.png?width=10")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"

    login = client.get("/easyweb/login")
    assert 'name="__RequestVerificationToken"' in login.text
    assert "Skugginloggning" not in login.text

    assert "Startsida" in client.get("/").text


def test_module_routes_bind_before_catch_all(make_client, make_settings, site_root):
    write_content(site_root, {"id": "22", "path": "/nyheter/x", "title": "Artikel"})
    client = make_client(make_settings(site={"modules": {"news": "nyheter"}}))

    resp = client.get("/nyheter/x")
    assert resp.status_code == 200
    assert 'class="news"' in resp.text
    assert "Artikel" in resp.text

    resp = client.get("/kontakt")
    assert 'class="news"' not in resp.text


def test_gzip_for_large_responses(client, site_root):
    (site_root / "css" / "big.css").write_text("body { color: red; }\n" * 200)
    resp = client.get("/css/big.css", headers={"Accept-Encoding": "gzip"})
    assert resp.status_code == 200
    assert resp.headers.get("content-encoding") == "gzip"
