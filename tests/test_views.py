import asyncio

import httpx
import pytest
from starlette.datastructures import FormData
from starlette.requests import Request

from easyweb.config import CaptchaOptions, SecurityOptions, SiteOptions
from easyweb.exceptions import CaptchaError
from easyweb.localization import Localizer, resolve_culture
from easyweb.services.captcha import CaptchaValidator
from easyweb.views import view_candidates


def test_view_candidates_order():
    assert view_candidates("index", "en-US", "news") == [
        "en-US/news/index.html",
        "news/index.html",
        "en-US/index.html",
        "index.html",
        "en-US/_layout/index.html",
        "_layout/index.html",
        "en-US/_default/index.html",
        "_default/index.html",
        "en-US/_templates/index.html",
        "_templates/index.html",
    ]


def test_view_candidates_without_culture_or_module():
    assert view_candidates("login.html") == [
        "login.html",
        "_layout/login.html",
        "_default/login.html",
        "_templates/login.html",
    ]


def test_culture_subfolder_wins(client, site_root):
    (site_root / "views" / "en-US").mkdir()
    (site_root / "views" / "en-US" / "index.html").write_text("english {{ site.page.title }}")
    resp = client.get("/", headers={"Accept-Language": "en-US"})
    assert resp.text == "english Startsida"


def test_localizer(site_root):
    localizer = Localizer(site_root / "resources", "sv-SE")
    assert localizer.translate("Send") == "Skicka"
    assert localizer.translate("Send", "en-US") == "Send"
    assert localizer.translate("Unknown key", "en-US") == "Unknown key"


def test_localizer_falls_back_to_default_culture(tmp_path):
    (tmp_path / "sv-SE.json").write_text('{"Hello": "Hej {name}"}')
    (tmp_path / "en-US.json").write_text("{}")
    localizer = Localizer(tmp_path, "sv-SE")
    assert localizer.translate("Hello", "en-US", name="Anna") == "Hej Anna"


def make_request(headers=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({}, "sv-SE"),
        ({"Accept-Language": "en-US,en;q=0.9"}, "en-US"),
        ({"Accept-Language": "de-DE, en;q=0.5"}, "en-US"),
        ({"Accept-Language": "fi;q=0.9, sv;q=0.2"}, "sv-SE"),
        ({"Accept-Language": "en-US", "Cookie": "culture=sv-SE"}, "sv-SE"),
        ({"Cookie": "culture=xx-XX"}, "sv-SE"),
    ],
)
def test_resolve_culture(headers, expected):
    assert resolve_culture(make_request(headers), SiteOptions()) == expected


def test_captcha_token_roundtrip():
    validator = CaptchaValidator(CaptchaOptions(), SecurityOptions())
    token = validator.issue_token()
    asyncio.run(validator.validate(FormData([("ew_captcha", token), ("ew_hp", "")])))


@pytest.mark.parametrize(
    "fields",
    [
        [],
        [("ew_captcha", "garbage")],
        [("ew_captcha", "VALID"), ("ew_hp", "bot")],
    ],
)
def test_captcha_token_rejected(fields):
    validator = CaptchaValidator(CaptchaOptions(), SecurityOptions())
    token = validator.issue_token()
    form = FormData([(k, token if v == "VALID" else v) for k, v in fields])
    with pytest.raises(CaptchaError):
        asyncio.run(validator.validate(form))


def test_captcha_token_from_other_secret_rejected():
    other = CaptchaValidator(CaptchaOptions(), SecurityOptions(secret_key="another"))
    validator = CaptchaValidator(CaptchaOptions(), SecurityOptions())
    with pytest.raises(CaptchaError):
        asyncio.run(validator.validate(FormData([("ew_captcha", other.issue_token())])))


def test_captcha_posted_too_fast():
    validator = CaptchaValidator(CaptchaOptions(min_seconds=60), SecurityOptions())
    with pytest.raises(CaptchaError):
        asyncio.run(validator.validate(FormData([("ew_captcha", validator.issue_token())])))


def recaptcha_transport(success: bool):
    def handler(request: httpx.Request) -> httpx.Response:
        assert b"secret=s3cret" in request.content
        return httpx.Response(200, json={"success": success})

    return httpx.MockTransport(handler)


def test_recaptcha_provider():
    options = CaptchaOptions(provider="recaptcha", recaptcha_secret="s3cret")
    ok = CaptchaValidator(options, SecurityOptions(), transport=recaptcha_transport(True))
    asyncio.run(ok.validate(FormData([("g-recaptcha-response", "abc")]), "10.0.0.1"))

    failed = CaptchaValidator(options, SecurityOptions(), transport=recaptcha_transport(False))
    with pytest.raises(CaptchaError):
        asyncio.run(failed.validate(FormData([("g-recaptcha-response", "abc")])))
    with pytest.raises(CaptchaError):
        asyncio.run(ok.validate(FormData([])))
