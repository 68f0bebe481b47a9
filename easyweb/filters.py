"""Request filters applied to routes.

Each filter is a FastAPI dependency that either lets the request continue or
ends it by raising. ``RouteFilters`` turns per-route flags into the ordered
dependency list, so bypassing a check (for instance antiforgery on the public
form post) is explicit configuration on the route.
"""

import logging
import secrets
from dataclasses import dataclass
from urllib.parse import quote

from fastapi import Depends, Request

from easyweb.auth.backend import current_user
from easyweb.content.models import SiteState
from easyweb.exceptions import AntiforgeryError, NotLinkableError, RedirectRequired
from easyweb.localization import resolve_culture

logger = logging.getLogger(__name__)

ANTIFORGERY_COOKIE = "ew_xsrf"
ANTIFORGERY_FIELD = "__RequestVerificationToken"
ANTIFORGERY_HEADER = "x-xsrf-token"
SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}


def request_culture(request: Request) -> str:
    culture = getattr(request.state, "culture", None)
    if culture is None:
        culture = resolve_culture(request, request.app.state.settings.site)
        request.state.culture = culture
    return culture


class EnsureLinkable:
    """Resolve the request path to a page that may be rendered."""

    def __init__(self, module: str | None = None):
        self.module = module

    async def __call__(self, request: Request) -> SiteState:
        settings = request.app.state.settings
        services = request.app.state.services
        culture = request_culture(request)

        page = await services.content.get_page(request.url.path, culture)
        user = current_user(request)
        is_admin = bool(user and user.is_admin)

        if page is None:
            raise NotLinkableError(f"No page at {request.url.path}")
        if not page.published and not is_admin:
            raise NotLinkableError(f"Page {page.id} is not published")
        if page.redirect:
            raise RedirectRequired(page.redirect, status_code=302)
        if settings.security.use_authentication and page.requires_login and user is None:
            login_url = f"/easyweb/login?returnUrl={quote(request.url.path)}"
            raise RedirectRequired(login_url, status_code=303)

        state = SiteState(
            page=page,
            culture=culture,
            module=page.module or self.module,
            user=user,
            edit_mode=is_admin,
        )
        request.state.site = state
        return state


async def validate_form_captcha(request: Request) -> None:
    form = await request.form()
    client_host = request.client.host if request.client else None
    await request.app.state.services.captcha.validate(form, client_host)


async def validate_antiforgery(request: Request) -> None:
    if request.method in SAFE_METHODS:
        return
    if not request.app.state.settings.security.validate_antiforgery:
        return

    cookie_token = request.cookies.get(ANTIFORGERY_COOKIE)
    posted = request.headers.get(ANTIFORGERY_HEADER)
    if not posted:
        form = await request.form()
        posted = form.get(ANTIFORGERY_FIELD)

    if not cookie_token or not isinstance(posted, str) or not secrets.compare_digest(cookie_token, posted):
        logger.info(f"Antiforgery token mismatch on {request.method} {request.url.path}")
        raise AntiforgeryError("Antiforgery token missing or invalid")


async def notify_post(request: Request) -> None:
    """Tell subscribed templates that a POST was made."""
    if request.method != "POST":
        return
    form = await request.form()
    await request.app.state.services.post_notifier.notify(request, form)


@dataclass(frozen=True)
class RouteFilters:
    linkable: bool = True
    captcha: bool = False
    antiforgery: bool = True
    module: str | None = None

    def dependencies(self) -> list:
        deps = []
        if self.linkable:
            deps.append(Depends(EnsureLinkable(self.module)))
        if self.captcha:
            deps.append(Depends(validate_form_captcha))
        if self.antiforgery:
            deps.append(Depends(validate_antiforgery))
        return deps
