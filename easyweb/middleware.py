"""Site middleware: defaults, HSTS and the global request handlers."""

import logging
import secrets

from fastapi.responses import RedirectResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

from easyweb.auth.backend import current_user
from easyweb.config import SiteOptions
from easyweb.content.models import normalize_path
from easyweb.filters import ANTIFORGERY_COOKIE
from easyweb.localization import resolve_culture

logger = logging.getLogger(__name__)

HSTS_MAX_AGE = 30 * 24 * 3600
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


class EasywebDefaultsMiddleware(BaseHTTPMiddleware):
    """Culture resolution, the antiforgery cookie and default headers."""

    def __init__(self, app: ASGIApp, site: SiteOptions):
        super().__init__(app)
        self.site = site

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.culture = resolve_culture(request, self.site)

        token = request.cookies.get(ANTIFORGERY_COOKIE)
        issued = None
        if not token:
            token = issued = secrets.token_urlsafe(32)
        request.state.antiforgery_token = token
        request.state.antiforgery_issued = issued is not None

        response = await call_next(request)

        if issued:
            response.set_cookie(
                ANTIFORGERY_COOKIE,
                issued,
                httponly=True,
                samesite="strict",
                secure=request.url.scheme == "https",
            )
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response


class HstsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_age: int = HSTS_MAX_AGE):
        super().__init__(app)
        self.max_age = max_age

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        if request.url.scheme == "https" and request.url.hostname not in LOCAL_HOSTS:
            response.headers["Strict-Transport-Security"] = f"max-age={self.max_age}"
        return response


class GlobalRequestHandlersMiddleware(BaseHTTPMiddleware):
    """Permanent redirects and output cache interception."""

    def __init__(self, app: ASGIApp, site: SiteOptions):
        super().__init__(app)
        self.redirects = {normalize_path(old): new for old, new in site.redirects.items()}

    @staticmethod
    def _cacheable(request: Request) -> bool:
        if request.method != "GET":
            return False
        if "no-cache" in request.headers.get("cache-control", ""):
            return False
        return current_user(request) is None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        target = self.redirects.get(normalize_path(request.url.path))
        if target:
            logger.debug(f"Redirecting {request.url.path} to {target}")
            return RedirectResponse(target, status_code=301)

        cache = request.app.state.services.output_cache
        if cache is None or not self._cacheable(request):
            return await call_next(request)

        key = f"{request.state.culture}|{request.url.path}?{request.url.query}"
        hit = cache.get(key)
        if hit is not None:
            response = Response(content=hit.body, status_code=hit.status_code, media_type=hit.media_type)
            for name, value in hit.headers:
                response.headers[name] = value
            response.headers["X-Output-Cache"] = "HIT"
            return response

        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if response.status_code != 200 or not content_type.startswith("text/html"):
            return response
        if getattr(request.state, "personalized", False) or getattr(request.state, "antiforgery_issued", False):
            response.headers["X-Output-Cache"] = "MISS"
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        stored_headers = [
            (name, value)
            for name, value in response.headers.items()
            if name.lower() not in ("set-cookie", "content-length", "content-type")
        ]
        cache.set(key, response.status_code, stored_headers, body, content_type)

        fresh = Response(content=body, status_code=response.status_code)
        fresh.raw_headers = list(response.raw_headers)
        fresh.headers["X-Output-Cache"] = "MISS"
        return fresh
