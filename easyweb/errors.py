"""Exception handlers installed by the startup pipeline."""

import logging

from fastapi import Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from jinja2 import TemplateNotFound

from easyweb.exceptions import EasywebError, RedirectRequired
from easyweb.results import wants_json

logger = logging.getLogger(__name__)

FALLBACK_ERROR_HTML = """<!DOCTYPE html>
<html>
<head><title>Error</title></head>
<body><h1>Something went wrong</h1><p>Please try again later.</p></body>
</html>
"""


async def redirect_handler(request: Request, exc: RedirectRequired) -> Response:
    return RedirectResponse(exc.url, status_code=exc.status_code)


async def easyweb_error_handler(request: Request, exc: EasywebError) -> Response:
    settings = request.app.state.settings
    views = request.app.state.services.views

    if exc.status_code == 404 and settings.site.not_found_redirect:
        return RedirectResponse(settings.site.not_found_redirect, status_code=302)

    if wants_json(request):
        return JSONResponse({"detail": exc.message}, status_code=exc.status_code)

    view = "not_found" if exc.status_code == 404 else "error"
    try:
        return views.render(
            request,
            view,
            {"status_code": exc.status_code, "message": exc.message},
            status_code=exc.status_code,
        )
    except TemplateNotFound:
        return HTMLResponse(f"<h1>{exc.status_code}</h1>", status_code=exc.status_code)


async def production_exception_handler(request: Request, exc: Exception) -> Response:
    """Render views/static.html, or resources/static_error.html if that also fails."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    settings = request.app.state.settings

    try:
        return request.app.state.services.views.render(request, "static", status_code=500)
    except Exception:
        logger.exception("Error view failed to render")

    static_error = settings.resources_dir / "static_error.html"
    if static_error.exists():
        return HTMLResponse(static_error.read_text(encoding="utf-8"), status_code=500)
    return HTMLResponse(FALLBACK_ERROR_HTML, status_code=500)
