"""View location and rendering.

Views are Jinja2 templates under ``views/`` in the content root. A view name
is looked up in the culture subfolder first and then in the shared folders,
so ``views/en-US/news/index.html`` wins over ``views/news/index.html`` for an
English request, which in turn wins over ``views/_default/index.html``.
"""

import logging
from pathlib import Path

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader, select_autoescape

logger = logging.getLogger(__name__)

SHARED_LOCATIONS = ("_layout", "_default", "_templates")


def view_candidates(name: str, culture: str | None = None, module: str | None = None) -> list[str]:
    if not name.endswith(".html"):
        name = f"{name}.html"

    folders = []
    if module:
        folders.append(module)
    folders.append("")
    folders.extend(SHARED_LOCATIONS)

    candidates = []
    for folder in folders:
        if culture:
            candidates.append("/".join(p for p in (culture, folder, name) if p))
        candidates.append("/".join(p for p in (folder, name) if p))
    return list(dict.fromkeys(candidates))


def _request_context(request: Request) -> dict:
    """Per-request template globals."""
    services = request.app.state.services
    culture = getattr(request.state, "culture", services.localizer.default_culture)

    def translate(key: str, **kwargs) -> str:
        return services.localizer.translate(key, culture, **kwargs)

    def antiforgery_token() -> str:
        # The rendered page is now tied to one visitor
        request.state.personalized = True
        return getattr(request.state, "antiforgery_token", "")

    return {
        "site": getattr(request.state, "site", None),
        "site_options": request.app.state.settings.site,
        "culture": culture,
        "translate": translate,
        "captcha_token": services.captcha.issue_token,
        "antiforgery_token": antiforgery_token,
    }


class ViewLocator:
    def __init__(self, views_dir: Path, auto_reload: bool = False):
        self.views_dir = views_dir
        env = Environment(
            loader=FileSystemLoader(str(views_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            auto_reload=auto_reload,
        )
        self.templates = Jinja2Templates(env=env, context_processors=[_request_context])

    @property
    def env(self) -> Environment:
        return self.templates.env

    def find(self, name: str, culture: str | None = None, module: str | None = None) -> str:
        """Return the resolved template name, raising TemplateNotFound if none exists."""
        return self.env.select_template(view_candidates(name, culture, module)).name

    def render(
        self,
        request: Request,
        name: str,
        context: dict | None = None,
        status_code: int = 200,
        module: str | None = None,
    ) -> HTMLResponse:
        culture = getattr(request.state, "culture", None)
        template_name = self.find(name, culture, module)
        logger.debug(f"Rendering {template_name} for {request.url.path}")
        return self.templates.TemplateResponse(
            request, template_name, context or {}, status_code=status_code
        )
