"""Responses for finished form posts.

A form post ends on one of two result links. Background (ajax) posts get a
partial view or JSON in place; full page posts are redirected to the
configured result page when it exists, or get the default result view.
"""

import logging
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from easyweb.content.models import SiteState
from easyweb.services.forms import FormPostResult

logger = logging.getLogger(__name__)


class ResultLink(str, Enum):
    GOOD_POST_PAGE = "good_post_page"
    BAD_POST_PAGE = "bad_post_page"

    @property
    def default_view(self) -> str:
        return "form_success" if self is ResultLink.GOOD_POST_PAGE else "form_failed"


def is_ajax_request(request: Request) -> bool:
    if request.headers.get("x-requested-with", "").lower() == "xmlhttprequest":
        return True
    return wants_json(request)


def wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return accept.split(",")[0].strip().lower() == "application/json"


async def form_post_result(
    request: Request,
    result_link: ResultLink,
    site: SiteState | None = None,
    post_result: FormPostResult | None = None,
) -> Response:
    settings = request.app.state.settings
    services = request.app.state.services
    successful = result_link is ResultLink.GOOD_POST_PAGE
    status_code = 200 if successful else 400
    errors = post_result.errors if post_result else {}

    target_path = getattr(settings.site, result_link.value)
    culture = site.culture if site else None
    target = await services.content.get_page(target_path, culture) if target_path else None
    if target is not None and not target.published:
        target = None

    if is_ajax_request(request):
        if wants_json(request):
            return JSONResponse(
                {
                    "successful": successful,
                    "errors": errors,
                    "redirect": target.path if target else None,
                },
                status_code=status_code,
            )
        return services.views.render(
            request,
            "_form_result",
            {"successful": successful, "errors": errors, "result_page": target},
            status_code=status_code,
        )

    if target is not None:
        logger.debug(f"Form post result {result_link.value}: redirecting to {target.path}")
        return RedirectResponse(target.path, status_code=303)

    return services.views.render(
        request,
        result_link.default_view,
        {"errors": errors},
        status_code=status_code,
        module=site.module if site else None,
    )
