"""Main controller handling all article requests and default form posts."""

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response

from easyweb.filters import RouteFilters
from easyweb.results import ResultLink, form_post_result
from easyweb.services import get_form_service
from easyweb.services.forms import FormService

logger = logging.getLogger(__name__)


class EasywebController:
    """Renders pages and handles form posts for one route.

    Subclass and override ``index`` or ``index_post`` to change how a
    module's pages behave, then pass the subclass to ``add_easyweb_routes``.
    """

    get_filters = RouteFilters(linkable=True)
    # The form post is public: captcha instead of antiforgery
    post_filters = RouteFilters(linkable=True, captcha=True, antiforgery=False)

    def __init__(self, module: str | None = None):
        self.module = module

    async def index(self, request: Request) -> Response:
        """Base action for all article requests."""
        site = request.state.site
        return request.app.state.services.views.render(
            request, site.page.view_name, module=site.module
        )

    async def index_post(
        self,
        request: Request,
        form_service: FormService = Depends(get_form_service),
    ) -> Response:
        """Default post action for forms."""
        site = request.state.site
        collection = await request.form()

        post_result = form_service.handle_form(collection, site.page, site.culture)
        result_link = ResultLink.GOOD_POST_PAGE if post_result.successful else ResultLink.BAD_POST_PAGE

        return await form_post_result(request, result_link, site, post_result)

    def register(self, router: APIRouter, path: str, name: str) -> None:
        get_filters = replace(self.get_filters, module=self.module)
        post_filters = replace(self.post_filters, module=self.module)

        router.add_api_route(
            path,
            self.index,
            methods=["GET"],
            name=name,
            response_class=HTMLResponse,
            dependencies=get_filters.dependencies(),
            include_in_schema=False,
        )
        router.add_api_route(
            path,
            self.index_post,
            methods=["POST"],
            name=f"{name}_post",
            dependencies=post_filters.dependencies(),
            include_in_schema=False,
        )
