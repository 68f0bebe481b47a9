"""The site's route table.

Routes are bound in a fixed order so the first match wins for ambiguous
paths:

1. the home route ``/``
2. image and document routes
3. module routes with a route template, like ``/news``
4. the catch-all content route, normally used for pages

Custom routes added to the app before ``add_easyweb_routes`` take precedence
over all of these.
"""

import logging
import mimetypes
from typing import Literal

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from easyweb.config import SiteOptions
from easyweb.content.models import asset_file
from easyweb.controllers.easyweb import EasywebController
from easyweb.exceptions import PageNotFoundError
from easyweb.services import get_content_provider, get_thumbnail_generator
from easyweb.services.thumbnails import ThumbnailGenerator

logger = logging.getLogger(__name__)

assets_router = APIRouter(tags=["assets"])


@assets_router.get("/images/{image_id}/{filename}", name="image")
async def image(
    request: Request,
    image_id: str,
    filename: str,
    width: int | None = Query(None, gt=0),
    height: int | None = Query(None, gt=0),
    mode: Literal["max", "crop"] = "max",
    content=Depends(get_content_provider),
    thumbnails: ThumbnailGenerator = Depends(get_thumbnail_generator),
):
    asset = await content.get_asset("images", image_id)
    if asset is None:
        raise PageNotFoundError(f"Image {image_id} not found")

    source = asset_file(request.app.state.settings.media_dir, asset)
    if not source.exists():
        raise PageNotFoundError(f"Image file for {image_id} is missing")

    path = await run_in_threadpool(thumbnails.generate, source, width, height, mode)
    media_type = asset.content_type or mimetypes.guess_type(asset.filename)[0]
    return FileResponse(path, media_type=media_type, headers={"Cache-Control": "public, max-age=604800"})


@assets_router.get("/documents/{document_id}/{filename}", name="document")
async def document(
    request: Request,
    document_id: str,
    filename: str,
    content=Depends(get_content_provider),
):
    asset = await content.get_asset("documents", document_id)
    if asset is None:
        raise PageNotFoundError(f"Document {document_id} not found")

    source = asset_file(request.app.state.settings.media_dir, asset)
    if not source.exists():
        raise PageNotFoundError(f"Document file for {document_id} is missing")

    return FileResponse(
        source,
        media_type=asset.content_type or mimetypes.guess_type(asset.filename)[0],
        filename=asset.filename,
        content_disposition_type="inline",
    )


def add_easyweb_routes(
    app: FastAPI,
    site: SiteOptions,
    controller_cls: type[EasywebController] = EasywebController,
) -> None:
    router = APIRouter()

    # 1. Home
    controller_cls().register(router, "/", name="home")

    # 2. Images and documents
    router.include_router(assets_router)

    # 3. Modules with route templates
    for module, route in site.modules.items():
        route = route.strip("/")
        controller = controller_cls(module=module)
        controller.register(router, f"/{route}", name=f"module_{module}")
        controller.register(router, f"/{route}/{{path:path}}", name=f"module_{module}_path")
        logger.debug(f"Bound module {module} to /{route}")

    # 4. Catch all content route
    controller_cls().register(router, "/{path:path}", name="page")

    app.include_router(router)
