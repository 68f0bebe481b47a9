import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from easyweb.auth.router import ensure_admin_user
from easyweb.config import Settings, settings as default_settings
from easyweb.controllers.easyweb import EasywebController
from easyweb.db import configure as configure_db, init_db
from easyweb.services.thumbnails import ThumbnailGenerator
from easyweb.startup import configure_pipeline, configure_services

logging.basicConfig(
    level=logging.DEBUG if default_settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    configure_db(settings.db_path)
    init_db()
    ensure_admin_user(settings.security)
    logger.info(f"{settings.site.name} started in {settings.environment} mode")
    yield
    await app.state.services.content.aclose()
    logger.info(f"{settings.site.name} stopped")


def create_app(
    settings: Settings | None = None,
    thumbnail_generator: ThumbnailGenerator | None = None,
    controller_cls: type[EasywebController] = EasywebController,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title=settings.site.name,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    configure_services(app, settings, thumbnail_generator=thumbnail_generator, transport=transport)
    configure_pipeline(app, settings, controller_cls=controller_cls)
    return app


app = create_app()
