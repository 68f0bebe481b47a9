"""Application startup: service registration and the request pipeline.

``configure_services`` registers everything the site needs and
``configure_pipeline`` activates it, in the order requests pass through:

    exception pages -> HSTS -> static files -> site defaults -> routing
    -> authentication -> global request handlers -> endpoints
"""

import logging

import httpx
from fastapi import Depends, FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.gzip import GZipMiddleware

from easyweb import db
from easyweb.auth.backend import TokenCookieBackend
from easyweb.auth.router import router as auth_router
from easyweb.config import Settings
from easyweb.controllers.easyweb import EasywebController
from easyweb.errors import easyweb_error_handler, production_exception_handler, redirect_handler
from easyweb.exceptions import EasywebError, RedirectRequired
from easyweb.filters import notify_post
from easyweb.middleware import (
    EasywebDefaultsMiddleware,
    GlobalRequestHandlersMiddleware,
    HstsMiddleware,
)
from easyweb.routing import add_easyweb_routes
from easyweb.services import register_services
from easyweb.services.thumbnails import ThumbnailGenerator

logger = logging.getLogger(__name__)


def configure_services(
    app: FastAPI,
    settings: Settings,
    thumbnail_generator: ThumbnailGenerator | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    # Options
    app.state.settings = settings
    db.configure(settings.db_path)

    # Defaults, data services, thumbnails, output cache and views
    app.state.services = register_services(
        settings, thumbnail_generator=thumbnail_generator, transport=transport
    )

    # Let templates know about every POST made to the site
    app.router.dependencies.append(Depends(notify_post))

    logger.info(
        f"Registered services for {settings.site.name} "
        f"({settings.environment}, {settings.data.provider} content)"
    )


def configure_pipeline(
    app: FastAPI,
    settings: Settings,
    controller_cls: type[EasywebController] = EasywebController,
) -> None:
    if settings.is_development:
        # wwwroot is not committed, create it on first run
        settings.wwwroot.mkdir(parents=True, exist_ok=True)
        app.debug = True
    else:
        # views/static.html, or resources/static_error.html if that fails too
        app.add_exception_handler(Exception, production_exception_handler)

    app.add_exception_handler(EasywebError, easyweb_error_handler)
    app.add_exception_handler(RedirectRequired, redirect_handler)

    for folder in ("js", "css"):
        static_dir = settings.path(folder)
        static_dir.mkdir(parents=True, exist_ok=True)
        app.mount(f"/{folder}", StaticFiles(directory=str(static_dir)), name=folder)

    # In request order; Starlette wraps the last added middleware outermost
    pipeline = []
    if not settings.is_development:
        pipeline.append((HstsMiddleware, {}))
    pipeline += [
        (GZipMiddleware, {"minimum_size": 1000}),
        (EasywebDefaultsMiddleware, {"site": settings.site}),
        # Always on: admin inline editing needs it even without site login
        (AuthenticationMiddleware, {"backend": TokenCookieBackend(settings.security)}),
        (GlobalRequestHandlersMiddleware, {"site": settings.site}),
    ]
    for middleware_cls, options in reversed(pipeline):
        app.add_middleware(middleware_cls, **options)

    app.include_router(auth_router)
    add_easyweb_routes(app, settings.site, controller_cls=controller_cls)

    logger.info(f"Pipeline configured: {[m.__name__ for m, _ in pipeline]}")
