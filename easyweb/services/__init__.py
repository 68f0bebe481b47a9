"""Service registration and the FastAPI dependencies that hand services out."""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx
from fastapi import Request
from starlette.datastructures import FormData

from easyweb.config import Settings
from easyweb.content.providers import CachedContentProvider, create_content_provider
from easyweb.localization import Localizer
from easyweb.services.captcha import CaptchaValidator
from easyweb.services.forms import FormService
from easyweb.services.output_cache import OutputCache
from easyweb.services.thumbnails import ThumbnailGenerator, load_thumbnail_generator
from easyweb.views import ViewLocator

logger = logging.getLogger(__name__)

PostHandler = Callable[[Request, FormData], Awaitable[None] | None]


@dataclass
class PostNotifier:
    """Lets templates react to POSTs made on the pages they render."""

    handlers: list[PostHandler] = field(default_factory=list)

    def subscribe(self, handler: PostHandler) -> PostHandler:
        self.handlers.append(handler)
        return handler

    async def notify(self, request: Request, form: FormData) -> None:
        for handler in self.handlers:
            result = handler(request, form)
            if inspect.isawaitable(result):
                await result


@dataclass
class Services:
    content: CachedContentProvider
    forms: FormService
    thumbnails: ThumbnailGenerator
    captcha: CaptchaValidator
    localizer: Localizer
    views: ViewLocator
    post_notifier: PostNotifier
    output_cache: OutputCache | None


def register_services(
    settings: Settings,
    thumbnail_generator: ThumbnailGenerator | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    from easyweb.tasks.form_mail import queue_form_mail

    content = create_content_provider(
        settings.data, settings.content_root, settings.media_dir, transport=transport
    )
    thumbnails = thumbnail_generator or load_thumbnail_generator(
        settings.thumbnails, settings.path(settings.thumbnails.cache_dir)
    )
    output_cache = None
    if settings.output_cache.enabled:
        output_cache = OutputCache(settings.output_cache.duration_seconds)

    return Services(
        content=content,
        forms=FormService(settings.security, settings.mail, dispatch_mail=queue_form_mail),
        thumbnails=thumbnails,
        captcha=CaptchaValidator(settings.captcha, settings.security, transport=transport),
        localizer=Localizer(settings.resources_dir, settings.site.default_culture),
        views=ViewLocator(settings.views_dir, auto_reload=settings.is_development),
        post_notifier=PostNotifier(),
        output_cache=output_cache,
    )


def get_form_service(request: Request) -> FormService:
    return request.app.state.services.forms


def get_thumbnail_generator(request: Request) -> ThumbnailGenerator:
    return request.app.state.services.thumbnails


def get_content_provider(request: Request) -> CachedContentProvider:
    return request.app.state.services.content