"""Exceptions raised by the site layer and its default collaborators."""


class EasywebError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class PageNotFoundError(EasywebError):
    status_code = 404


class NotLinkableError(EasywebError):
    """The requested path has no page that may be rendered."""

    status_code = 404


class CaptchaError(EasywebError):
    status_code = 400


class AntiforgeryError(EasywebError):
    status_code = 400


class ContentSourceError(EasywebError):
    """The CMS data source failed to answer."""

    status_code = 502


class ThumbnailError(EasywebError):
    status_code = 400


class RedirectRequired(Exception):
    """Raised by request filters that answer with a redirect instead of continuing."""

    def __init__(self, url: str, status_code: int = 302):
        super().__init__(url)
        self.url = url
        self.status_code = status_code
