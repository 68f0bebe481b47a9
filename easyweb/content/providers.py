"""Content providers fetching pages and assets for the site.

Two sources are supported:

- **file**: a ``content.json`` document in the content root, used for local
  development and tests.
- **api**: the Easyweb CMS API, fetched over HTTP with httpx.

Both are wrapped by ``CachedContentProvider`` so repeated lookups within
``data.cache_seconds`` never leave the process.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Protocol

import httpx

from easyweb.config import DataOptions
from easyweb.content.models import Asset, AssetKind, Page, normalize_path
from easyweb.exceptions import ContentSourceError

logger = logging.getLogger(__name__)


class ContentProvider(Protocol):
    async def get_page(self, path: str, culture: str | None = None) -> Page | None: ...

    async def get_asset(self, kind: AssetKind, asset_id: str) -> Asset | None: ...

    async def aclose(self) -> None: ...


def _pick_page(candidates: list[Page], culture: str | None) -> Page | None:
    """Prefer a page in the requested culture, then a culture-neutral one."""
    neutral = None
    for page in candidates:
        if culture and page.culture and page.culture.lower() == culture.lower():
            return page
        if page.culture is None and neutral is None:
            neutral = page
    return neutral


class FileContentProvider:
    def __init__(self, content_file: Path):
        self.content_file = content_file
        self._mtime: float | None = None
        self._data: dict[str, Any] = {}

    def _load(self) -> dict[str, Any]:
        if not self.content_file.exists():
            if self._mtime is not None:
                logger.warning(f"Content file {self.content_file} disappeared")
            self._mtime = None
            self._data = {}
            return self._data

        mtime = self.content_file.stat().st_mtime
        if mtime != self._mtime:
            try:
                self._data = json.loads(self.content_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ContentSourceError(f"Invalid content file {self.content_file}: {e}") from e
            self._mtime = mtime
            logger.info(f"Loaded content from {self.content_file}")
        return self._data

    async def get_page(self, path: str, culture: str | None = None) -> Page | None:
        wanted = normalize_path(path)
        candidates = [
            Page.model_validate(raw)
            for raw in self._load().get("pages", [])
            if normalize_path(raw.get("path", "")) == wanted
        ]
        return _pick_page(candidates, culture)

    async def get_asset(self, kind: AssetKind, asset_id: str) -> Asset | None:
        for raw in self._load().get(kind, []):
            if str(raw.get("id")) == asset_id:
                return Asset.model_validate(raw)
        return None

    async def aclose(self) -> None:
        return None


class ApiContentProvider:
    def __init__(
        self,
        options: DataOptions,
        media_root: Path,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not options.api_url:
            raise ValueError("data.api_url must be set for the api content provider")
        self.options = options
        self.media_root = media_root
        self._client = httpx.AsyncClient(
            base_url=options.api_url.rstrip("/"),
            headers={"X-Api-Key": options.api_key},
            timeout=options.timeout,
            transport=transport,
        )

    async def _get(self, url: str, **params) -> httpx.Response | None:
        try:
            response = await self._client.get(url, params=params or None)
        except httpx.TimeoutException as e:
            raise ContentSourceError(f"Content API timed out: {url}") from e
        except httpx.HTTPError as e:
            raise ContentSourceError(f"Content API unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ContentSourceError(
                f"Content API answered {response.status_code} for {url}"
            )
        return response

    async def get_page(self, path: str, culture: str | None = None) -> Page | None:
        params = {"path": normalize_path(path)}
        if culture:
            params["culture"] = culture
        response = await self._get("/pages", **params)
        if response is None:
            return None

        data = response.json()
        if isinstance(data, list):
            return _pick_page([Page.model_validate(p) for p in data], culture)
        return Page.model_validate(data)

    async def get_asset(self, kind: AssetKind, asset_id: str) -> Asset | None:
        response = await self._get(f"/assets/{kind}/{asset_id}")
        if response is None:
            return None
        meta = response.json()

        asset = Asset(
            id=str(meta["id"]),
            filename=meta["filename"],
            content_type=meta.get("content_type"),
            path=f"{kind}/{meta['id']}/{Path(meta['filename']).name}",
        )
        target = self.media_root / asset.path
        if not target.exists():
            download = await self._get(f"/assets/{kind}/{asset_id}/content")
            if download is None:
                return None
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(download.content)
            logger.debug(f"Downloaded {kind} {asset_id} to {target}")
        return asset

    async def aclose(self) -> None:
        await self._client.aclose()


class CachedContentProvider:
    """TTL memory cache in front of another provider."""

    _MISSING = object()

    def __init__(self, inner: ContentProvider, ttl_seconds: int):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._cache: dict[tuple, tuple[float, Any]] = {}

    def _lookup(self, key: tuple) -> Any:
        hit = self._cache.get(key)
        if hit is None:
            return self._MISSING
        expires_at, value = hit
        if time.monotonic() >= expires_at:
            del self._cache[key]
            return self._MISSING
        return value

    def _store(self, key: tuple, value: Any) -> None:
        if self.ttl_seconds > 0:
            self._cache[key] = (time.monotonic() + self.ttl_seconds, value)

    async def get_page(self, path: str, culture: str | None = None) -> Page | None:
        key = ("page", normalize_path(path), culture)
        value = self._lookup(key)
        if value is self._MISSING:
            value = await self.inner.get_page(path, culture)
            self._store(key, value)
        return value

    async def get_asset(self, kind: AssetKind, asset_id: str) -> Asset | None:
        key = ("asset", kind, asset_id)
        value = self._lookup(key)
        if value is self._MISSING:
            value = await self.inner.get_asset(kind, asset_id)
            self._store(key, value)
        return value

    def clear(self) -> None:
        self._cache.clear()

    async def aclose(self) -> None:
        await self.inner.aclose()


def create_content_provider(
    options: DataOptions,
    content_root: Path,
    media_root: Path,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CachedContentProvider:
    if options.provider == "api":
        inner: ContentProvider = ApiContentProvider(options, media_root, transport=transport)
    else:
        inner = FileContentProvider(content_root / options.content_file)
    logger.info(f"Using {options.provider} content provider")
    return CachedContentProvider(inner, options.cache_seconds)
