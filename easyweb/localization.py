"""JSON string resources and request culture resolution."""

import json
import logging
from pathlib import Path

from starlette.requests import HTTPConnection

from easyweb.config import SiteOptions

logger = logging.getLogger(__name__)

CULTURE_COOKIE = "culture"


class Localizer:
    def __init__(self, resources_dir: Path, default_culture: str):
        self.resources_dir = resources_dir
        self.default_culture = default_culture
        self._strings: dict[str, dict[str, str]] = {}

    def _load(self, culture: str) -> dict[str, str]:
        if culture not in self._strings:
            path = self.resources_dir / f"{culture}.json"
            strings = {}
            if path.exists():
                try:
                    strings = json.loads(path.read_text(encoding="utf-8"))
                except json.JSONDecodeError as e:
                    logger.warning(f"Ignoring invalid resource file {path}: {e}")
            self._strings[culture] = strings
        return self._strings[culture]

    def translate(self, key: str, culture: str | None = None, **kwargs) -> str:
        text = self._load(culture or self.default_culture).get(key)
        if text is None and culture and culture != self.default_culture:
            text = self._load(self.default_culture).get(key)
        if text is None:
            text = key
        return text.format(**kwargs) if kwargs else text


def _accept_language(header: str) -> list[str]:
    """Language tags from an Accept-Language header, best first."""
    weighted = []
    for index, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        if not tag or tag == "*":
            continue
        quality = 1.0
        if params.strip().startswith("q="):
            try:
                quality = float(params.strip()[2:])
            except ValueError:
                quality = 0.0
        weighted.append((-quality, index, tag.strip()))
    return [tag for _, _, tag in sorted(weighted)]


def resolve_culture(conn: HTTPConnection, site: SiteOptions) -> str:
    supported = {c.lower(): c for c in site.cultures}

    cookie = conn.cookies.get(CULTURE_COOKIE)
    if cookie and cookie.lower() in supported:
        return supported[cookie.lower()]

    for tag in _accept_language(conn.headers.get("accept-language", "")):
        tag = tag.lower()
        if tag in supported:
            return supported[tag]
        # "en" matches the first supported "en-*" culture
        for key, culture in supported.items():
            if key.split("-")[0] == tag:
                return culture

    return site.default_culture
