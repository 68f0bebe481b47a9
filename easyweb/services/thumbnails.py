"""Thumbnail generation for requested images.

The default generator uses Pillow and caches every generated size on disk.
Another implementation can be plugged in through ``thumbnails.generator``
(``"package.module:ClassName"``) or by passing ``thumbnail_generator`` to
``create_app``; it only has to provide ``generate``.
"""

from __future__ import annotations

import hashlib
import importlib
import logging
from pathlib import Path
from typing import Literal, Protocol

from PIL import Image, ImageOps, UnidentifiedImageError

from easyweb.config import ThumbnailOptions
from easyweb.exceptions import ThumbnailError

logger = logging.getLogger(__name__)

ResizeMode = Literal["max", "crop"]

_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG", ".gif": "GIF", ".webp": "WEBP"}


class ThumbnailGenerator(Protocol):
    def generate(
        self,
        source: Path,
        width: int | None = None,
        height: int | None = None,
        mode: ResizeMode = "max",
    ) -> Path: ...


class DefaultThumbnailGenerator:
    def __init__(self, options: ThumbnailOptions, cache_dir: Path):
        self.options = options
        self.cache_dir = cache_dir

    def _clamp(self, value: int | None) -> int | None:
        if value is None:
            return None
        if value <= 0:
            raise ThumbnailError(f"Invalid thumbnail size: {value}")
        return min(value, self.options.max_size)

    def cache_path(self, source: Path, width: int | None, height: int | None, mode: str) -> Path:
        stat = source.stat()
        key = f"{source.resolve()}|{stat.st_mtime_ns}|{width}|{height}|{mode}|{self.options.quality}"
        digest = hashlib.sha1(key.encode()).hexdigest()
        return self.cache_dir / digest[0:2] / f"{digest}{source.suffix.lower()}"

    def generate(
        self,
        source: Path,
        width: int | None = None,
        height: int | None = None,
        mode: ResizeMode = "max",
    ) -> Path:
        if not source.exists():
            raise FileNotFoundError(source)

        width, height = self._clamp(width), self._clamp(height)
        if width is None and height is None:
            return source
        if mode not in ("max", "crop"):
            raise ThumbnailError(f"Unknown resize mode: {mode}")

        dest = self.cache_path(source, width, height, mode)
        if dest.exists():
            return dest

        try:
            with Image.open(source) as img:
                img = ImageOps.exif_transpose(img)
                target = (
                    width or max(1, img.width * height // img.height),
                    height or max(1, img.height * width // img.width),
                )
                if mode == "crop":
                    thumb = ImageOps.fit(img, target, method=Image.Resampling.LANCZOS)
                else:
                    thumb = img.copy()
                    thumb.thumbnail(target, Image.Resampling.LANCZOS)

                image_format = _FORMATS.get(source.suffix.lower(), img.format or "PNG")
                if image_format == "JPEG" and thumb.mode not in ("RGB", "L"):
                    thumb = thumb.convert("RGB")

                dest.parent.mkdir(parents=True, exist_ok=True)
                save_kwargs = {"quality": self.options.quality} if image_format in ("JPEG", "WEBP") else {}
                thumb.save(dest, format=image_format, **save_kwargs)
        except UnidentifiedImageError as e:
            raise ThumbnailError(f"Not an image: {source.name}") from e

        logger.debug(f"Generated thumbnail {dest} ({width}x{height}, {mode})")
        return dest


def load_thumbnail_generator(options: ThumbnailOptions, cache_dir: Path) -> ThumbnailGenerator:
    """Instantiate the configured generator, or the default one."""
    if not options.generator:
        return DefaultThumbnailGenerator(options, cache_dir)

    module_name, _, class_name = options.generator.partition(":")
    if not class_name:
        raise ValueError(f"thumbnails.generator must be 'module:Class', got {options.generator!r}")
    generator_cls = getattr(importlib.import_module(module_name), class_name)
    logger.info(f"Using thumbnail generator {options.generator}")
    return generator_cls(options, cache_dir)
