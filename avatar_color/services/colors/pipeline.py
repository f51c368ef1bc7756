"""
Avatar Color Pipeline

Drives load -> downscale -> extract (primary + fallback) -> cache -> select
for one avatar image. Concurrent requests for the same image identity share
one extraction.
"""

from typing import Optional

from loguru import logger

from avatar_color.config import config
from avatar_color.services.cache import SwatchCache
from avatar_color.services.imaging import ImageSource, downscale_to_canvas
from avatar_color.utils.ids import generate_request_id
from avatar_color.utils.metrics import performance_monitor
from .color_model import RGB
from .extraction import extract_swatches
from .selection import choose_swatch_color
from .swatches import SwatchSet


class AvatarColorExtractor:
    """Extracts and memoizes swatch sets per image identity."""

    def __init__(self, cache: Optional[SwatchCache] = None, max_dimension: Optional[int] = None):
        self.cache = cache if cache is not None else SwatchCache()
        self.max_dimension = config.MAX_DIMENSION if max_dimension is None else max_dimension
        if not config.validate_max_dimension(self.max_dimension):
            raise ValueError(f"max_dimension out of range: {self.max_dimension}")

    async def _extract(self, image: ImageSource) -> SwatchSet:
        request_id = generate_request_id("ext")
        log = logger.bind(request_id=request_id, image=image.identity)
        log.info("Starting swatch extraction")

        raster = await image.load()

        with performance_monitor("preprocess"):
            canvas = downscale_to_canvas(raster, self.max_dimension)

        swatches = extract_swatches(canvas, request_id=request_id)
        log.info(f"Extraction finished with categories {[c.value for c in swatches]}")
        return swatches

    async def get_swatches(self, image: ImageSource) -> SwatchSet:
        """
        Return the merged swatch set for an image, extracting at most once per identity.

        Raises:
            ImageLoadError: If the image cannot be decoded
        """
        return await self.cache.get_or_compute(image.identity, lambda: self._extract(image))

    async def get_smart_avatar_color(self, image: ImageSource) -> Optional[RGB]:
        """
        Best readable color of an avatar, or None if no swatch could be found.

        Extraction failures never raise; only an image that cannot be loaded does.
        """
        swatches = await self.get_swatches(image)
        return choose_swatch_color(swatches)


_default_extractor: Optional[AvatarColorExtractor] = None


def get_default_extractor() -> AvatarColorExtractor:
    """Process-wide extractor shared by calls that do not inject their own."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = AvatarColorExtractor()
    return _default_extractor


def reset_default_extractor():
    """Drop the shared extractor and its cache (for tests)."""
    global _default_extractor
    _default_extractor = None


async def get_smart_avatar_color(image: ImageSource,
                                 extractor: Optional[AvatarColorExtractor] = None) -> Optional[RGB]:
    """Top-level entry point; uses the shared default extractor unless one is given."""
    extractor = extractor if extractor is not None else get_default_extractor()
    return await extractor.get_smart_avatar_color(image)
