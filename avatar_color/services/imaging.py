"""
Avatar Color Imaging Utilities
Image sources, decoding, and downscaling for fast palette analysis.
"""
import asyncio
import io
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from avatar_color.config import config
from avatar_color.services.fingerprint import compute_sha256


class ImageLoadError(Exception):
    """Image could not be read or decoded."""
    pass


def _pil_to_rgba(pil_image: Image.Image) -> np.ndarray:
    """Convert a PIL image to an RGBA uint8 array."""
    if pil_image.mode != 'RGBA':
        pil_image = pil_image.convert('RGBA')
    rgba = np.array(pil_image)
    if rgba.ndim != 3 or rgba.shape[0] == 0 or rgba.shape[1] == 0:
        raise ImageLoadError(f"Decoded image has no pixels: shape={rgba.shape}")
    return rgba


def decode_image_bytes(image_bytes: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, WebP, ...) to RGBA.

    Raises:
        ImageLoadError: For empty or undecodable data
    """
    if not image_bytes:
        raise ImageLoadError("Empty image data")

    try:
        pil_image = Image.open(io.BytesIO(image_bytes))
        pil_image.load()
    except Exception as e:
        raise ImageLoadError(f"Failed to decode image: {str(e)}") from e

    return _pil_to_rgba(pil_image)


def ensure_rgba(raster: np.ndarray) -> np.ndarray:
    """
    Normalize an RGB or RGBA uint8 raster to RGBA.

    Raises:
        ImageLoadError: If the array is not an (H, W, 3|4) image
    """
    if raster.ndim != 3 or raster.shape[2] not in (3, 4):
        raise ImageLoadError(f"Expected an (H, W, 3) or (H, W, 4) raster, got {raster.shape}")
    if raster.shape[0] == 0 or raster.shape[1] == 0:
        raise ImageLoadError("Raster has no pixels")

    raster = raster.astype(np.uint8, copy=False)
    if raster.shape[2] == 3:
        alpha = np.full(raster.shape[:2] + (1,), 255, dtype=np.uint8)
        raster = np.concatenate([raster, alpha], axis=2)
    return raster


class ImageSource(ABC):
    """A handle to an avatar image that can be decoded on demand."""

    @property
    @abstractmethod
    def identity(self) -> str:
        """Stable key identifying this image for caching."""
        pass

    @abstractmethod
    async def load(self) -> np.ndarray:
        """Return the fully decoded image as an RGBA uint8 array (H, W, 4)."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity!r})"


class FileImageSource(ImageSource):
    """Image stored on disk; identity is its resolved path."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def identity(self) -> str:
        return str(self.path.resolve())

    def _read(self) -> np.ndarray:
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise ImageLoadError(f"Failed to read {self.path}: {e}") from e
        return decode_image_bytes(data)

    async def load(self) -> np.ndarray:
        return await asyncio.to_thread(self._read)


class BytesImageSource(ImageSource):
    """Encoded image held in memory; identity defaults to its content hash."""

    def __init__(self, data: bytes, identity: Optional[str] = None):
        self.data = data
        self._identity = identity or f"sha256:{compute_sha256(data)}"

    @property
    def identity(self) -> str:
        return self._identity

    async def load(self) -> np.ndarray:
        return await asyncio.to_thread(decode_image_bytes, self.data)


class ArrayImageSource(ImageSource):
    """Already-decoded RGB/RGBA raster."""

    def __init__(self, array: np.ndarray, identity: str):
        self.array = array
        self._identity = identity

    @property
    def identity(self) -> str:
        return self._identity

    async def load(self) -> np.ndarray:
        return ensure_rgba(self.array)


def scaled_dimensions(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    Dimensions after capping the longer side at max_dimension.

    Aspect ratio is preserved and results are rounded to whole pixels
    (never below 1).
    """
    new_width, new_height = float(width), float(height)
    if width > height:
        if width > max_dimension:
            new_height = height * max_dimension / width
            new_width = max_dimension
    else:
        if height > max_dimension:
            new_width = width * max_dimension / height
            new_height = max_dimension

    return max(1, int(round(new_width))), max(1, int(round(new_height)))


def downscale_to_canvas(raster: np.ndarray, max_dimension: Optional[int] = None) -> np.ndarray:
    """
    Downscale a decoded raster so its longer side is at most max_dimension.

    Args:
        raster: Decoded image (H, W, C) uint8
        max_dimension: Maximum edge size (default from config)

    Returns:
        Resized raster, or the input unchanged when already within bounds
    """
    if max_dimension is None:
        max_dimension = config.MAX_DIMENSION

    height, width = raster.shape[:2]
    new_width, new_height = scaled_dimensions(width, height, max_dimension)

    if (new_width, new_height) == (width, height):
        return raster

    # INTER_AREA for downscaling (better quality)
    return cv2.resize(raster, (new_width, new_height), interpolation=cv2.INTER_AREA)


def get_image_dimensions(raster: np.ndarray) -> Tuple[int, int]:
    """Return (width, height) of a raster."""
    height, width = raster.shape[:2]
    return width, height
