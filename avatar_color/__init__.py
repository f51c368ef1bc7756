"""
Avatar Color

Extracts a readable representative color from avatar images: palette
extraction with fallback, quality-filtered swatch selection, contrast
correction for dark or light themes, and in-memory caching.
"""

__version__ = "1.0.0"

from avatar_color.schemas import (
    CharacterType, ColorizeSourceType, ColorSettings, ColorSubject, EnhancementParameters, Theme
)
from avatar_color.services.colors.contrast import make_better_contrast
from avatar_color.services.colors.pipeline import AvatarColorExtractor, get_smart_avatar_color
from avatar_color.services.imaging import (
    ArrayImageSource, BytesImageSource, FileImageSource, ImageLoadError, ImageSource
)
from avatar_color.services.orchestrator import DialogueColorService

__all__ = [
    "ArrayImageSource", "AvatarColorExtractor", "BytesImageSource", "CharacterType",
    "ColorSettings", "ColorSubject", "ColorizeSourceType", "DialogueColorService",
    "EnhancementParameters", "FileImageSource", "ImageLoadError", "ImageSource",
    "Theme", "get_smart_avatar_color", "make_better_contrast",
]
