"""
Dialogue Color Orchestrator
Resolves the final display color for characters and personas: applies the
configured color source, runs avatar extraction and contrast enhancement,
and caches results per subject, theme and enhancement settings.
"""
from typing import Dict, Optional, Union

from avatar_color.config import config
from avatar_color.schemas import (
    CharacterType, ColorizeSourceType, ColorSettings, ColorSubject, Theme
)
from avatar_color.services.cache import BatchEvictingCache
from avatar_color.services.colors.color_model import (
    RGB, InvalidHexError, get_hex_with_hash, hex_to_rgb, is_valid_hex_string, rgb_to_hex
)
from avatar_color.services.colors.contrast import make_better_contrast
from avatar_color.services.colors.pipeline import AvatarColorExtractor, get_default_extractor
from avatar_color.services.fingerprint import (
    enhancement_variant, generate_color_cache_key, subject_prefix
)
from avatar_color.utils.logging import get_logger
from avatar_color.utils.metrics import get_metrics_instance

# Settings whose change alters the enhanced color
ENHANCEMENT_FIELDS = {"boost_vibrancy", "hue_adjust", "sat_adjust", "lum_adjust"}


def get_text_valid_hex_or_default(text: str, default: Optional[str]) -> Optional[str]:
    """Trim and validate user-entered hex; return it '#'-prefixed, or default if invalid."""
    trimmed = (text or "").strip()
    if not is_valid_hex_string(trimmed):
        return default
    return get_hex_with_hash(trimmed)


class DialogueColorService:
    """Caller-facing color resolution with a settings-aware color cache."""

    def __init__(self,
                 extractor: Optional[AvatarColorExtractor] = None,
                 settings_by_type: Optional[Dict[CharacterType, ColorSettings]] = None,
                 cache: Optional[BatchEvictingCache] = None,
                 default_color: Optional[str] = None):
        self.extractor = extractor if extractor is not None else get_default_extractor()
        if settings_by_type is None:
            settings_by_type = {
                CharacterType.CHARACTER: ColorSettings(),
                CharacterType.PERSONA: ColorSettings(),
            }
        self.settings: Dict[CharacterType, ColorSettings] = settings_by_type
        self.cache = cache if cache is not None else BatchEvictingCache()
        self.default_rgb: RGB = hex_to_rgb(default_color or config.DEFAULT_COLOR_HEX)
        self.log = get_logger().bind(component="dialogue_color")

    def get_settings(self, char_type: Union[CharacterType, str]) -> ColorSettings:
        """Settings for a character type; unknown types get a fresh copy of the defaults."""
        try:
            return self.settings[CharacterType(char_type)]
        except (KeyError, ValueError):
            self.log.warning(
                f"Character type '{char_type}' has no settings, using defaults",
                extra={"type": str(char_type)}
            )
            return ColorSettings()

    def resolve_source(self, subject: ColorSubject) -> ColorizeSourceType:
        """An override for the subject's avatar wins over the configured source."""
        settings = self.get_settings(subject.type)
        if subject.avatar_name in settings.color_overrides:
            return ColorizeSourceType.CHAR_COLOR_OVERRIDE
        return settings.colorize_source

    def cache_key(self, subject: ColorSubject, theme: Theme) -> str:
        settings = self.get_settings(subject.type)
        variant = enhancement_variant(
            settings.boost_vibrancy, settings.hue_adjust, settings.sat_adjust, settings.lum_adjust
        )
        return generate_color_cache_key(subject.type.value, subject.uid, variant, theme.value)

    async def get_dialogue_color(self, subject: ColorSubject, theme: Theme = Theme.DARK) -> Optional[RGB]:
        """
        Final display color for a subject, or None when coloring is disabled.

        Avatar extraction problems never raise here; the default color is
        returned (and cached) instead.
        """
        settings = self.get_settings(subject.type)
        source = self.resolve_source(subject)

        if source == ColorizeSourceType.STATIC_COLOR:
            return hex_to_rgb(settings.static_color)
        if source == ColorizeSourceType.CHAR_COLOR_OVERRIDE:
            override = settings.color_overrides.get(subject.avatar_name)
            return hex_to_rgb(override) if override else None
        if source != ColorizeSourceType.AVATAR_SMART:
            return None

        return await self._get_avatar_color(subject, settings, theme)

    async def _get_avatar_color(self, subject: ColorSubject, settings: ColorSettings, theme: Theme) -> RGB:
        metrics = get_metrics_instance()
        key = self.cache_key(subject, theme)

        cached = self.cache.get(key)
        if cached is not None:
            metrics.record_cache_hit("display")
            return cached
        metrics.record_cache_miss("display")

        try:
            if subject.image is None:
                raise ValueError("Subject has no avatar image")
            raw = await self.extractor.get_smart_avatar_color(subject.image)
            if raw is None:
                color = self.default_rgb
            else:
                color = make_better_contrast(raw, theme, settings.enhancement_for(theme))
        except Exception as e:
            self.log.warning(
                f"Failed to extract color from avatar: {e}",
                extra={"uid": subject.uid, "type": subject.type.value}
            )
            metrics.record_failure("avatar_color")
            color = self.default_rgb

        self.cache.set(key, color)
        return color

    async def get_dialogue_color_hex(self, subject: ColorSubject, theme: Theme = Theme.DARK) -> Optional[str]:
        color = await self.get_dialogue_color(subject, theme)
        return rgb_to_hex(color) if color is not None else None

    async def get_name_color(self, subject: ColorSubject, theme: Theme = Theme.DARK) -> Optional[RGB]:
        """Color for the subject's name label: the dialogue color when color_name_text is on, else None."""
        if not self.get_settings(subject.type).color_name_text:
            return None
        return await self.get_dialogue_color(subject, theme)

    def clear_cache_for_subject(self, subject: ColorSubject) -> int:
        """Drop every cached variant for one character or persona."""
        return self.cache.delete_prefix(subject_prefix(subject.type.value, subject.uid))

    def clear_cache_for_type(self, char_type: CharacterType) -> int:
        """Drop every cached color for one character type."""
        return self.cache.delete_prefix(subject_prefix(CharacterType(char_type).value))

    def set_color_override(self, subject: ColorSubject, value: Optional[str]) -> None:
        """
        Set or clear (empty/None) a subject's override color.

        Raises:
            InvalidHexError: For a malformed value; the previous override is kept
        """
        settings = self.get_settings(subject.type)
        overrides = dict(settings.color_overrides)

        if value:
            validated = get_text_valid_hex_or_default(value, None)
            if validated is None:
                raise InvalidHexError(f"Invalid hex color format: {value!r}")
            overrides[subject.avatar_name] = validated
        else:
            overrides.pop(subject.avatar_name, None)

        settings.color_overrides = overrides
        self.clear_cache_for_subject(subject)

    def update_settings(self, char_type: CharacterType, **changes) -> ColorSettings:
        """
        Apply setting changes for a character type.

        Changing an enhancement field invalidates that type's cached colors.
        If any value is invalid nothing is applied.
        """
        settings = self.get_settings(char_type)
        unknown = set(changes) - set(ColorSettings.model_fields)
        if unknown:
            raise AttributeError(f"Unknown color setting: {sorted(unknown)}")

        # Validate the whole update before touching the live settings
        candidate = ColorSettings.model_validate({**settings.model_dump(), **changes})
        changed = set()
        for name in changes:
            value = getattr(candidate, name)
            if getattr(settings, name) != value:
                setattr(settings, name, value)
                changed.add(name)

        if changed & ENHANCEMENT_FIELDS:
            self.clear_cache_for_type(char_type)
        return settings
