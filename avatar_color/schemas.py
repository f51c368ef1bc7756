"""
Avatar Color Schemas
Pydantic models for enhancement parameters and per-character-type color settings.
"""
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from avatar_color.config import config
from avatar_color.services.colors.color_model import get_hex_with_hash, is_valid_hex_string
from avatar_color.services.imaging import ImageSource


class Theme(str, Enum):
    """Background context the color will be displayed on."""
    LIGHT = "light"
    DARK = "dark"


class CharacterType(str, Enum):
    """Kind of displayable entity; each kind has its own settings."""
    CHARACTER = "character"
    PERSONA = "persona"


class ColorizeSourceType(str, Enum):
    """Where a subject's dialogue color comes from."""
    AVATAR_SMART = "avatar_smart"
    CHAR_COLOR_OVERRIDE = "char_color_override"
    STATIC_COLOR = "static_color"
    DISABLED = "disabled"


class EnhancementParameters(BaseModel):
    """User adjustments applied after contrast correction."""
    model_config = ConfigDict(frozen=True)

    theme: Theme = Field(Theme.DARK, description="Background theme")
    boost_vibrancy: bool = Field(False, description="Add a flat +0.35 saturation boost")
    hue_adjust: float = Field(0.0, ge=-180, le=180, description="Hue rotation in degrees")
    sat_adjust: float = Field(0.0, ge=-100, le=100, description="Saturation delta in percentage points")
    lum_adjust: float = Field(0.0, ge=-100, le=100, description="Lightness delta in percentage points")

    @property
    def has_adjustments(self) -> bool:
        return bool(self.hue_adjust or self.sat_adjust or self.lum_adjust)


class ColorSettings(BaseModel):
    """Display settings shared by every subject of one character type."""
    model_config = ConfigDict(validate_assignment=True)

    colorize_source: ColorizeSourceType = Field(
        ColorizeSourceType.AVATAR_SMART,
        description="Color source used when the subject has no override"
    )
    static_color: str = Field(config.DEFAULT_COLOR_HEX, description="Color used by the static source")
    color_overrides: Dict[str, str] = Field(
        default_factory=dict,
        description="Per-avatar hex overrides keyed by avatar name"
    )
    color_name_text: bool = Field(False, description="Also color the subject's name")
    boost_vibrancy: bool = False
    hue_adjust: float = Field(0.0, ge=-180, le=180)
    sat_adjust: float = Field(0.0, ge=-100, le=100)
    lum_adjust: float = Field(0.0, ge=-100, le=100)

    @field_validator("static_color")
    @classmethod
    def _validate_static_color(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_hex_string(value):
            raise ValueError(f"Invalid hex color: {value!r}")
        return get_hex_with_hash(value)

    @field_validator("color_overrides")
    @classmethod
    def _validate_overrides(cls, value: Dict[str, str]) -> Dict[str, str]:
        for avatar_name, hex_color in value.items():
            if not is_valid_hex_string(hex_color):
                raise ValueError(f"Invalid hex color for {avatar_name!r}: {hex_color!r}")
        return {name: get_hex_with_hash(hex_color) for name, hex_color in value.items()}

    def enhancement_for(self, theme: Theme) -> EnhancementParameters:
        """Enhancement parameters for this settings block on a given theme."""
        return EnhancementParameters(
            theme=theme,
            boost_vibrancy=self.boost_vibrancy,
            hue_adjust=self.hue_adjust,
            sat_adjust=self.sat_adjust,
            lum_adjust=self.lum_adjust,
        )


class ColorSubject(BaseModel):
    """A displayable entity as identified by the caller."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    type: CharacterType
    uid: str = Field(..., min_length=1, description="Stable identity key")
    avatar_name: str = Field(..., description="Avatar file name, used for overrides")
    image: Optional[ImageSource] = Field(None, description="Avatar thumbnail source")
