"""
Swatch Types and Classification

Defines the Swatch value type shared by both extractors, the six semantic
categories a swatch can fill, the saturation/lightness classifier, and the
merge policy that patches a primary swatch set with fallback results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .color_model import RGB, rgb_to_hex, rgb_to_hsl


class SwatchCategory(str, Enum):
    """Saturation/lightness bucket of a color."""
    VIBRANT = "Vibrant"
    DARK_VIBRANT = "DarkVibrant"
    LIGHT_VIBRANT = "LightVibrant"
    MUTED = "Muted"
    DARK_MUTED = "DarkMuted"
    LIGHT_MUTED = "LightMuted"


# Every extraction result is expected to fill these; order is also selection priority
REQUIRED_CATEGORIES: List[SwatchCategory] = [
    SwatchCategory.VIBRANT,
    SwatchCategory.DARK_VIBRANT,
    SwatchCategory.LIGHT_VIBRANT,
    SwatchCategory.MUTED,
    SwatchCategory.DARK_MUTED,
    SwatchCategory.LIGHT_MUTED,
]

# Classifier thresholds, in percent
VIBRANT_SATURATION_PCT = 40.0
DARK_LIGHTNESS_PCT = 40.0
LIGHT_LIGHTNESS_PCT = 60.0


@dataclass(frozen=True)
class Swatch:
    """A representative color and the number of source pixels it stands for."""
    rgb: RGB
    population: int = 1

    def __post_init__(self):
        if len(self.rgb) != 3 or any(not 0 <= int(c) <= 255 for c in self.rgb):
            raise ValueError(f"RGB channels must be three integers in [0, 255]: {self.rgb}")
        if self.population < 0:
            raise ValueError(f"Population must be non-negative: {self.population}")
        object.__setattr__(self, "rgb", tuple(int(c) for c in self.rgb))

    @property
    def hex(self) -> str:
        return rgb_to_hex(self.rgb)


SwatchSet = Dict[SwatchCategory, Swatch]


def classify_color(r: int, g: int, b: int) -> SwatchCategory:
    """
    Bucket an RGB triple into one of the six categories.

    saturation > 40% is Vibrant, otherwise Muted; lightness < 40% adds the
    Dark prefix and lightness > 60% the Light prefix.
    """
    hsl = rgb_to_hsl(r, g, b)
    saturation = hsl.s * 100.0
    lightness = hsl.l * 100.0

    vibrancy_type = "Vibrant" if saturation > VIBRANT_SATURATION_PCT else "Muted"

    lightness_type = ""
    if lightness < DARK_LIGHTNESS_PCT:
        lightness_type = "Dark"
    elif lightness > LIGHT_LIGHTNESS_PCT:
        lightness_type = "Light"

    return SwatchCategory(f"{lightness_type}{vibrancy_type}")


def classify_palette(palette: Iterable[RGB], population: int = 1) -> SwatchSet:
    """
    Classify a flat palette into a swatch set, keeping the first color per category.

    Palette order is assumed to reflect dominance, so earlier entries win.
    """
    classified: SwatchSet = {}
    for color in palette:
        r, g, b = [int(c) for c in color[:3]]
        category = classify_color(r, g, b)
        if category not in classified:
            classified[category] = Swatch(rgb=(r, g, b), population=population)
            logger.debug(f"Palette color ({r}, {g}, {b}) -> {category.value}")
    return classified


def missing_categories(swatches: SwatchSet,
                       required: Optional[List[SwatchCategory]] = None) -> List[SwatchCategory]:
    """List required categories absent from the swatch set, in priority order."""
    required = REQUIRED_CATEGORIES if required is None else required
    return [category for category in required if swatches.get(category) is None]


def merge_swatch_sets(primary: SwatchSet, fallback: SwatchSet,
                      required: Optional[List[SwatchCategory]] = None) -> SwatchSet:
    """
    Fill gaps in the primary set with fallback swatches.

    Primary entries are never replaced; only required categories the primary
    set lacks are copied from the fallback, and only if the fallback has them.
    """
    merged: SwatchSet = dict(primary)
    for category in missing_categories(merged, required):
        if category in fallback:
            merged[category] = fallback[category]
    return merged
