"""
Swatch Selection Module

Picks the representative color from a swatch set: categories are tried in
priority order and each candidate must pass a readability check; when none
passes, a population-weighted average of all swatches is used instead.
"""

from typing import List, Optional

from loguru import logger

from .color_model import RGB, relative_luminance
from .swatches import REQUIRED_CATEGORIES, SwatchCategory, SwatchSet

MIN_LUMINANCE = 0.15
MAX_LUMINANCE = 0.95
MIN_SATURATION = 0.2


def is_color_quality_good(rgb: Optional[RGB],
                          min_luminance: float = MIN_LUMINANCE,
                          max_luminance: float = MAX_LUMINANCE,
                          min_saturation: float = MIN_SATURATION) -> bool:
    """
    Check whether a color is usable as dialogue text.

    Rejects colors that are too dark, too light, or too gray. Saturation
    here is the HSV-style (max - min) / max over normalized channels.
    """
    if not rgb:
        return False

    luminance = relative_luminance(rgb)
    if luminance < min_luminance or luminance > max_luminance:
        return False

    max_c = max(rgb[:3]) / 255.0
    min_c = min(rgb[:3]) / 255.0
    saturation = 0.0 if max_c == 0 else (max_c - min_c) / max_c

    return saturation >= min_saturation


def average_color_from_swatches(swatches: SwatchSet) -> Optional[RGB]:
    """
    Population-weighted average of every present swatch.

    Returns:
        Rounded RGB tuple, or None for an empty set
    """
    valid = [swatch for swatch in swatches.values() if swatch is not None]
    if not valid:
        return None

    total_r = total_g = total_b = 0.0
    total_population = 0
    for swatch in valid:
        r, g, b = swatch.rgb
        total_r += r * swatch.population
        total_g += g * swatch.population
        total_b += b * swatch.population
        total_population += swatch.population

    # Avoid division by zero
    if total_population == 0:
        total_population = 1

    return (
        int(round(total_r / total_population)),
        int(round(total_g / total_population)),
        int(round(total_b / total_population)),
    )


def choose_swatch_color(swatches: SwatchSet,
                        priority: Optional[List[SwatchCategory]] = None) -> Optional[RGB]:
    """
    Return the first swatch color, in priority order, that passes the quality check.

    Falls back to the weighted average (unfiltered) when none passes, and to
    None when the set is empty.
    """
    priority = REQUIRED_CATEGORIES if priority is None else priority

    for category in priority:
        swatch = swatches.get(category)
        if swatch is None:
            continue
        if is_color_quality_good(swatch.rgb):
            logger.debug(f"Selected {category.value} swatch {swatch.rgb}")
            return swatch.rgb
        logger.debug(f"Rejected {category.value} swatch {swatch.rgb} on quality")

    average = average_color_from_swatches(swatches)
    if average is not None:
        logger.debug(f"No swatch passed quality, using weighted average {average}")
    return average
