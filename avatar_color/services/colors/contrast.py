"""
Contrast Enhancement Module

Adjusts an extracted color so it stays readable as text on a dark or light
background: saturation is floored, lightness is pulled into a theme-specific
band, then optional user adjustments are applied. Pure functions only;
caching the output is the caller's job.
"""

from typing import Optional

from avatar_color.schemas import EnhancementParameters, Theme
from .color_model import RGB, hsl_to_rgb, relative_luminance, rgb_to_hsl

SATURATION_FLOOR = 0.4
SATURATION_LIFT = 0.3
SATURATION_LIFT_CAP = 0.8
VIBRANCY_BOOST = 0.35


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def correct_saturation(saturation: float) -> float:
    """Lift saturation below 0.4 by 0.3, capped at 0.8."""
    if saturation < SATURATION_FLOOR:
        return min(saturation + SATURATION_LIFT, SATURATION_LIFT_CAP)
    return saturation


def correct_lightness(lightness: float, theme: Theme) -> float:
    """
    Pull lightness into the readable band for the theme.

    Dark: <0.5 -> 0.65, [0.5, 0.7) -> 0.7, >0.85 -> 0.8.
    Light: >0.6 -> 0.45, (0.4, 0.6] -> 0.4, then <0.2 -> 0.25.
    """
    if theme == Theme.LIGHT:
        if lightness > 0.6:
            lightness = 0.45
        elif lightness > 0.4:
            lightness = 0.4
        # Not so dark it reads as black text
        if lightness < 0.2:
            lightness = 0.25
    else:
        if lightness < 0.5:
            lightness = 0.65
        elif lightness < 0.7:
            lightness = 0.7
        elif lightness > 0.85:
            lightness = 0.8
    return lightness


def make_better_contrast(rgb: RGB,
                         theme: Optional[Theme] = None,
                         params: Optional[EnhancementParameters] = None) -> RGB:
    """
    Transform a raw color into a readable display color.

    Args:
        rgb: Extracted color
        theme: Background theme; defaults to params.theme, then Dark
        params: Vibrancy boost and/or hue/saturation/lightness deltas

    Returns:
        Adjusted RGB color
    """
    params = params or EnhancementParameters()
    theme = theme if theme is not None else params.theme
    hsl = rgb_to_hsl(*rgb[:3])

    hue = hsl.h
    saturation = correct_saturation(hsl.s)
    lightness = correct_lightness(hsl.l, theme)

    if params.boost_vibrancy:
        saturation = _clamp_unit(saturation + VIBRANCY_BOOST)

    if params.has_adjustments:
        hue = (hue + params.hue_adjust) % 360.0
        saturation = _clamp_unit(saturation + params.sat_adjust / 100.0)
        lightness = _clamp_unit(lightness + params.lum_adjust / 100.0)

    return hsl_to_rgb(hue, saturation, lightness)


def enhanced_lightness(rgb: RGB, theme: Theme) -> float:
    """Lightness make_better_contrast targets for rgb before any user adjustment."""
    return correct_lightness(rgb_to_hsl(*rgb[:3]).l, theme)


def detect_theme(background_rgb: RGB) -> Theme:
    """Light when the background's perceived luminance exceeds 0.5, else Dark."""
    return Theme.LIGHT if relative_luminance(background_rgb) > 0.5 else Theme.DARK
