"""
Color Model

RGB, HSL and hex conversions shared by every other component. Hue is
expressed in degrees [0, 360); saturation, lightness and alpha are
fractions in [0, 1].
"""

import colorsys
import re
from dataclasses import dataclass
from typing import Tuple

RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, float]

_HEX_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")


class InvalidHexError(ValueError):
    """Malformed hex color string."""
    pass


@dataclass(frozen=True)
class HSLColor:
    """A color in HSL space with alpha."""
    h: float  # Hue [0, 360)
    s: float  # Saturation [0, 1]
    l: float  # Lightness [0, 1]
    a: float = 1.0  # Alpha [0, 1]

    def to_rgb(self) -> RGB:
        return hsl_to_rgb(self.h, self.s, self.l)

    def to_rgba(self) -> RGBA:
        return hsl_to_rgba(self.h, self.s, self.l, self.a)


def _clamp_channel(value: float) -> int:
    return max(0, min(255, int(round(value))))


def rgb_to_hsl(r: int, g: int, b: int, a: float = 1.0) -> HSLColor:
    """
    Convert an RGB triple to HSL.

    Achromatic colors (all channels equal) map to hue 0 and saturation 0.

    Args:
        r, g, b: Channels in [0, 255]
        a: Alpha in [0, 1], carried through unchanged

    Returns:
        HSLColor with hue in degrees and s/l as fractions
    """
    h, l, s = colorsys.rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
    return HSLColor(h=(h * 360.0) % 360.0, s=s, l=l, a=a)


def hsl_to_rgba(h: float, s: float, l: float, a: float = 1.0) -> RGBA:
    """
    Convert HSL (+ alpha) back to 8-bit RGB with alpha preserved.

    Args:
        h: Hue in degrees, any value (wrapped modulo 360)
        s: Saturation [0, 1]
        l: Lightness [0, 1]
        a: Alpha [0, 1]
    """
    r, g, b = colorsys.hls_to_rgb((h % 360.0) / 360.0, l, s)
    return _clamp_channel(r * 255), _clamp_channel(g * 255), _clamp_channel(b * 255), a


def hsl_to_rgb(h: float, s: float, l: float) -> RGB:
    r, g, b, _ = hsl_to_rgba(h, s, l)
    return r, g, b


def rgb_to_hex(rgb: RGB) -> str:
    """Convert RGB tuple to #RRGGBB (uppercase, zero-padded)."""
    r, g, b = [int(x) for x in rgb[:3]]
    return f"#{r:02X}{g:02X}{b:02X}"


def is_valid_hex_string(value: str) -> bool:
    """Accept 3 or 6 hex digits with an optional leading '#'."""
    if not isinstance(value, str):
        return False
    return _HEX_PATTERN.match(value) is not None


def get_hex_with_hash(value: str) -> str:
    """Return the hex string with exactly one leading '#'."""
    return "#" + value.lstrip("#")


def hex_to_rgb(hex_color: str) -> RGB:
    """
    Convert a hex color string to an RGB tuple.

    Short form (#RGB) is expanded by doubling each digit.

    Raises:
        InvalidHexError: If the string is not 3 or 6 hex digits
    """
    if not is_valid_hex_string(hex_color):
        raise InvalidHexError(f"Invalid hex color format: {hex_color!r}")

    hex_clean = hex_color.lstrip("#")
    if len(hex_clean) == 3:
        hex_clean = "".join(ch * 2 for ch in hex_clean)
    return tuple(int(hex_clean[i:i + 2], 16) for i in (0, 2, 4))


def relative_luminance(rgb: RGB) -> float:
    """Perceived luminance (0.299R + 0.587G + 0.114B) normalized to [0, 1]."""
    r, g, b = rgb[:3]
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255.0
