"""
Avatar Color Fingerprinting Utilities
Handles image identity hashing and cache key generation.
"""
import hashlib
from typing import Any, Dict, Optional


def compute_sha256(image_bytes: bytes) -> str:
    """Content hash used as the identity of in-memory avatar images."""
    return hashlib.sha256(image_bytes).hexdigest()


def generate_cache_key_digest(params: Dict[str, Any]) -> str:
    """
    Order-independent MD5 of a parameter mapping.

    Values are rendered with repr after sorting by name, so 10 and 10.0
    digest differently; callers normalize numeric types first.
    """
    canonical = ";".join(f"{name}={value!r}" for name, value in sorted(params.items()))
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


def subject_prefix(char_type: str, uid: Optional[str] = None) -> str:
    """
    Key prefix shared by every cached color of a character type or one subject.

    Keys are pipe-delimited, so a prefix always ends in '|'.
    """
    if uid is None:
        return f"{char_type}|"
    return f"{char_type}|{uid}|"


def enhancement_variant(boost_vibrancy: bool,
                        hue_adjust: float = 0,
                        sat_adjust: float = 0,
                        lum_adjust: float = 0) -> str:
    """
    Short token describing the enhancement settings.

    Without explicit adjustments this is "boosted" or "normal"; with any
    non-zero adjustment an 8-char digest of all four values is appended.
    """
    base = "boosted" if boost_vibrancy else "normal"
    if not (hue_adjust or sat_adjust or lum_adjust):
        return base

    digest = generate_cache_key_digest({
        'hue': float(hue_adjust),
        'sat': float(sat_adjust),
        'lum': float(lum_adjust),
    })
    return f"{base}:{digest[:8]}"


def generate_color_cache_key(char_type: str, uid: str, variant: str, theme: str) -> str:
    """
    Generate composite final-color cache key.

    Args:
        char_type: Character type ("character" or "persona")
        uid: Stable identity of the subject
        variant: Enhancement variant token
        theme: "light" or "dark"

    Returns:
        Key of the form "{type}|{uid}|{variant}|{theme}"
    """
    return f"{subject_prefix(char_type, uid)}{variant}|{theme}"
