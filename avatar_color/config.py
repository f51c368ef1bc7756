"""
Avatar Color Configuration
Manages environment variables and defaults for extraction, caching and display.
"""
import os


class Config:
    """Configuration class for avatar color services."""

    # Preprocessing
    MAX_DIMENSION: int = int(os.environ.get("AVATARCOLOR_MAX_DIMENSION", "1024"))

    # Primary extractor (k-means quantisation)
    PRIMARY_COLOR_COUNT: int = int(os.environ.get("AVATARCOLOR_PRIMARY_COLOR_COUNT", "16"))
    PRIMARY_MAX_SAMPLES: int = int(os.environ.get("AVATARCOLOR_PRIMARY_MAX_SAMPLES", "20000"))
    RNG_SEED: int = int(os.environ.get("AVATARCOLOR_RNG_SEED", "42"))

    # Fallback extractor (ColorThief)
    FALLBACK_PALETTE_SIZE: int = int(os.environ.get("AVATARCOLOR_FALLBACK_PALETTE_SIZE", "12"))
    FALLBACK_QUALITY: int = int(os.environ.get("AVATARCOLOR_FALLBACK_QUALITY", "10"))

    # Cache sizes
    RESULT_CACHE_MAX: int = int(os.environ.get("AVATARCOLOR_RESULT_CACHE_MAX", "50"))
    COLOR_CACHE_MAX: int = int(os.environ.get("AVATARCOLOR_COLOR_CACHE_MAX", "100"))
    COLOR_CACHE_EVICT_FRACTION: float = float(os.environ.get("AVATARCOLOR_COLOR_CACHE_EVICT_FRACTION", "0.2"))

    # Display defaults
    DEFAULT_COLOR_HEX: str = os.environ.get("AVATARCOLOR_DEFAULT_COLOR", "#e18a24")

    # Logging
    LOG_LEVEL: str = os.environ.get("AVATARCOLOR_LOG_LEVEL", "INFO")
    LOG_JSON: bool = os.environ.get("AVATARCOLOR_LOG_JSON", "false").lower() == "true"

    # Pixels below this alpha are ignored by both extractors
    MIN_ALPHA: int = 125

    @classmethod
    def validate_max_dimension(cls, max_dimension: int) -> bool:
        """Validate preprocessing canvas size."""
        return 16 <= max_dimension <= 4096

    @classmethod
    def validate_palette_size(cls, palette_size: int) -> bool:
        """Validate fallback palette size (ColorThief needs at least 2)."""
        return 2 <= palette_size <= 256

    @classmethod
    def validate_evict_fraction(cls, fraction: float) -> bool:
        """Validate batched eviction fraction."""
        return 0.0 < fraction <= 1.0


# Global config instance
config = Config()
