"""
Palette extraction service for avatar images.

This module implements the two extractors behind avatar color selection:
a primary extractor that quantizes pixels with MiniBatchKMeans and assigns
clusters to the six swatch categories by target saturation/lightness, and
a ColorThief fallback whose flat palette is classified and used only to
fill categories the primary extractor left empty.
"""

import io
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
from colorthief import ColorThief
from loguru import logger
from PIL import Image
from sklearn.cluster import MiniBatchKMeans

from avatar_color.config import config
from avatar_color.utils.metrics import get_metrics_instance, performance_monitor
from .color_model import rgb_to_hsl
from .swatches import (
    Swatch, SwatchCategory, SwatchSet,
    classify_palette, merge_swatch_sets, missing_categories
)


class ExtractionFailure(RuntimeError):
    """An extractor could not produce a palette."""
    pass


@dataclass(frozen=True)
class CategoryTarget:
    """Lightness/saturation window and ideal point for one category."""
    target_luma: float
    min_luma: float
    max_luma: float
    target_saturation: float
    min_saturation: float
    max_saturation: float


_DARK = (0.26, 0.0, 0.45)
_NORMAL = (0.5, 0.3, 0.7)
_LIGHT = (0.74, 0.55, 1.0)
_VIBRANT = (1.0, 0.35, 1.0)
_MUTED = (0.3, 0.0, 0.4)

# Assignment order matters: a cluster claimed by an earlier category is not reused
CATEGORY_TARGETS: Dict[SwatchCategory, CategoryTarget] = {
    SwatchCategory.VIBRANT: CategoryTarget(*_NORMAL, *_VIBRANT),
    SwatchCategory.LIGHT_VIBRANT: CategoryTarget(*_LIGHT, *_VIBRANT),
    SwatchCategory.DARK_VIBRANT: CategoryTarget(*_DARK, *_VIBRANT),
    SwatchCategory.MUTED: CategoryTarget(*_NORMAL, *_MUTED),
    SwatchCategory.LIGHT_MUTED: CategoryTarget(*_LIGHT, *_MUTED),
    SwatchCategory.DARK_MUTED: CategoryTarget(*_DARK, *_MUTED),
}

WEIGHT_SATURATION = 3.0
WEIGHT_LUMA = 6.0
WEIGHT_POPULATION = 1.0

# Near-white pixels are ignored by both extractors
WHITE_THRESHOLD = 250


def sample_pixels(rgba: np.ndarray,
                  max_samples: int = 20000,
                  min_alpha: int = 125,
                  rng_seed: int = 42) -> np.ndarray:
    """
    Collect opaque, non-white pixels for quantization.

    Args:
        rgba: Image raster (H, W, 4) uint8
        max_samples: Maximum number of pixels to keep
        min_alpha: Pixels with lower alpha are dropped
        rng_seed: Random seed for deterministic subsampling

    Returns:
        RGB pixels array (N, 3) uint8

    Raises:
        ExtractionFailure: If no usable pixels remain
    """
    pixels = rgba.reshape(-1, rgba.shape[-1])
    keep_mask = np.ones(len(pixels), dtype=bool)

    if pixels.shape[1] == 4:
        keep_mask &= pixels[:, 3] >= min_alpha

    keep_mask &= ~np.all(pixels[:, :3] > WHITE_THRESHOLD, axis=1)

    rgb = pixels[keep_mask, :3]
    if rgb.shape[0] == 0:
        raise ExtractionFailure("No opaque, non-white pixels to analyze")

    if rgb.shape[0] > max_samples:
        rng = np.random.default_rng(rng_seed)
        indices = rng.choice(rgb.shape[0], size=max_samples, replace=False)
        rgb = rgb[indices]

    logger.debug(f"Sampled {rgb.shape[0]} of {len(pixels)} pixels")
    return rgb.astype(np.uint8, copy=False)


def cluster_palette(pixels_rgb_u8: np.ndarray, k: int = 16,
                    rng_seed: int = 42) -> List[Tuple[Tuple[int, int, int], int]]:
    """
    Quantize pixels into at most k representative colors.

    k is clamped to the number of unique colors; when the image has no more
    unique colors than k they are returned directly with exact counts.

    Returns:
        List of (rgb, population) ordered by population, descending

    Raises:
        ExtractionFailure: If clustering fails
    """
    unique_colors, unique_counts = np.unique(pixels_rgb_u8, axis=0, return_counts=True)

    if len(unique_colors) <= k:
        entries = [(tuple(int(c) for c in color), int(count))
                   for color, count in zip(unique_colors, unique_counts)]
    else:
        try:
            kmeans = MiniBatchKMeans(
                n_clusters=k,
                random_state=rng_seed,
                batch_size=min(2048, len(pixels_rgb_u8)),
                n_init="auto",
                max_iter=100
            )
            labels = kmeans.fit_predict(pixels_rgb_u8.astype(np.float32))
        except Exception as e:
            logger.error(f"Clustering failed: {str(e)}")
            raise ExtractionFailure(f"K-means clustering failed: {str(e)}") from e

        centers = np.clip(np.rint(kmeans.cluster_centers_), 0, 255).astype(np.uint8)
        counts = np.bincount(labels, minlength=k)
        entries = [(tuple(int(c) for c in centers[i]), int(counts[i]))
                   for i in range(k) if counts[i] > 0]

    entries.sort(key=lambda entry: -entry[1])
    logger.debug(f"Quantized to {len(entries)} colors")
    return entries


def _invert_diff(value: float, target: float) -> float:
    return 1.0 - abs(value - target)


def score_candidate(saturation: float, luma: float, population: int,
                    max_population: int, target: CategoryTarget) -> float:
    """Weighted closeness of a color to a category's ideal point."""
    weighted = (
        _invert_diff(saturation, target.target_saturation) * WEIGHT_SATURATION
        + _invert_diff(luma, target.target_luma) * WEIGHT_LUMA
        + (population / max_population if max_population else 0.0) * WEIGHT_POPULATION
    )
    return weighted / (WEIGHT_SATURATION + WEIGHT_LUMA + WEIGHT_POPULATION)


def assign_categories(entries: List[Tuple[Tuple[int, int, int], int]]) -> SwatchSet:
    """
    Pick the best unused quantized color for each category.

    Categories without a color inside their window stay absent.
    """
    if not entries:
        return {}

    max_population = max(population for _, population in entries)
    hsl_values = [rgb_to_hsl(*rgb) for rgb, _ in entries]
    used = set()
    swatches: SwatchSet = {}

    for category, target in CATEGORY_TARGETS.items():
        best_index: Optional[int] = None
        best_score = -1.0

        for i, ((rgb, population), hsl) in enumerate(zip(entries, hsl_values)):
            if i in used:
                continue
            if not (target.min_saturation <= hsl.s <= target.max_saturation):
                continue
            if not (target.min_luma <= hsl.l <= target.max_luma):
                continue

            score = score_candidate(hsl.s, hsl.l, population, max_population, target)
            if score > best_score:
                best_index, best_score = i, score

        if best_index is not None:
            used.add(best_index)
            rgb, population = entries[best_index]
            swatches[category] = Swatch(rgb=rgb, population=population)
            logger.debug(f"{category.value}: {rgb} pop={population} score={best_score:.3f}")

    return swatches


def extract_primary_swatches(rgba: np.ndarray,
                             color_count: Optional[int] = None,
                             max_samples: Optional[int] = None,
                             rng_seed: Optional[int] = None) -> SwatchSet:
    """
    Primary extractor: quantize and assign categories natively.

    Populations are observed cluster sizes.

    Raises:
        ExtractionFailure: If the image has no usable pixels or clustering fails
    """
    color_count = config.PRIMARY_COLOR_COUNT if color_count is None else color_count
    max_samples = config.PRIMARY_MAX_SAMPLES if max_samples is None else max_samples
    rng_seed = config.RNG_SEED if rng_seed is None else rng_seed

    pixels = sample_pixels(rgba, max_samples=max_samples, min_alpha=config.MIN_ALPHA, rng_seed=rng_seed)
    entries = cluster_palette(pixels, k=color_count, rng_seed=rng_seed)
    return assign_categories(entries)


def composite_on_white(rgba: np.ndarray) -> np.ndarray:
    """Flatten an RGBA raster onto a white background, returning RGB uint8."""
    if rgba.shape[-1] == 3:
        return rgba
    alpha = rgba[:, :, 3:4].astype(np.float32) / 255.0
    rgb = rgba[:, :, :3].astype(np.float32) * alpha + 255.0 * (1.0 - alpha)
    return np.clip(np.rint(rgb), 0, 255).astype(np.uint8)


def get_fallback_palette(rgba: np.ndarray, palette_size: int = 12,
                         quality: int = 10) -> List[Tuple[int, int, int]]:
    """
    Extract a flat dominant-first palette with ColorThief.

    Raises:
        ExtractionFailure: If ColorThief fails or returns an empty palette
    """
    buffer = io.BytesIO()
    Image.fromarray(composite_on_white(rgba)).save(buffer, format='PNG')
    buffer.seek(0)

    try:
        palette = ColorThief(buffer).get_palette(color_count=palette_size, quality=quality)
    except Exception as e:
        raise ExtractionFailure(f"ColorThief failed to extract palette: {str(e)}") from e

    if not palette:
        raise ExtractionFailure("ColorThief returned an empty palette")

    return [tuple(int(c) for c in color[:3]) for color in palette]


def extract_fallback_swatches(rgba: np.ndarray,
                              palette_size: Optional[int] = None,
                              quality: Optional[int] = None) -> SwatchSet:
    """
    Fallback extractor: classify a flat palette, first color per category wins.

    Every swatch carries the nominal population 1.
    """
    palette_size = config.FALLBACK_PALETTE_SIZE if palette_size is None else palette_size
    quality = config.FALLBACK_QUALITY if quality is None else quality

    palette = get_fallback_palette(rgba, palette_size=palette_size, quality=quality)
    return classify_palette(palette, population=1)


def extract_swatches(rgba: np.ndarray, request_id: str = "") -> SwatchSet:
    """
    Run the primary extractor and patch its gaps with the fallback.

    Neither extractor's failure propagates: a failed primary counts as an
    empty set, a failed fallback leaves the primary result as-is. The result
    may therefore be partially filled or empty.
    """
    metrics = get_metrics_instance()
    metrics.record_extraction()

    try:
        with performance_monitor("primary_extraction"):
            primary = extract_primary_swatches(rgba)
    except ExtractionFailure as e:
        logger.bind(request_id=request_id).warning(f"Primary extractor failed: {e}")
        metrics.record_failure("primary")
        primary = {}

    missing = missing_categories(primary)
    if not missing:
        return primary

    logger.bind(request_id=request_id).debug(
        f"Primary extractor missing {[c.value for c in missing]}, running fallback"
    )
    metrics.record_fallback()

    try:
        with performance_monitor("fallback_extraction"):
            fallback = extract_fallback_swatches(rgba)
    except ExtractionFailure as e:
        logger.bind(request_id=request_id).warning(f"Fallback extractor failed: {e}")
        metrics.record_failure("fallback")
        return primary

    return merge_swatch_sets(primary, fallback)
