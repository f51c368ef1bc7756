"""
Unit tests for swatch classification and merging.
"""

import itertools

import pytest

from avatar_color.services.colors.swatches import (
    REQUIRED_CATEGORIES, Swatch, SwatchCategory,
    classify_color, classify_palette, merge_swatch_sets, missing_categories
)


class TestSwatch:
    """Test the Swatch value type"""

    def test_swatch_is_immutable(self):
        swatch = Swatch(rgb=(10, 20, 30), population=5)
        with pytest.raises(Exception):
            swatch.population = 6

    def test_default_population_is_one(self):
        assert Swatch(rgb=(1, 2, 3)).population == 1

    def test_hex(self):
        assert Swatch(rgb=(255, 0, 16)).hex == "#FF0010"

    def test_rejects_out_of_range_channels(self):
        with pytest.raises(ValueError):
            Swatch(rgb=(256, 0, 0))

    def test_rejects_negative_population(self):
        with pytest.raises(ValueError):
            Swatch(rgb=(0, 0, 0), population=-1)


class TestClassifyColor:
    """Test saturation/lightness bucketing"""

    @pytest.mark.parametrize("rgb,expected", [
        ((255, 0, 0), SwatchCategory.VIBRANT),          # s=100, l=50
        ((128, 0, 0), SwatchCategory.DARK_VIBRANT),     # s=100, l=25
        ((255, 128, 128), SwatchCategory.LIGHT_VIBRANT),  # s=100, l=75
        ((128, 128, 128), SwatchCategory.MUTED),        # s=0, l=50
        ((20, 20, 20), SwatchCategory.DARK_MUTED),
        ((230, 230, 230), SwatchCategory.LIGHT_MUTED),
    ])
    def test_categories(self, rgb, expected):
        assert classify_color(*rgb) == expected

    def test_total_and_deterministic(self):
        """Every RGB triple maps to exactly one category, the same every time"""
        levels = range(0, 256, 51)
        for r, g, b in itertools.product(levels, repeat=3):
            first = classify_color(r, g, b)
            assert first in REQUIRED_CATEGORIES
            assert classify_color(r, g, b) == first

    def test_low_saturation_is_muted(self):
        # l=0.5, s=0.2
        assert classify_color(153, 102, 102) == SwatchCategory.MUTED


class TestClassifyPalette:
    """Test first-color-wins palette classification"""

    def test_first_color_per_category_wins(self):
        palette = [(255, 0, 0), (250, 10, 10), (20, 20, 20)]
        swatches = classify_palette(palette)

        assert swatches[SwatchCategory.VIBRANT].rgb == (255, 0, 0)
        assert swatches[SwatchCategory.DARK_MUTED].rgb == (20, 20, 20)
        assert len(swatches) == 2

    def test_nominal_population(self):
        swatches = classify_palette([(255, 0, 0)])
        assert swatches[SwatchCategory.VIBRANT].population == 1

    def test_empty_palette(self):
        assert classify_palette([]) == {}


class TestMerge:
    """Test primary-wins merge policy"""

    def test_fallback_fills_only_missing(self):
        """Primary missing {A,B}; fallback has {A,B,C}; merged gets A and B, keeps primary C"""
        primary = {
            SwatchCategory.VIBRANT: Swatch((250, 0, 0), 100),
            SwatchCategory.MUTED: Swatch((120, 110, 100), 50),
            SwatchCategory.DARK_MUTED: Swatch((40, 35, 30), 30),
            SwatchCategory.LIGHT_MUTED: Swatch((210, 200, 190), 20),
        }
        fallback = {
            SwatchCategory.DARK_VIBRANT: Swatch((100, 0, 0)),
            SwatchCategory.LIGHT_VIBRANT: Swatch((255, 150, 150)),
            SwatchCategory.VIBRANT: Swatch((0, 0, 255)),
        }

        merged = merge_swatch_sets(primary, fallback)

        assert merged[SwatchCategory.VIBRANT] is primary[SwatchCategory.VIBRANT]
        assert merged[SwatchCategory.DARK_VIBRANT] is fallback[SwatchCategory.DARK_VIBRANT]
        assert merged[SwatchCategory.LIGHT_VIBRANT] is fallback[SwatchCategory.LIGHT_VIBRANT]
        assert len(merged) == 6

    def test_excludes_categories_not_required_to_fill(self):
        primary = {SwatchCategory.VIBRANT: Swatch((250, 0, 0), 10)}
        fallback = {SwatchCategory.MUTED: Swatch((128, 120, 110))}

        merged = merge_swatch_sets(primary, fallback, required=[SwatchCategory.DARK_VIBRANT])

        assert SwatchCategory.MUTED not in merged
        assert merged == primary

    def test_merge_does_not_mutate_inputs(self):
        primary = {}
        fallback = {SwatchCategory.MUTED: Swatch((128, 120, 110))}
        merge_swatch_sets(primary, fallback)
        assert primary == {}

    def test_missing_categories_in_priority_order(self):
        swatches = {SwatchCategory.DARK_VIBRANT: Swatch((100, 0, 0))}
        assert missing_categories(swatches) == [
            SwatchCategory.VIBRANT,
            SwatchCategory.LIGHT_VIBRANT,
            SwatchCategory.MUTED,
            SwatchCategory.DARK_MUTED,
            SwatchCategory.LIGHT_MUTED,
        ]
