"""
Test configuration and fixtures for avatar color tests.
"""
import numpy as np
import pytest


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    from avatar_color.utils.metrics import reset_metrics
    reset_metrics()


@pytest.fixture(autouse=True)
def reset_default_extractor():
    """Give each test a fresh shared extractor cache."""
    from avatar_color.services.colors.pipeline import reset_default_extractor
    reset_default_extractor()


def solid_rgba(rgb, size=(64, 64), alpha=255):
    """Solid-color RGBA raster of the given (height, width)."""
    img = np.zeros(size + (4,), dtype=np.uint8)
    img[:, :, :3] = rgb
    img[:, :, 3] = alpha
    return img


@pytest.fixture
def red_dominant_image():
    """Mostly saturated mid-bright red with a dark blue stripe."""
    img = solid_rgba((230, 20, 20), size=(120, 120))
    img[:, :20, :3] = (20, 30, 90)
    return img


@pytest.fixture
def multi_color_image():
    """Six horizontal bands covering vibrant and muted, dark and light colors."""
    bands = [
        (220, 30, 40),    # vibrant red
        (120, 10, 20),    # dark vibrant
        (250, 150, 160),  # light vibrant
        (140, 110, 100),  # muted
        (60, 50, 45),     # dark muted
        (200, 190, 180),  # light muted
    ]
    img = np.zeros((120, 60, 4), dtype=np.uint8)
    img[:, :, 3] = 255
    for i, rgb in enumerate(bands):
        img[i * 20:(i + 1) * 20, :, :3] = rgb
    return img
