"""Deterministic synthetic frames for offline runs and tests."""

from __future__ import annotations

import numpy as np

from .models import PixelBuffer

PATTERNS = ("black", "white", "red", "green", "blue", "quadrants", "h-gradient", "v-gradient", "checkerboard")

_SOLIDS = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 255, 0),
    "blue": (0, 0, 255),
}


def build_test_pattern(name: str, width: int, height: int) -> PixelBuffer:
    if name in _SOLIDS:
        return PixelBuffer.blank(width, height, _SOLIDS[name])

    buf = PixelBuffer.blank(width, height)
    data = buf.data
    if name == "quadrants":
        half_w, half_h = width // 2, height // 2
        data[:half_h, :half_w] = (255, 0, 0)
        data[:half_h, half_w:] = (0, 255, 0)
        data[half_h:, :half_w] = (0, 0, 255)
        data[half_h:, half_w:] = (255, 255, 255)
    elif name == "h-gradient":
        ramp = (255 * np.arange(width) / max(width - 1, 1)).astype(np.uint8)
        data[:, :, :] = ramp[None, :, None]
    elif name == "v-gradient":
        ramp = (255 * np.arange(height) / max(height - 1, 1)).astype(np.uint8)
        data[:, :, :] = ramp[:, None, None]
    elif name == "checkerboard":
        ys, xs = np.indices((height, width))
        on = ((xs // 24 + ys // 24) % 2) == 0
        data[on] = (255, 255, 255)
    else:
        raise ValueError(f"Unknown pattern: {name}")
    return buf
