"""Per-frame pixel stages: color filter, nearest-neighbor resample, luminance."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .models import Color, IntensityBuffer, PixelBuffer


# Rec. 709 luma weights scaled by 10_000 so the mix stays in integer math.
LUMA_WEIGHTS = (2126, 7152, 722)
_LUMA_SCALE = 10_000


def _check_channel_range(name: str, value: Color) -> None:
    if len(value) != 3 or any(not 0 <= int(c) <= 255 for c in value):
        raise ValueError(f"{name} must be three channel values in 0..255, got {value!r}")


@dataclass(frozen=True)
class ColorFilter:
    """Replaces pixels whose R, G and B all fall in closed ranges."""

    lower: Color = (0, 0, 100)
    upper: Color = (120, 100, 255)
    replacement: Color = (0, 0, 0)

    def __post_init__(self) -> None:
        _check_channel_range("lower", self.lower)
        _check_channel_range("upper", self.upper)
        _check_channel_range("replacement", self.replacement)

    def mask(self, buffer: PixelBuffer) -> np.ndarray:
        lo = np.asarray(self.lower, dtype=np.uint8)
        hi = np.asarray(self.upper, dtype=np.uint8)
        return np.all((buffer.data >= lo) & (buffer.data <= hi), axis=2)

    def apply(self, buffer: PixelBuffer) -> int:
        """Filter in place and return how many pixels were replaced."""
        hits = self.mask(buffer)
        buffer.data[hits] = self.replacement
        return int(np.count_nonzero(hits))


def resample(buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
    if width <= 0 or height <= 0:
        raise ValueError(f"Target dimensions must be positive, got {width}x{height}")
    xs = (np.arange(width, dtype=np.int64) * buffer.width) // width
    ys = (np.arange(height, dtype=np.int64) * buffer.height) // height
    data = buffer.data[ys[:, None], xs[None, :]]
    return PixelBuffer(width=width, height=height, data=np.ascontiguousarray(data))


def luminance(buffer: PixelBuffer) -> IntensityBuffer:
    rgb = buffer.data.astype(np.uint32)
    wr, wg, wb = LUMA_WEIGHTS
    mixed = rgb[:, :, 0] * wr + rgb[:, :, 1] * wg + rgb[:, :, 2] * wb
    values = (mixed + _LUMA_SCALE // 2) // _LUMA_SCALE
    return IntensityBuffer(
        width=buffer.width,
        height=buffer.height,
        data=np.minimum(values, 255).astype(np.uint8),
    )
