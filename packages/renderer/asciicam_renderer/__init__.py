"""Renderer package: frame buffers, imaging stages, glyph mapping and canvas composition."""

from .canvas import DEFAULT_FONT_PATH, CanvasRenderer, Channel, FontAsset, GlyphMask, blend_mask
from .glyphs import GlyphMapper
from .imaging import ColorFilter, luminance, resample
from .models import ArtGrid, IntensityBuffer, PixelBuffer, SymbolRamp
from .patterns import PATTERNS, build_test_pattern
from .ramps import DEFAULT_RAMP_NAME, get_ramp, list_ramps

__all__ = [
    "ArtGrid",
    "CanvasRenderer",
    "Channel",
    "ColorFilter",
    "DEFAULT_FONT_PATH",
    "DEFAULT_RAMP_NAME",
    "FontAsset",
    "GlyphMapper",
    "GlyphMask",
    "IntensityBuffer",
    "PATTERNS",
    "PixelBuffer",
    "SymbolRamp",
    "blend_mask",
    "build_test_pattern",
    "get_ramp",
    "list_ramps",
    "luminance",
    "resample",
]
