"""Glyph rasterization and canvas composition for text overlays and ArtGrids."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .models import ArtGrid, Color, PixelBuffer

logger = logging.getLogger("asciicam.renderer")

DEFAULT_FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"

# Size used to measure a face before fitting it to a pixel scale.
_REFERENCE_SIZE = 100


class Channel(IntEnum):
    RED = 0
    GREEN = 1
    BLUE = 2


@dataclass(frozen=True)
class GlyphMask:
    """Coverage mask placed relative to the pen position on the baseline."""

    left: int
    top: int
    coverage: np.ndarray

    @property
    def width(self) -> int:
        return int(self.coverage.shape[1])

    @property
    def height(self) -> int:
        return int(self.coverage.shape[0])


class FontAsset:
    """Read-only glyph source; faces and masks are cached per scale.

    A scale is a line height in pixels: the face chosen for scale ``s`` has
    ascent + descent no taller than ``s``, so a grid of ``rows`` lines at
    scale ``s`` never needs more than ``rows * s`` pixels.
    """

    def __init__(self, data: bytes | None = None, name: str = "builtin") -> None:
        self._data = data
        self.name = name
        self._faces: dict[int, ImageFont.FreeTypeFont] = {}
        self._glyphs: dict[tuple[str, int], GlyphMask | None] = {}

    @classmethod
    def load(cls, path: str | Path) -> FontAsset:
        """Read and validate a TrueType/OpenType file. Raises OSError on failure."""
        font_path = Path(path).expanduser()
        data = font_path.read_bytes()
        ImageFont.truetype(BytesIO(data), 12)
        return cls(data=data, name=str(font_path))

    @classmethod
    def builtin(cls) -> FontAsset:
        return cls(data=None, name="builtin")

    def _open(self, size: int) -> ImageFont.FreeTypeFont:
        if self._data is None:
            return ImageFont.load_default(size=size)
        return ImageFont.truetype(BytesIO(self._data), size)

    def face(self, scale: int) -> ImageFont.FreeTypeFont:
        face = self._faces.get(scale)
        if face is None:
            face = self._fit(scale)
            self._faces[scale] = face
        return face

    def _fit(self, scale: int) -> ImageFont.FreeTypeFont:
        ascent, descent = self._open(_REFERENCE_SIZE).getmetrics()
        size = max(1, round(scale * _REFERENCE_SIZE / max(ascent + descent, 1)))
        face = self._open(size)
        # Hinting rounds metrics up at small sizes; step down until the line fits.
        while size > 1 and sum(face.getmetrics()) > scale:
            size -= 1
            face = self._open(size)
        return face

    def metrics(self, scale: int) -> tuple[int, int]:
        """(ascent, descent) in pixels, descent positive below the baseline."""
        ascent, descent = self.face(scale).getmetrics()
        return int(ascent), int(descent)

    def glyph(self, char: str, scale: int) -> GlyphMask | None:
        key = (char, scale)
        if key not in self._glyphs:
            self._glyphs[key] = self._rasterize(char, scale)
        return self._glyphs[key]

    def _rasterize(self, char: str, scale: int) -> GlyphMask | None:
        face = self.face(scale)
        try:
            left, top, right, bottom = face.getbbox(char, anchor="ls")
            if right <= left or bottom <= top:
                return None
            image = Image.new("L", (right - left, bottom - top), 0)
            ImageDraw.Draw(image).text((-left, -top), char, font=face, fill=255, anchor="ls")
        except (OSError, ValueError, UnicodeError) as exc:
            logger.debug("glyph unavailable char=%r scale=%s: %s", char, scale, exc)
            return None
        return GlyphMask(left=int(left), top=int(top), coverage=np.asarray(image, dtype=np.uint8))


def blend_mask(canvas: PixelBuffer, coverage: np.ndarray, x: int, y: int, channel: Channel) -> int:
    """Write ``coverage`` into one channel of ``canvas`` at (x, y), clipped to bounds.

    Returns the number of pixels written.
    """
    h, w = coverage.shape
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + w, canvas.width), min(y + h, canvas.height)
    if x0 >= x1 or y0 >= y1:
        return 0
    canvas.data[y0:y1, x0:x1, int(channel)] = coverage[y0 - y : y1 - y, x0 - x : x1 - x]
    return (x1 - x0) * (y1 - y0)


class CanvasRenderer:
    """Draws overlay text and ArtGrids onto RGB canvases."""

    def __init__(self, font: FontAsset, scale: int = 16) -> None:
        self.font = font
        self.scale = scale

    @property
    def cell_size(self) -> tuple[int, int]:
        ascent, descent = self.font.metrics(self.scale)
        return self.scale, ascent + descent

    def draw_glyph(self, canvas: PixelBuffer, char: str, pen_x: int, baseline: int, channel: Channel, scale: int | None = None) -> int:
        glyph = self.font.glyph(char, scale or self.scale)
        if glyph is None:
            return 0
        return blend_mask(canvas, glyph.coverage, pen_x + glyph.left, baseline + glyph.top, channel)

    def draw_text(
        self,
        canvas: PixelBuffer,
        text: str,
        origin: tuple[int, int] = (10, 30),
        advance: int = 15,
        scale: int | None = None,
        channel: Channel = Channel.RED,
    ) -> int:
        scale = scale or self.scale
        ascent, _ = self.font.metrics(scale)
        x, y = origin
        written = 0
        for i, char in enumerate(text):
            written += self.draw_glyph(canvas, char, x + i * advance, y + ascent, channel, scale)
        return written

    def draw_grid(self, canvas: PixelBuffer, grid: ArtGrid, channel: Channel = Channel.GREEN) -> int:
        cell_w, cell_h = self.cell_size
        ascent, _ = self.font.metrics(self.scale)
        written = 0
        for row in range(grid.rows):
            baseline = row * cell_h + ascent
            for col in range(grid.cols):
                written += self.draw_glyph(canvas, grid.symbol_at(row, col), col * cell_w, baseline, channel)
        return written

    def render_grid(
        self,
        grid: ArtGrid,
        width: int,
        height: int,
        background: Color = (0, 0, 0),
        channel: Channel = Channel.GREEN,
    ) -> PixelBuffer:
        canvas = PixelBuffer.blank(width, height, background)
        self.draw_grid(canvas, grid, channel)
        return canvas
