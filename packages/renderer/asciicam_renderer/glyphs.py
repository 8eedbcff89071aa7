"""Intensity to symbol mapping and ArtGrid construction."""

from __future__ import annotations

import numpy as np

from .models import ArtGrid, IntensityBuffer, SymbolRamp


class GlyphMapper:
    """Maps intensity bytes onto a fixed ramp through a 256-entry lookup table."""

    def __init__(self, ramp: SymbolRamp) -> None:
        self.ramp = ramp
        steps = len(ramp) - 1
        self._index = (np.arange(256, dtype=np.int64) * steps) // 255
        self._lut = np.array(ramp.symbols, dtype=f"<U{max(len(s) for s in ramp.symbols)}")

    def index_for(self, intensity: int) -> int:
        if not 0 <= intensity <= 255:
            raise ValueError(f"Intensity must be in 0..255, got {intensity}")
        return int(self._index[intensity])

    def symbol_for(self, intensity: int) -> str:
        return self.ramp[self.index_for(intensity)]

    def build_grid(self, intensity: IntensityBuffer) -> ArtGrid:
        symbols = self._lut[self._index[intensity.data]]
        return ArtGrid(rows=intensity.height, cols=intensity.width, symbols=symbols)
