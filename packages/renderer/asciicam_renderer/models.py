"""Typed frame buffer models shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


Color = tuple[int, int, int]

CHANNELS = 3


def _check_dims(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Buffer dimensions must be positive, got {width}x{height}")


@dataclass(eq=False)
class PixelBuffer:
    """Owned RGB24 buffer; ``data`` has shape (height, width, 3) and dtype uint8."""

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        _check_dims(self.width, self.height)
        if self.data.shape != (self.height, self.width, CHANNELS) or self.data.dtype != np.uint8:
            raise ValueError(
                f"Pixel data must be uint8 with shape {(self.height, self.width, CHANNELS)}, "
                f"got {self.data.dtype} {self.data.shape}"
            )

    @classmethod
    def blank(cls, width: int, height: int, color: Color = (0, 0, 0)) -> PixelBuffer:
        _check_dims(width, height)
        data = np.empty((height, width, CHANNELS), dtype=np.uint8)
        data[:, :] = color
        return cls(width=width, height=height, data=data)

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes) -> PixelBuffer:
        _check_dims(width, height)
        expected = width * height * CHANNELS
        if len(raw) != expected:
            raise ValueError(f"RGB24 data for {width}x{height} must be {expected} bytes, got {len(raw)}")
        data = np.frombuffer(raw, dtype=np.uint8).reshape((height, width, CHANNELS)).copy()
        return cls(width=width, height=height, data=data)

    def __len__(self) -> int:
        return self.width * self.height * CHANNELS

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def offset(self, x: int, y: int) -> int:
        """Byte offset of pixel (x, y) in the row-major serialization."""
        if not self.contains(x, y):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")
        return (y * self.width + x) * CHANNELS

    def get_pixel(self, x: int, y: int) -> Color:
        self.offset(x, y)
        r, g, b = self.data[y, x]
        return int(r), int(g), int(b)

    def set_pixel(self, x: int, y: int, color: Color) -> None:
        self.offset(x, y)
        self.data[y, x] = color

    def fill(self, color: Color) -> None:
        self.data[:, :] = color

    def copy(self) -> PixelBuffer:
        return PixelBuffer(width=self.width, height=self.height, data=self.data.copy())

    def tobytes(self) -> bytes:
        return self.data.tobytes()


@dataclass(eq=False)
class IntensityBuffer:
    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        _check_dims(self.width, self.height)
        if self.data.shape != (self.height, self.width) or self.data.dtype != np.uint8:
            raise ValueError(
                f"Intensity data must be uint8 with shape {(self.height, self.width)}, "
                f"got {self.data.dtype} {self.data.shape}"
            )

    def get(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")
        return int(self.data[y, x])

    def tobytes(self) -> bytes:
        return self.data.tobytes()


@dataclass(frozen=True)
class SymbolRamp:
    """Symbols ordered from sparsest to densest."""

    name: str
    symbols: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.symbols) < 2:
            raise ValueError(f"Ramp {self.name!r} needs at least 2 symbols, got {len(self.symbols)}")
        if len(set(self.symbols)) != len(self.symbols):
            raise ValueError(f"Ramp {self.name!r} contains duplicate symbols")

    @classmethod
    def from_string(cls, name: str, chars: str) -> SymbolRamp:
        return cls(name=name, symbols=tuple(chars))

    def __len__(self) -> int:
        return len(self.symbols)

    def __getitem__(self, index: int) -> str:
        return self.symbols[index]


@dataclass(eq=False)
class ArtGrid:
    """rows x cols symbol matrix, stored as a numpy unicode array."""

    rows: int
    cols: int
    symbols: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if self.symbols.shape != (self.rows, self.cols):
            raise ValueError(f"Grid symbols must have shape {(self.rows, self.cols)}, got {self.symbols.shape}")

    def symbol_at(self, row: int, col: int) -> str:
        return str(self.symbols[row, col])

    def lines(self) -> list[str]:
        return ["".join(row) for row in self.symbols]

    def to_text(self) -> str:
        return "\n".join(self.lines())
