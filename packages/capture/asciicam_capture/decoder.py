"""Decode captured frames into fixed-size RGB pixel buffers."""

from __future__ import annotations

import warnings
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from asciicam_renderer.models import PixelBuffer

from .models import DecodeError, EncodedFrame, FrameFormat


class FrameDecoder:
    """Turns one EncodedFrame into a PixelBuffer of exactly ``width`` x ``height``."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def decode(self, frame: EncodedFrame) -> PixelBuffer:
        if frame.fmt.compressed:
            return self._decode_jpeg(frame.data)
        return self._decode_raw(frame.data, frame.fmt)

    def _decode_jpeg(self, data: bytes) -> PixelBuffer:
        if not data:
            raise DecodeError("empty JPEG payload")
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", Image.DecompressionBombWarning)
                with Image.open(BytesIO(data), formats=["JPEG"]) as image:
                    self._check_size(image.size)
                    rgb = image.convert("RGB")
        except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombWarning) as exc:
            raise DecodeError(f"malformed JPEG frame: {exc}") from exc
        return PixelBuffer(width=self.width, height=self.height, data=np.asarray(rgb, dtype=np.uint8).copy())

    def _decode_raw(self, data: bytes, fmt: FrameFormat) -> PixelBuffer:
        expected = self.width * self.height * 3
        if len(data) != expected:
            raise DecodeError(
                f"{fmt.value} frame is {len(data)} bytes, expected {expected} for {self.width}x{self.height}"
            )
        pixels = np.frombuffer(data, dtype=np.uint8).reshape((self.height, self.width, 3))
        if fmt == FrameFormat.BGR3:
            pixels = pixels[:, :, ::-1]
        # frombuffer views are read-only; stages filter in place.
        return PixelBuffer(width=self.width, height=self.height, data=pixels.copy())

    def _check_size(self, size: tuple[int, int]) -> None:
        if size != (self.width, self.height):
            raise DecodeError(f"frame is {size[0]}x{size[1]}, expected {self.width}x{self.height}")
