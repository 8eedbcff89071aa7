"""Blocking frame sources: V4L2 camera via OpenCV and synthetic test patterns."""

from __future__ import annotations

import logging
import time
from io import BytesIO
from typing import Any, Protocol

import cv2
from PIL import Image

from asciicam_renderer.patterns import PATTERNS, build_test_pattern

from .models import CaptureError, CaptureFormat, EncodedFrame, FrameFormat

logger = logging.getLogger("asciicam.capture")


class SourceExhausted(CaptureError):
    """A finite source has no more frames; the run ends normally."""


class FrameSource(Protocol):
    def open(self) -> None: ...

    def pull(self) -> EncodedFrame: ...

    def close(self) -> None: ...


class _ScopedSource:
    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class CameraFrameSource(_ScopedSource):
    """Pulls compressed frames straight from a V4L2 device."""

    def __init__(self, device: str | int = "/dev/video0", fmt: CaptureFormat | None = None) -> None:
        self.device = device
        self.format = fmt or CaptureFormat()
        self._cap: Any | None = None
        self._index = 0

    @property
    def is_open(self) -> bool:
        return bool(self._cap is not None and self._cap.isOpened())

    def open(self) -> None:
        if self.is_open:
            return
        cap = cv2.VideoCapture(self.device, cv2.CAP_V4L2)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Could not open capture device {self.device}")

        cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*self.format.fourcc))
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self.format.width))
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self.format.height))
        # Hand out the encoded buffer instead of a decoded BGR array.
        cap.set(cv2.CAP_PROP_CONVERT_RGB, 0.0)

        actual_w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if (actual_w, actual_h) != (self.format.width, self.format.height):
            logger.warning(
                "device negotiated %sx%s instead of %sx%s",
                actual_w,
                actual_h,
                self.format.width,
                self.format.height,
                extra={"event": "capture_size_mismatch"},
            )
        self._cap = cap
        logger.info(
            "capture opened device=%s %sx%s %s",
            self.device,
            actual_w,
            actual_h,
            self.format.fourcc,
            extra={"event": "capture_open"},
        )

    def pull(self) -> EncodedFrame:
        if not self.is_open:
            raise CaptureError("Capture device is not open")
        ok, frame = self._cap.read()
        if not ok or frame is None:
            raise CaptureError(f"Device {self.device} failed to deliver a frame")

        self._index += 1
        if frame.ndim == 3:
            fmt = FrameFormat.BGR3
        else:
            fmt = FrameFormat.JPEG if self.format.fourcc == "JPEG" else FrameFormat.MJPG
        return EncodedFrame(data=frame.tobytes(), fmt=fmt, index=self._index, timestamp_s=time.monotonic())

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("capture closed device=%s", self.device, extra={"event": "capture_close"})


class PatternFrameSource(_ScopedSource):
    """Cycles through named test patterns, JPEG-encoded like a real MJPG device."""

    def __init__(
        self,
        width: int,
        height: int,
        patterns: list[str] | tuple[str, ...] = ("quadrants",),
        limit: int | None = None,
        fmt: FrameFormat = FrameFormat.JPEG,
        quality: int = 90,
    ) -> None:
        unknown = [p for p in patterns if p not in PATTERNS]
        if not patterns or unknown:
            raise ValueError(f"Unknown or empty pattern list: {unknown or patterns}")
        self.width = width
        self.height = height
        self.patterns = tuple(patterns)
        self.limit = limit
        self.fmt = fmt
        self.quality = quality
        self._index = 0

    def pull(self) -> EncodedFrame:
        if self.limit is not None and self._index >= self.limit:
            raise SourceExhausted(f"pattern source exhausted after {self.limit} frames")
        name = self.patterns[self._index % len(self.patterns)]
        self._index += 1
        buf = build_test_pattern(name, self.width, self.height)
        if self.fmt.compressed:
            out = BytesIO()
            Image.fromarray(buf.data).save(out, format="JPEG", quality=self.quality)
            data = out.getvalue()
        elif self.fmt == FrameFormat.BGR3:
            data = buf.data[:, :, ::-1].tobytes()
        else:
            data = buf.tobytes()
        return EncodedFrame(data=data, fmt=self.fmt, index=self._index, timestamp_s=time.monotonic())
