"""Typed models and errors for the capture boundary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CaptureError(RuntimeError):
    """The device could not deliver a frame; not recoverable mid-session."""


class DecodeError(ValueError):
    """Encoded frame bytes are malformed or disagree with the configured format."""


class FrameFormat(str, Enum):
    MJPG = "MJPG"
    JPEG = "JPEG"
    RGB3 = "RGB3"
    BGR3 = "BGR3"

    @property
    def compressed(self) -> bool:
        return self in (FrameFormat.MJPG, FrameFormat.JPEG)


@dataclass(frozen=True)
class CaptureFormat:
    width: int = 1280
    height: int = 720
    fourcc: str = "MJPG"


@dataclass(frozen=True)
class EncodedFrame:
    data: bytes
    fmt: FrameFormat
    index: int = 0
    timestamp_s: float = 0.0
