"""Capture package: frame sources and decoding for the capture boundary."""

from .decoder import FrameDecoder
from .models import CaptureError, CaptureFormat, DecodeError, EncodedFrame, FrameFormat
from .replay import ReplayFrameSource
from .source import CameraFrameSource, FrameSource, PatternFrameSource, SourceExhausted

__all__ = [
    "CameraFrameSource",
    "CaptureError",
    "CaptureFormat",
    "DecodeError",
    "EncodedFrame",
    "FrameDecoder",
    "FrameFormat",
    "FrameSource",
    "PatternFrameSource",
    "ReplayFrameSource",
    "SourceExhausted",
]
