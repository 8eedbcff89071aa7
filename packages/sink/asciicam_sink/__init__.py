"""Output sinks: still images and raw video streamed to an encoder."""

from .base import OutputSink
from .encoder import EncoderSettings, StreamSink, build_encoder_command
from .models import BrokenPipe, FrameWriteError, SinkState, SinkStats, SinkUnavailable
from .still import FileSink

__all__ = [
    "BrokenPipe",
    "EncoderSettings",
    "FileSink",
    "FrameWriteError",
    "OutputSink",
    "SinkState",
    "SinkStats",
    "SinkUnavailable",
    "StreamSink",
    "build_encoder_command",
]
