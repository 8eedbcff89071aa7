"""Typed models and errors for output sinks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SinkUnavailable(RuntimeError):
    """The external consumer could not be started."""


class BrokenPipe(RuntimeError):
    """The consumer went away mid-stream; the sink is closed."""

    def __init__(self, message: str, exit_status: int | None = None) -> None:
        super().__init__(message)
        self.exit_status = exit_status


class FrameWriteError(IOError):
    """A still image could not be written."""


class SinkState(str, Enum):
    IDLE = "Idle"
    STREAMING = "Streaming"
    CLOSED = "Closed"


@dataclass
class SinkStats:
    frames_written: int = 0
    bytes_written: int = 0
    write_errors: int = 0
    last_path: str | None = None
