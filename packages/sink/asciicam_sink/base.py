"""Common surface for output sinks."""

from __future__ import annotations

from abc import ABC, abstractmethod

from asciicam_renderer.models import PixelBuffer

from .models import SinkState, SinkStats


class OutputSink(ABC):
    """Scoped destination for rendered canvases.

    ``open`` acquires the sink, ``write`` emits one canvas and ``close``
    releases it, returning the consumer's exit status when there is one.
    Using the sink as a context manager guarantees ``close`` on every path.
    """

    def __init__(self) -> None:
        self.state = SinkState.IDLE
        self.stats = SinkStats()

    def open(self) -> None:
        self.state = SinkState.STREAMING

    @abstractmethod
    def write(self, canvas: PixelBuffer, index: int = 0) -> int:
        """Emit one canvas; returns bytes written."""

    def close(self) -> int | None:
        self.state = SinkState.CLOSED
        return None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
