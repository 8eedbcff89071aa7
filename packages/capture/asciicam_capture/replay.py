"""Replay recorded JPEG frames from disk as if they came from the device."""

from __future__ import annotations

import time
from pathlib import Path

from .models import CaptureError, EncodedFrame, FrameFormat
from .source import SourceExhausted, _ScopedSource

_SUFFIXES = (".jpg", ".jpeg")


class ReplayFrameSource(_ScopedSource):
    def __init__(self, directory: Path, loop: bool = False) -> None:
        self.directory = Path(directory)
        self.loop = loop
        self._files: list[Path] = []
        self._index = 0

    @staticmethod
    def scan(directory: Path) -> list[Path]:
        return sorted(p for p in Path(directory).iterdir() if p.is_file() and p.suffix.lower() in _SUFFIXES)

    def open(self) -> None:
        if not self.directory.is_dir():
            raise CaptureError(f"Replay directory not found: {self.directory}")
        self._files = self.scan(self.directory)
        if not self._files:
            raise CaptureError(f"No JPEG frames in {self.directory}")
        self._index = 0

    def pull(self) -> EncodedFrame:
        if not self._files:
            raise CaptureError("Replay source is not open")
        if self._index >= len(self._files):
            if not self.loop:
                raise SourceExhausted(f"replayed all {len(self._files)} frames")
            self._index = 0

        path = self._files[self._index]
        self._index += 1
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise CaptureError(f"Could not read {path}: {exc}") from exc
        return EncodedFrame(data=data, fmt=FrameFormat.JPEG, index=self._index, timestamp_s=time.monotonic())
