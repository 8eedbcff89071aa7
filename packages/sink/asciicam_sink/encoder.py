"""Raw RGB24 streaming into an external encoder process (ffmpeg)."""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Any

from asciicam_renderer.models import PixelBuffer

from .base import OutputSink
from .models import BrokenPipe, SinkState, SinkUnavailable

logger = logging.getLogger("asciicam.sink")

_MAX_STDERR = 64 * 1024


@dataclass(frozen=True)
class EncoderSettings:
    width: int
    height: int
    frame_rate: float = 10.0
    output: str = "ascii_output.mp4"
    binary: str = "ffmpeg"
    codec: str = "libx264"
    preset: str = "ultrafast"
    output_pix_fmt: str = "yuv420p"


def build_encoder_command(settings: EncoderSettings) -> list[str]:
    """ffmpeg argv reading headerless rgb24 frames of the declared size from stdin."""
    return [
        settings.binary,
        "-y",
        "-f", "rawvideo",
        "-pixel_format", "rgb24",
        "-video_size", f"{settings.width}x{settings.height}",
        "-framerate", f"{settings.frame_rate:g}",
        "-i", "pipe:0",
        "-c:v", settings.codec,
        "-pix_fmt", settings.output_pix_fmt,
        "-preset", settings.preset,
        settings.output,
    ]


class StreamSink(OutputSink):
    """Idle -> Streaming -> Closed pipe into an encoder.

    ``write`` blocks while the consumer drains its input; that is the only
    flow control between the pipeline and the encoder.
    """

    def __init__(
        self,
        settings: EncoderSettings,
        command: list[str] | None = None,
        close_timeout_s: float | None = None,
    ) -> None:
        super().__init__()
        self.settings = settings
        self.command = command or build_encoder_command(settings)
        self.close_timeout_s = close_timeout_s
        self.exit_status: int | None = None
        self._process: Any | None = None
        self._stderr_chunks: list[bytes] = []
        self._stderr_size = 0
        self._stderr_thread: threading.Thread | None = None

    @property
    def frame_size(self) -> int:
        return self.settings.width * self.settings.height * 3

    @property
    def stderr_tail(self) -> str:
        return b"".join(self._stderr_chunks).decode(errors="replace")[-4000:]

    def open(self) -> None:
        if self.state != SinkState.IDLE:
            raise RuntimeError(f"Stream sink cannot be opened from state {self.state.value}")
        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            self.state = SinkState.CLOSED
            raise SinkUnavailable(f"Could not start encoder {self.command[0]!r}: {exc}") from exc

        # Drain stderr so the encoder never stalls on a full pipe.
        self._stderr_thread = threading.Thread(target=self._drain_stderr, name="encoder-stderr", daemon=True)
        self._stderr_thread.start()
        self.state = SinkState.STREAMING
        logger.info(
            "encoder started pid=%s %sx%s@%s -> %s",
            self._process.pid,
            self.settings.width,
            self.settings.height,
            self.settings.frame_rate,
            self.settings.output,
            extra={"event": "encoder_start"},
        )

    def _drain_stderr(self) -> None:
        for chunk in iter(lambda: self._process.stderr.read(4096), b""):
            self._stderr_chunks.append(chunk)
            self._stderr_size += len(chunk)
            while self._stderr_size > _MAX_STDERR and len(self._stderr_chunks) > 1:
                self._stderr_size -= len(self._stderr_chunks.pop(0))

    def write(self, canvas: PixelBuffer, index: int = 0) -> int:
        if self.state == SinkState.CLOSED:
            raise BrokenPipe("encoder stream is closed", exit_status=self.exit_status)
        if self.state != SinkState.STREAMING:
            raise RuntimeError("Stream sink is not open")
        if (canvas.width, canvas.height) != (self.settings.width, self.settings.height):
            raise ValueError(
                f"Canvas {canvas.width}x{canvas.height} does not match declared "
                f"{self.settings.width}x{self.settings.height} stream"
            )

        if self._process.poll() is not None:
            status = self._shutdown()
            raise BrokenPipe(f"encoder exited with status {status}", exit_status=status)

        payload = canvas.tobytes()
        try:
            self._process.stdin.write(payload)
            self._process.stdin.flush()
        except (BrokenPipeError, ValueError, OSError) as exc:
            self.stats.write_errors += 1
            status = self._shutdown()
            raise BrokenPipe(f"encoder stopped reading: {exc}", exit_status=status) from exc

        self.stats.frames_written += 1
        self.stats.bytes_written += len(payload)
        return len(payload)

    def close(self) -> int | None:
        if self.state == SinkState.CLOSED:
            return self.exit_status
        if self._process is None:
            self.state = SinkState.CLOSED
            return None
        return self._shutdown()

    def _shutdown(self) -> int | None:
        proc = self._process
        try:
            proc.stdin.close()
        except BrokenPipeError:
            logger.debug("encoder stdin already broken at close")

        try:
            proc.wait(timeout=self.close_timeout_s)
        except subprocess.TimeoutExpired:
            logger.error(
                "encoder did not exit within %ss, killing",
                self.close_timeout_s,
                extra={"event": "encoder_kill"},
            )
            proc.kill()
            proc.wait()

        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=5)

        self.exit_status = proc.returncode
        self.state = SinkState.CLOSED
        if self.exit_status == 0:
            logger.info(
                "encoder finished output=%s frames=%s",
                self.settings.output,
                self.stats.frames_written,
                extra={"event": "encoder_done"},
            )
        else:
            logger.error(
                "encoder failed status=%s stderr=%s",
                self.exit_status,
                self.stderr_tail[-500:],
                extra={"event": "encoder_failed"},
            )
        return self.exit_status
