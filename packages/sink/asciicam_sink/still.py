"""One self-describing image file per rendered frame."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from asciicam_renderer.models import PixelBuffer

from .base import OutputSink
from .models import FrameWriteError

logger = logging.getLogger("asciicam.sink")


class FileSink(OutputSink):
    """Writes canvases with Pillow; the image format follows the file suffix.

    ``name_template`` is either a fixed name (``frame.png``, overwritten each
    frame) or a ``str.format`` template over ``index`` (``frame_{index:06d}.png``).
    """

    def __init__(self, directory: Path, name_template: str = "frame.png") -> None:
        super().__init__()
        self.directory = Path(directory)
        self.name_template = name_template

    def path_for(self, index: int) -> Path:
        return self.directory / self.name_template.format(index=index)

    def write(self, canvas: PixelBuffer, index: int = 0) -> int:
        path = self.path_for(index)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            Image.fromarray(canvas.data).save(path)
        except (OSError, ValueError) as exc:
            # Pillow raises ValueError for suffixes it cannot map to a format.
            self.stats.write_errors += 1
            raise FrameWriteError(f"Could not write {path}: {exc}") from exc

        size = path.stat().st_size
        self.stats.frames_written += 1
        self.stats.bytes_written += size
        self.stats.last_path = str(path)
        logger.debug("frame saved path=%s bytes=%s", path, size)
        return size
