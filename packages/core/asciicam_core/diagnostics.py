"""Environment report for `asciicam doctor`."""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import asdict
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Any

from .config import PipelineConfig, config_path

_DISTRIBUTIONS = ("numpy", "Pillow", "opencv-python-headless", "psutil")


def _version(dist: str) -> str | None:
    try:
        return metadata.version(dist)
    except metadata.PackageNotFoundError:
        return None


def _font_status(cfg: PipelineConfig) -> dict[str, Any]:
    if not cfg.font.path:
        return {"path": None, "readable": True, "builtin": True}
    path = Path(cfg.font.path).expanduser()
    return {"path": str(path), "readable": path.is_file() and os.access(path, os.R_OK), "builtin": False}


def _device_status(cfg: PipelineConfig) -> dict[str, Any]:
    device = cfg.capture.device
    if device.isdigit():
        return {"device": device, "present": None}
    return {"device": device, "present": Path(device).exists()}


def build_doctor_payload(cfg: PipelineConfig) -> dict[str, Any]:
    encoder = shutil.which(cfg.output.encoder)
    font = _font_status(cfg)
    device = _device_status(cfg)
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "config_path": str(config_path()),
        "config": asdict(cfg),
        "encoder": {"binary": cfg.output.encoder, "path": encoder, "found": encoder is not None},
        "font": font,
        "capture": device,
        "libraries": {dist: _version(dist) for dist in _DISTRIBUTIONS},
        "ready": bool(font["readable"] and (cfg.output.mode != "stream" or encoder is not None)),
    }
