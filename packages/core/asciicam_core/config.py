"""Pipeline settings schema, load/save helpers and startup validation."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from asciicam_renderer import DEFAULT_FONT_PATH, Channel, FontAsset, SymbolRamp, get_ramp


CONFIG_VERSION = 1

OUTPUT_MODES = ("file", "stream")
RENDER_MODES = ("ascii", "text")


class ConfigError(ValueError):
    """Invalid startup configuration; the pipeline never starts."""


@dataclass(frozen=True)
class CaptureConfig:
    device: str = "/dev/video0"
    width: int = 320
    height: int = 180
    fourcc: str = "MJPG"


@dataclass(frozen=True)
class FilterConfig:
    enabled: bool = True
    lower: tuple[int, int, int] = (0, 0, 100)
    upper: tuple[int, int, int] = (120, 100, 255)


@dataclass(frozen=True)
class AsciiConfig:
    columns: int = 80
    rows: int = 45
    ramp: str = "classic"
    custom_ramp: str | None = None
    background: tuple[int, int, int] = (0, 0, 0)
    channel: str = "green"


@dataclass(frozen=True)
class FontConfig:
    path: str | None = DEFAULT_FONT_PATH
    scale: int = 16


@dataclass(frozen=True)
class TextConfig:
    text: str = "Hello asciicam!"
    origin_x: int = 10
    origin_y: int = 30
    advance: int = 15
    scale: int = 20
    channel: str = "red"


@dataclass(frozen=True)
class OutputConfig:
    mode: str = "stream"
    width: int = 1280
    height: int = 720
    directory: str = "."
    filename: str = "frame.png"
    stream_path: str = "ascii_output.mp4"
    encoder: str = "ffmpeg"
    codec: str = "libx264"
    preset: str = "ultrafast"
    close_timeout_s: float | None = None


@dataclass(frozen=True)
class RuntimeConfig:
    render: str = "ascii"
    frame_rate: float = 10.0
    pace: bool = True
    max_frames: int | None = None
    continue_on_write_error: bool = True
    budget_every: int = 30
    cpu_percent_max: float = 90.0
    rss_mb_max: float = 512.0


@dataclass(frozen=True)
class PipelineConfig:
    config_version: int = CONFIG_VERSION
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    ascii: AsciiConfig = field(default_factory=AsciiConfig)
    font: FontConfig = field(default_factory=FontConfig)
    text: TextConfig = field(default_factory=TextConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)


_SECTIONS = {
    "capture": CaptureConfig,
    "filter": FilterConfig,
    "ascii": AsciiConfig,
    "font": FontConfig,
    "text": TextConfig,
    "output": OutputConfig,
    "runtime": RuntimeConfig,
}


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "AsciiCam"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "AsciiCam"
    return Path.home() / ".config" / "asciicam"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(section: str, raw: Any):
    dataclass_type = _SECTIONS[section]
    if raw is None:
        return dataclass_type()
    if not isinstance(raw, dict):
        raise ConfigError(f"Section {section!r} must be an object, got {type(raw).__name__}")
    defaults = dataclass_type()
    values: dict[str, Any] = {}
    for f in fields(dataclass_type):
        if f.name not in raw:
            continue
        value = raw[f.name]
        if isinstance(getattr(defaults, f.name), tuple) and isinstance(value, list):
            value = tuple(value)
        values[f.name] = value
    return replace(defaults, **values)


def _check_version(raw: dict[str, Any], path: Path) -> int:
    version = raw.get("config_version", CONFIG_VERSION)
    if not _is_int(version) or version < 1:
        raise ConfigError(f"Config {path} has an invalid config_version: {version!r}")
    if version > CONFIG_VERSION:
        raise ConfigError(
            f"Config {path} is version {version}; this release reads up to version {CONFIG_VERSION}"
        )
    return version


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_str(problems: list[str], name: str, value: Any, optional: bool = False, empty: bool = False) -> bool:
    if value is None and optional:
        return True
    if not isinstance(value, str):
        problems.append(f"{name} must be a string{' or null' if optional else ''}, got {type(value).__name__}")
        return False
    if not value and not empty:
        problems.append(f"{name} must not be empty")
        return False
    return True


def _check_bool(problems: list[str], name: str, value: Any) -> None:
    if not isinstance(value, bool):
        problems.append(f"{name} must be true or false")


def _check_number(problems: list[str], name: str, value: Any, optional: bool = False) -> None:
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        problems.append(f"{name} must be a positive number{' or null' if optional else ''}")


def _check_rgb(problems: list[str], name: str, value: Any) -> None:
    if not (isinstance(value, tuple) and len(value) == 3 and all(_is_int(c) and 0 <= c <= 255 for c in value)):
        problems.append(f"{name} must be three integers in 0..255")


def _check_positive(problems: list[str], name: str, value: Any) -> None:
    if not _is_int(value) or value <= 0:
        problems.append(f"{name} must be a positive integer")


def validate_config(cfg: PipelineConfig) -> PipelineConfig:
    """Fail fast on anything the pipeline cannot run with.

    Every problem is collected so one ConfigError names all of them.
    """
    problems: list[str] = []

    _check_str(problems, "capture.device", cfg.capture.device)
    _check_positive(problems, "capture.width", cfg.capture.width)
    _check_positive(problems, "capture.height", cfg.capture.height)
    if not isinstance(cfg.capture.fourcc, str) or len(cfg.capture.fourcc) != 4:
        problems.append("capture.fourcc must be a 4-character code")

    _check_bool(problems, "filter.enabled", cfg.filter.enabled)
    _check_rgb(problems, "filter.lower", cfg.filter.lower)
    _check_rgb(problems, "filter.upper", cfg.filter.upper)

    _check_positive(problems, "ascii.columns", cfg.ascii.columns)
    _check_positive(problems, "ascii.rows", cfg.ascii.rows)
    _check_rgb(problems, "ascii.background", cfg.ascii.background)
    ramp_ok = _check_str(problems, "ascii.ramp", cfg.ascii.ramp, optional=True, empty=True)
    ramp_ok &= _check_str(problems, "ascii.custom_ramp", cfg.ascii.custom_ramp, optional=True, empty=True)
    if ramp_ok:
        try:
            resolve_ramp(cfg)
        except (KeyError, ValueError) as exc:
            problems.append(f"ascii ramp: {exc.args[0]}")

    _check_str(problems, "font.path", cfg.font.path, optional=True, empty=True)
    _check_positive(problems, "font.scale", cfg.font.scale)
    _check_str(problems, "text.text", cfg.text.text, empty=True)
    _check_positive(problems, "text.scale", cfg.text.scale)
    for name, value in (("text.origin_x", cfg.text.origin_x), ("text.origin_y", cfg.text.origin_y)):
        if not _is_int(value):
            problems.append(f"{name} must be an integer")
    if not _is_int(cfg.text.advance) or cfg.text.advance < 0:
        problems.append("text.advance must be a non-negative integer")
    for name, value in (("ascii.channel", cfg.ascii.channel), ("text.channel", cfg.text.channel)):
        if not isinstance(value, str) or value.upper() not in Channel.__members__:
            problems.append(f"{name} must be one of red, green, blue")

    if cfg.output.mode not in OUTPUT_MODES:
        problems.append(f"output.mode must be one of {', '.join(OUTPUT_MODES)}")
    _check_positive(problems, "output.width", cfg.output.width)
    _check_positive(problems, "output.height", cfg.output.height)
    for name in ("directory", "stream_path", "encoder", "codec", "preset"):
        _check_str(problems, f"output.{name}", getattr(cfg.output, name))
    if _check_str(problems, "output.filename", cfg.output.filename):
        try:
            cfg.output.filename.format(index=0)
        except (KeyError, IndexError, ValueError) as exc:
            problems.append(f"output.filename is not a valid template: {exc}")
    _check_number(problems, "output.close_timeout_s", cfg.output.close_timeout_s, optional=True)

    if cfg.runtime.render not in RENDER_MODES:
        problems.append(f"runtime.render must be one of {', '.join(RENDER_MODES)}")
    _check_number(problems, "runtime.frame_rate", cfg.runtime.frame_rate)
    _check_bool(problems, "runtime.pace", cfg.runtime.pace)
    _check_bool(problems, "runtime.continue_on_write_error", cfg.runtime.continue_on_write_error)
    if cfg.runtime.max_frames is not None and (not _is_int(cfg.runtime.max_frames) or cfg.runtime.max_frames < 0):
        problems.append("runtime.max_frames must be a non-negative integer or null")
    _check_positive(problems, "runtime.budget_every", cfg.runtime.budget_every)
    _check_number(problems, "runtime.cpu_percent_max", cfg.runtime.cpu_percent_max)
    _check_number(problems, "runtime.rss_mb_max", cfg.runtime.rss_mb_max)

    if problems:
        raise ConfigError("; ".join(problems))
    return cfg


def resolve_ramp(cfg: PipelineConfig) -> SymbolRamp:
    if cfg.ascii.custom_ramp:
        return SymbolRamp.from_string("custom", cfg.ascii.custom_ramp)
    return get_ramp(cfg.ascii.ramp)


def channel_for(name: str) -> Channel:
    return Channel[name.upper()]


def load_font(cfg: PipelineConfig) -> FontAsset:
    if not cfg.font.path:
        return FontAsset.builtin()
    try:
        return FontAsset.load(cfg.font.path)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not load font {cfg.font.path}: {exc}") from exc


def load_config(path: Path | None = None) -> PipelineConfig:
    path = path or config_path()
    if not path.exists():
        return PipelineConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not read config {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config {path} must hold a JSON object")

    cfg = PipelineConfig(
        config_version=_check_version(raw, path),
        **{name: _merge(name, raw.get(name)) for name in _SECTIONS},
    )
    return validate_config(cfg)


def save_config(cfg: PipelineConfig, path: Path | None = None) -> Path:
    cfg = replace(cfg, config_version=CONFIG_VERSION)
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path


def override(cfg: PipelineConfig, section: str, **values: Any) -> PipelineConfig:
    """Copy of ``cfg`` with non-None ``values`` replaced in one section."""
    values = {k: v for k, v in values.items() if v is not None}
    if not values:
        return cfg
    return replace(cfg, **{section: replace(getattr(cfg, section), **values)})
