"""CLI entrypoints for the capture pipeline, previews, ramps and diagnostics."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path

from PIL import Image

from asciicam_capture import CaptureError, PatternFrameSource
from asciicam_core import (
    ConfigError,
    FrameProcessor,
    PipelineConfig,
    build_doctor_payload,
    build_driver,
    build_source,
    load_config,
    load_font,
    override,
    save_config,
    validate_config,
)
from asciicam_core.config import config_path
from asciicam_core.logging_setup import configure_logging, get_logger, install_crash_hooks
from asciicam_renderer import PATTERNS, get_ramp, list_ramps
from asciicam_sink import SinkUnavailable

logger = get_logger("cli")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_ENCODER = 2


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _config_from_args(args: argparse.Namespace) -> PipelineConfig:
    cfg = load_config(Path(args.config).expanduser() if args.config else None)
    cfg = override(cfg, "capture", device=getattr(args, "device", None))
    cfg = override(cfg, "output", mode=getattr(args, "mode", None), directory=getattr(args, "output_dir", None))
    if getattr(args, "output", None):
        key = "stream_path" if cfg.output.mode == "stream" else "filename"
        cfg = override(cfg, "output", **{key: args.output})
    cfg = override(
        cfg,
        "runtime",
        render=getattr(args, "render", None),
        max_frames=getattr(args, "frames", None),
        frame_rate=getattr(args, "fps", None),
    )
    if getattr(args, "no_pace", False):
        cfg = override(cfg, "runtime", pace=False)
    cfg = override(cfg, "ascii", ramp=getattr(args, "ramp", None))
    if getattr(args, "builtin_font", False):
        cfg = override(cfg, "font", path="")
    return validate_config(cfg)


def _install_stop_handlers(driver) -> dict:
    def _handler(signum, _frame) -> None:
        driver.request_stop(signal.Signals(signum).name.lower())

    return {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}


def cmd_run(args: argparse.Namespace) -> int:
    if args.source == "replay" and not args.replay_dir:
        raise ConfigError("--replay-dir is required with --source replay")
    cfg = _config_from_args(args)
    font = load_font(cfg)
    source = build_source(
        cfg,
        kind=args.source,
        patterns=args.pattern,
        replay_dir=Path(args.replay_dir) if args.replay_dir else None,
        loop=args.loop,
    )
    driver = build_driver(cfg, font, source)

    previous = _install_stop_handlers(driver)
    try:
        report = driver.run()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    payload = asdict(report)
    payload["success"] = report.success
    _print_json(payload)

    if report.error is not None:
        return EXIT_FATAL
    if report.sink_exit_status not in (None, 0):
        return EXIT_ENCODER
    return EXIT_OK


def cmd_preview(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    processor = FrameProcessor(cfg, load_font(cfg))
    source = PatternFrameSource(cfg.capture.width, cfg.capture.height, patterns=(args.pattern,))
    canvas = processor.process(source.pull())

    out = Path(args.out).expanduser()
    out.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(canvas.data).save(out)

    payload = {"success": True, "pattern": args.pattern, "path": str(out), "size": [canvas.width, canvas.height]}
    if args.print_grid and processor.last_grid is not None:
        print(processor.last_grid.to_text())
    else:
        _print_json(payload)
    return EXIT_OK


def cmd_ramps(_args: argparse.Namespace) -> int:
    _print_json({name: "".join(get_ramp(name).symbols) for name in list_ramps()})
    return EXIT_OK


def cmd_init_config(args: argparse.Namespace) -> int:
    path = Path(args.path).expanduser() if args.path else config_path()
    if path.exists() and not args.force:
        print(f"{path} already exists; pass --force to overwrite", file=sys.stderr)
        return EXIT_FATAL
    _print_json({"success": True, "path": str(save_config(PipelineConfig(), path))})
    return EXIT_OK


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config).expanduser() if args.config else None)
    _print_json(build_doctor_payload(cfg))
    return EXIT_OK


def _add_pipeline_options(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--config", default=None, help="Path to config JSON (default: per-user config)")
    cmd.add_argument("--render", choices=["ascii", "text"], default=None)
    cmd.add_argument("--ramp", choices=list_ramps(), default=None)
    cmd.add_argument("--builtin-font", action="store_true", help="Use Pillow's bundled font instead of font.path")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="asciicam", description="Live camera to character-art video")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on the console")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Run the capture pipeline")
    _add_pipeline_options(run_cmd)
    run_cmd.add_argument("--source", choices=["camera", "pattern", "replay"], default="camera")
    run_cmd.add_argument("--device", default=None, help="Capture device path or index")
    run_cmd.add_argument("--pattern", action="append", choices=list(PATTERNS), default=None)
    run_cmd.add_argument("--replay-dir", default=None, help="Directory of recorded JPEG frames")
    run_cmd.add_argument("--loop", action="store_true", help="Loop the replay directory")
    run_cmd.add_argument("--mode", choices=["file", "stream"], default=None)
    run_cmd.add_argument("--output", default=None, help="Stream artifact path or still-image name template")
    run_cmd.add_argument("--output-dir", default=None, help="Directory for still images")
    run_cmd.add_argument("--frames", type=int, default=None, help="Stop after this many captured frames")
    run_cmd.add_argument("--fps", type=float, default=None, help="Frame-rate target")
    run_cmd.add_argument("--no-pace", action="store_true", help="Do not sleep between frames")
    run_cmd.set_defaults(func=cmd_run)

    preview_cmd = sub.add_parser("preview", help="Render one synthetic frame to an image")
    _add_pipeline_options(preview_cmd)
    preview_cmd.add_argument("--pattern", choices=list(PATTERNS), default="quadrants")
    preview_cmd.add_argument("--out", default="preview.png")
    preview_cmd.add_argument("--print-grid", action="store_true", help="Print the ArtGrid as text")
    preview_cmd.set_defaults(func=cmd_preview)

    ramps_cmd = sub.add_parser("ramps", help="List built-in symbol ramps")
    ramps_cmd.set_defaults(func=cmd_ramps)

    init_cmd = sub.add_parser("init-config", help="Write the default config file")
    init_cmd.add_argument("--path", default=None)
    init_cmd.add_argument("--force", action="store_true")
    init_cmd.set_defaults(func=cmd_init_config)

    doctor_cmd = sub.add_parser("doctor", help="Print environment diagnostics")
    doctor_cmd.add_argument("--config", default=None)
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(console=True, level=logging.DEBUG if args.verbose else logging.INFO)
    install_crash_hooks()
    try:
        return int(args.func(args))
    except (ConfigError, CaptureError, SinkUnavailable) as exc:
        logger.error("%s: %s", type(exc).__name__, exc, extra={"event": "fatal"})
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
