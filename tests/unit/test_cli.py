import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "apps" / "cli"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "capture"))
sys.path.insert(0, str(ROOT / "packages" / "sink"))
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from asciicam_app.cli import EXIT_FATAL, EXIT_OK, _config_from_args, build_parser, cmd_init_config, cmd_preview, cmd_ramps, cmd_run
from asciicam_core.config import ConfigError, load_config


def _capture(func, args):
    out = io.StringIO()
    with redirect_stdout(out):
        rc = func(args)
    return rc, out.getvalue()


class CliParserTests(unittest.TestCase):
    def test_run_command(self):
        parser = build_parser()
        args = parser.parse_args(["run"])
        self.assertEqual(args.command, "run")
        self.assertEqual(args.source, "camera")
        self.assertIsNone(args.frames)

    def test_run_options(self):
        parser = build_parser()
        args = parser.parse_args(
            ["run", "--source", "pattern", "--pattern", "red", "--pattern", "blue", "--mode", "file", "--frames", "4", "--no-pace"]
        )
        self.assertEqual(args.pattern, ["red", "blue"])
        self.assertEqual(args.mode, "file")
        self.assertEqual(args.frames, 4)
        self.assertTrue(args.no_pace)

    def test_preview_command(self):
        parser = build_parser()
        args = parser.parse_args(["preview", "--pattern", "h-gradient", "--print-grid"])
        self.assertEqual(args.command, "preview")
        self.assertEqual(args.pattern, "h-gradient")
        self.assertTrue(args.print_grid)

    def test_unknown_ramp_rejected(self):
        parser = build_parser()
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            parser.parse_args(["run", "--ramp", "nope"])


class CliCommandTests(unittest.TestCase):
    def test_overrides_map_onto_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            args = build_parser().parse_args(
                ["run", "--config", str(Path(tmp) / "missing.json"), "--output", "clip.mp4", "--render", "text", "--fps", "5", "--builtin-font"]
            )
            cfg = _config_from_args(args)
        self.assertEqual(cfg.output.stream_path, "clip.mp4")
        self.assertEqual(cfg.runtime.render, "text")
        self.assertEqual(cfg.runtime.frame_rate, 5.0)
        self.assertEqual(cfg.font.path, "")

    def test_ramps(self):
        rc, out = _capture(cmd_ramps, build_parser().parse_args(["ramps"]))
        self.assertEqual(rc, EXIT_OK)
        self.assertEqual(json.loads(out)["standard"], " .:-=+*#%@")

    def test_init_config_refuses_overwrite(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            args = build_parser().parse_args(["init-config", "--path", str(path)])
            rc, _ = _capture(cmd_init_config, args)
            self.assertEqual(rc, EXIT_OK)
            self.assertEqual(load_config(path).capture.device, "/dev/video0")
            with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
                self.assertEqual(cmd_init_config(args), EXIT_FATAL)

    def test_preview_writes_image(self):
        with tempfile.TemporaryDirectory() as tmp:
            out_path = Path(tmp) / "preview.png"
            args = build_parser().parse_args(
                ["preview", "--config", str(Path(tmp) / "missing.json"), "--builtin-font", "--out", str(out_path)]
            )
            rc, out = _capture(cmd_preview, args)
            self.assertEqual(rc, EXIT_OK)
            self.assertTrue(out_path.exists())
        self.assertEqual(json.loads(out)["size"], [1280, 720])

    def test_run_pattern_to_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            args = build_parser().parse_args(
                [
                    "run",
                    "--config", str(Path(tmp) / "missing.json"),
                    "--builtin-font",
                    "--source", "pattern",
                    "--mode", "file",
                    "--output-dir", tmp,
                    "--output", "frame_{index:03d}.png",
                    "--frames", "2",
                    "--no-pace",
                ]
            )
            rc, out = _capture(cmd_run, args)
            names = sorted(p.name for p in Path(tmp).glob("frame_*.png"))
        report = json.loads(out)
        self.assertEqual(rc, EXIT_OK)
        self.assertEqual(report["frames_written"], 2)
        self.assertEqual(report["stop_reason"], "frame_limit")
        self.assertTrue(report["success"])
        self.assertEqual(names, ["frame_000.png", "frame_001.png"])

    def test_replay_needs_directory(self):
        args = build_parser().parse_args(["run", "--source", "replay"])
        with self.assertRaises(ConfigError):
            cmd_run(args)


if __name__ == "__main__":
    unittest.main()
