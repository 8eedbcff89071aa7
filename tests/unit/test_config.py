import json
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "capture"))
sys.path.insert(0, str(ROOT / "packages" / "sink"))

from asciicam_core.config import (
    ConfigError,
    PipelineConfig,
    channel_for,
    load_config,
    load_font,
    override,
    resolve_ramp,
    save_config,
    validate_config,
)
from asciicam_renderer import Channel


class ConfigTests(unittest.TestCase):
    def test_missing_file_gives_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg = load_config(Path(tmp) / "config.json")
        self.assertEqual(cfg, PipelineConfig())
        self.assertEqual((cfg.capture.width, cfg.capture.height), (320, 180))
        self.assertEqual((cfg.output.width, cfg.output.height), (1280, 720))
        self.assertEqual((cfg.ascii.columns, cfg.ascii.rows), (80, 45))
        self.assertEqual(cfg.filter.lower, (0, 0, 100))
        self.assertEqual(cfg.filter.upper, (120, 100, 255))

    def test_save_and_reload(self):
        cfg = override(PipelineConfig(), "runtime", max_frames=5, render="text")
        cfg = override(cfg, "ascii", ramp="blocks", background=(1, 2, 3))
        with tempfile.TemporaryDirectory() as tmp:
            path = save_config(cfg, Path(tmp) / "nested" / "config.json")
            loaded = load_config(path)
        self.assertEqual(loaded, cfg)
        self.assertEqual(loaded.ascii.background, (1, 2, 3))

    def test_partial_sections_keep_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(
                json.dumps({"config_version": 1, "filter": {"lower": [1, 2, 3]}, "unknown": {"x": 1}}),
                encoding="utf-8",
            )
            cfg = load_config(path)
        self.assertEqual(cfg.filter.lower, (1, 2, 3))
        self.assertEqual(cfg.filter.upper, (120, 100, 255))
        self.assertTrue(cfg.filter.enabled)

    def test_version_gate(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"output": {"mode": "file"}}), encoding="utf-8")
            self.assertEqual(load_config(path).config_version, 1)
            for version in (2, 0, "1", True):
                path.write_text(json.dumps({"config_version": version}), encoding="utf-8")
                with self.subTest(version=version):
                    with self.assertRaises(ConfigError):
                        load_config(path)

    def test_wrong_value_types_raise_config_error(self):
        bad = (
            {"ascii": {"custom_ramp": 5}},
            {"ascii": {"ramp": ["classic"]}},
            {"output": {"filename": 5}},
            {"output": {"stream_path": None}},
            {"font": {"path": 5}},
            {"capture": {"device": 0}},
            {"text": {"text": ["hello"]}},
            {"text": {"channel": 1}},
            {"filter": {"enabled": "yes"}},
            {"runtime": {"frame_rate": True}},
            {"runtime": {"pace": 1}},
            {"output": {"close_timeout_s": "5"}},
        )
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            for raw in bad:
                path.write_text(json.dumps(raw), encoding="utf-8")
                with self.subTest(raw=raw):
                    with self.assertRaises(ConfigError):
                        load_font(load_config(path))

    def test_null_font_path_selects_builtin(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"font": {"path": None}}), encoding="utf-8")
            cfg = load_config(path)
        self.assertIsNone(cfg.font.path)
        self.assertEqual(load_font(cfg).name, "builtin")

    def test_invalid_values_raise(self):
        bad = (
            {"ascii": {"custom_ramp": "#"}},
            {"ascii": {"ramp": "nope"}},
            {"output": {"mode": "tv"}},
            {"capture": {"width": 0}},
            {"filter": {"upper": [300, 0, 0]}},
            {"text": {"channel": "purple"}},
            {"runtime": {"frame_rate": 0}},
            {"output": {"filename": "frame_{frame}.png"}},
            {"capture": "not a section"},
        )
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            for raw in bad:
                path.write_text(json.dumps(raw), encoding="utf-8")
                with self.subTest(raw=raw):
                    with self.assertRaises(ConfigError):
                        load_config(path)

    def test_malformed_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path)
            path.write_text("[]", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path)

    def test_collects_all_problems(self):
        cfg = override(PipelineConfig(), "capture", width=-1, height=0)
        with self.assertRaises(ConfigError) as ctx:
            validate_config(cfg)
        self.assertIn("capture.width", str(ctx.exception))
        self.assertIn("capture.height", str(ctx.exception))

    def test_override_skips_none(self):
        cfg = PipelineConfig()
        self.assertIs(override(cfg, "runtime", max_frames=None), cfg)
        self.assertEqual(override(cfg, "capture", device="/dev/video2").capture.device, "/dev/video2")

    def test_custom_ramp_wins(self):
        cfg = override(PipelineConfig(), "ascii", custom_ramp=" -=#")
        self.assertEqual(resolve_ramp(cfg).symbols, (" ", "-", "=", "#"))
        self.assertEqual(resolve_ramp(PipelineConfig()).name, "classic")

    def test_channels(self):
        self.assertEqual(channel_for("green"), Channel.GREEN)
        self.assertEqual(channel_for("RED"), Channel.RED)

    def test_font_loading(self):
        self.assertEqual(load_font(override(PipelineConfig(), "font", path="")).name, "builtin")
        with self.assertRaises(ConfigError):
            load_font(override(PipelineConfig(), "font", path="/nonexistent/font.ttf"))


if __name__ == "__main__":
    unittest.main()
