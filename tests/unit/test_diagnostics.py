import json
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))
sys.path.insert(0, str(ROOT / "packages" / "capture"))
sys.path.insert(0, str(ROOT / "packages" / "sink"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from asciicam_core.config import PipelineConfig, load_config, override
from asciicam_core.diagnostics import build_doctor_payload


class DiagnosticsTests(unittest.TestCase):
    def test_payload_shape(self):
        cfg = load_config(Path("/tmp/nonexistent-asciicam-config.json"))
        doctor = build_doctor_payload(cfg)
        for key in ("encoder", "font", "capture", "libraries", "ready", "config"):
            self.assertIn(key, doctor)
        self.assertIn("numpy", doctor["libraries"])
        json.dumps(doctor, default=str)

    def test_missing_encoder_is_not_ready_for_streaming(self):
        cfg = override(PipelineConfig(), "output", encoder="definitely-not-an-encoder-binary")
        cfg = override(cfg, "font", path="")
        doctor = build_doctor_payload(cfg)
        self.assertFalse(doctor["encoder"]["found"])
        self.assertTrue(doctor["font"]["builtin"])
        self.assertFalse(doctor["ready"])
        self.assertTrue(build_doctor_payload(override(cfg, "output", mode="file"))["ready"])

    def test_numeric_device_presence_is_unknown(self):
        doctor = build_doctor_payload(override(PipelineConfig(), "capture", device="0"))
        self.assertIsNone(doctor["capture"]["present"])


if __name__ == "__main__":
    unittest.main()
