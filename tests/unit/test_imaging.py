import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

import numpy as np

from asciicam_renderer.glyphs import GlyphMapper
from asciicam_renderer.imaging import ColorFilter, luminance, resample
from asciicam_renderer.models import PixelBuffer, SymbolRamp
from asciicam_renderer.patterns import build_test_pattern


def _indexed_buffer(width, height):
    # Each pixel encodes its own coordinates so sampling is traceable.
    data = np.zeros((height, width, 3), dtype=np.uint8)
    for y in range(height):
        for x in range(width):
            data[y, x] = (x, y, 7)
    return PixelBuffer(width=width, height=height, data=data)


class ResampleTests(unittest.TestCase):
    def test_output_size(self):
        src = build_test_pattern("checkerboard", 64, 48)
        for w, h in ((1, 1), (7, 3), (64, 48), (100, 90)):
            out = resample(src, w, h)
            self.assertEqual((out.width, out.height), (w, h))
            self.assertEqual(len(out.tobytes()), w * h * 3)

    def test_identity_is_exact_copy(self):
        src = build_test_pattern("h-gradient", 33, 17)
        out = resample(src, 33, 17)
        self.assertEqual(out.tobytes(), src.tobytes())
        self.assertIsNot(out.data, src.data)

    def test_nearest_neighbor_picks_floor_coordinates(self):
        src = _indexed_buffer(10, 6)
        out = resample(src, 4, 4)
        for y in range(4):
            for x in range(4):
                expected = ((x * 10) // 4, (y * 6) // 4, 7)
                self.assertEqual(out.get_pixel(x, y), expected)

    def test_upsampling_repeats_pixels(self):
        src = _indexed_buffer(2, 2)
        out = resample(src, 4, 4)
        self.assertEqual(out.get_pixel(1, 1), (0, 0, 7))
        self.assertEqual(out.get_pixel(2, 3), (1, 1, 7))

    def test_rejects_non_positive_target(self):
        src = PixelBuffer.blank(4, 4)
        with self.assertRaises(ValueError):
            resample(src, 0, 4)


class ColorFilterTests(unittest.TestCase):
    def setUp(self):
        self.flt = ColorFilter(lower=(0, 0, 100), upper=(120, 100, 255))

    def _apply(self, color):
        buf = PixelBuffer.blank(1, 1, color)
        self.flt.apply(buf)
        return buf.get_pixel(0, 0)

    def test_inside_range_becomes_black(self):
        self.assertEqual(self._apply((10, 20, 200)), (0, 0, 0))

    def test_boundaries_are_inclusive(self):
        self.assertEqual(self._apply((0, 0, 100)), (0, 0, 0))
        self.assertEqual(self._apply((120, 100, 255)), (0, 0, 0))
        self.assertEqual(self._apply((120, 0, 100)), (0, 0, 0))

    def test_just_outside_one_channel_is_untouched(self):
        self.assertEqual(self._apply((121, 50, 200)), (121, 50, 200))
        self.assertEqual(self._apply((50, 101, 200)), (50, 101, 200))
        self.assertEqual(self._apply((50, 50, 99)), (50, 50, 99))

    def test_apply_counts_replacements(self):
        buf = build_test_pattern("quadrants", 8, 8)
        replaced = self.flt.apply(buf)
        self.assertEqual(replaced, 16)
        self.assertEqual(buf.get_pixel(0, 7), (0, 0, 0))
        self.assertEqual(buf.get_pixel(0, 0), (255, 0, 0))

    def test_rejects_bad_channel_values(self):
        with self.assertRaises(ValueError):
            ColorFilter(lower=(0, 0, 300))


class LuminanceTests(unittest.TestCase):
    def test_white_and_black(self):
        white = luminance(PixelBuffer.blank(5, 4, (255, 255, 255)))
        black = luminance(PixelBuffer.blank(5, 4, (0, 0, 0)))
        self.assertTrue(np.all(white.data == 255))
        self.assertTrue(np.all(black.data == 0))
        self.assertEqual((white.width, white.height), (5, 4))

    def test_weights_round_to_nearest(self):
        red = luminance(PixelBuffer.blank(1, 1, (255, 0, 0))).get(0, 0)
        green = luminance(PixelBuffer.blank(1, 1, (0, 255, 0))).get(0, 0)
        blue = luminance(PixelBuffer.blank(1, 1, (0, 0, 255))).get(0, 0)
        # 255 * 0.2126 = 54.2, 255 * 0.7152 = 182.4, 255 * 0.0722 = 18.4
        self.assertEqual((red, green, blue), (54, 182, 18))


class EndToEndStageTests(unittest.TestCase):
    def test_blue_frame_collapses_to_first_symbol(self):
        frame = PixelBuffer.blank(4, 4, (0, 0, 255))
        ColorFilter(lower=(0, 0, 100), upper=(120, 100, 255)).apply(frame)
        self.assertTrue(np.all(frame.data == 0))

        small = resample(frame, 2, 2)
        self.assertEqual((small.width, small.height), (2, 2))
        self.assertTrue(np.all(small.data == 0))

        intensity = luminance(small)
        self.assertTrue(np.all(intensity.data == 0))

        ramp = SymbolRamp.from_string("three", " +#")
        grid = GlyphMapper(ramp).build_grid(intensity)
        self.assertEqual((grid.rows, grid.cols), (2, 2))
        self.assertEqual(grid.lines(), ["  ", "  "])


if __name__ == "__main__":
    unittest.main()
