from __future__ import annotations

"""Tests for the SVG avatar renderer."""

import re
import unittest
import xml.etree.ElementTree as ET

from avatar_bot.renderer import (
    AvatarRenderer,
    RenderError,
    contrast_color,
    get_boolean,
    get_digit,
    get_unit,
    hash_code,
)
from avatar_bot.styles import STYLE_SLUGS

SVG_NS = "{http://www.w3.org/2000/svg}"
PALETTE = ["#92A1C6", "#146A7C", "#F0AB3D", "#C271B4", "#C20D90"]


class HashHelperTests(unittest.TestCase):
    def test_hash_code_matches_java_string_hash(self) -> None:
        self.assertEqual(hash_code(""), 0)
        self.assertEqual(hash_code("a"), 97)
        self.assertEqual(hash_code("ab"), 97 * 31 + 98)
        self.assertEqual(hash_code("hello"), 99162322)

    def test_hash_code_folds_negative_values(self) -> None:
        # Famous string whose 32-bit hash is exactly Integer.MIN_VALUE.
        self.assertEqual(hash_code("polygenelubricants"), 2**31)

    def test_hash_code_is_never_negative(self) -> None:
        for name in ("Ada Lovelace", "Алиса", "🙂 smile", "x" * 200):
            self.assertGreaterEqual(hash_code(name), 0)

    def test_digit_helpers(self) -> None:
        self.assertEqual(get_digit(12345, 0), 5)
        self.assertEqual(get_digit(12345, 2), 3)
        self.assertTrue(get_boolean(12345, 3))
        self.assertFalse(get_boolean(12345, 2))
        self.assertEqual(get_unit(123, 10, 1), -3)
        self.assertEqual(get_unit(113, 10, 1), 3)
        self.assertEqual(get_unit(123, 10), 3)

    def test_contrast_color(self) -> None:
        self.assertEqual(contrast_color("#ffffff"), "#000000")
        self.assertEqual(contrast_color("#000"), "#FFFFFF")
        self.assertEqual(contrast_color("#F0AB3D"), "#000000")


class AvatarRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.renderer = AvatarRenderer()

    def test_every_style_produces_well_formed_svg(self) -> None:
        for variant in STYLE_SLUGS:
            with self.subTest(variant=variant):
                svg = self.renderer.render("Ada", variant, PALETTE, size=800, square=True)
                root = ET.fromstring(svg)
                self.assertEqual(root.tag, f"{SVG_NS}svg")
                self.assertEqual(root.get("width"), "800")
                self.assertEqual(root.get("height"), "800")

    def test_rendering_is_deterministic(self) -> None:
        for variant in STYLE_SLUGS:
            with self.subTest(variant=variant):
                first = self.renderer.render("Grace", variant, PALETTE, size=128)
                second = self.renderer.render("Grace", variant, PALETTE, size=128)
                self.assertEqual(first, second)

    def test_only_palette_colors_fill_shapes(self) -> None:
        allowed = {color.lower() for color in PALETTE} | {"#ffffff", "#000000"}
        for variant in STYLE_SLUGS:
            with self.subTest(variant=variant):
                svg = self.renderer.render("Linus", variant, PALETTE, size=64)
                used = {color.lower() for color in re.findall(r'(?:fill|stroke|stop-color)="(#[0-9A-Fa-f]+)"', svg)}
                self.assertTrue(used)
                self.assertLessEqual(used, allowed)

    def test_different_names_draw_different_pictures(self) -> None:
        first = self.renderer.render("Alice", "bauhaus", PALETTE, size=64)
        second = self.renderer.render("Bob", "bauhaus", PALETTE, size=64)
        self.assertNotEqual(first, second)

    def test_pixel_draws_an_eight_by_eight_grid(self) -> None:
        root = ET.fromstring(self.renderer.render("Pix", "pixel", PALETTE, size=80))
        cells = [rect for rect in root.iter(f"{SVG_NS}rect") if rect.get("width") == "10"]
        self.assertEqual(len(cells), 64)

    def test_round_avatars_use_a_rounded_mask(self) -> None:
        square = self.renderer.render("Ada", "ring", PALETTE, size=64, square=True)
        rounded = self.renderer.render("Ada", "ring", PALETTE, size=64, square=False)
        self.assertNotIn('rx="180"', square)
        self.assertIn('rx="180"', rounded)

    def test_title_is_escaped(self) -> None:
        svg = self.renderer.render("<b>&co", "beam", PALETTE, size=64)
        self.assertIn("<title>&lt;b&gt;&amp;co</title>", svg)
        ET.fromstring(svg)

    def test_short_hex_colors_are_accepted(self) -> None:
        svg = self.renderer.render("Ada", "beam", ["#abc", "#123"], size=64)
        ET.fromstring(svg)

    def test_invalid_input_raises(self) -> None:
        with self.assertRaises(RenderError):
            self.renderer.render("Ada", "cubism", PALETTE, size=64)
        with self.assertRaises(RenderError):
            self.renderer.render("Ada", "beam", [], size=64)
        with self.assertRaises(RenderError):
            self.renderer.render("Ada", "beam", ["red"], size=64)
        with self.assertRaises(RenderError):
            self.renderer.render("Ada", "beam", PALETTE, size=0)


if __name__ == "__main__":
    unittest.main()
