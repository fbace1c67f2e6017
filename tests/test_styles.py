from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from smartart.smartart import (
    DARK_TEXT,
    LIGHT_TEXT,
    default_colors,
    default_style_string,
    error_placeholder,
    resolve_positive,
    text_color_for,
)


class RegistryTests(unittest.TestCase):
    def test_palettes(self) -> None:
        solid = default_colors()
        translucent = default_colors(translucent=True)
        self.assertEqual(solid[:5], ("#4285F4", "#34A853", "#FBBC05", "#EA4335", "#5F6368"))
        self.assertEqual(len(translucent), len(solid))
        self.assertEqual(translucent[0], "rgba(66, 133, 244, 0.5)")
        self.assertTrue(all(color.startswith("rgba(") for color in translucent))

    def test_style_string_basics(self) -> None:
        style = default_style_string(14)
        self.assertIn("display:flex;", style)
        self.assertIn("align-items:center;justify-content:center;", style)
        self.assertIn("padding:10px;", style)
        self.assertIn("overflow:hidden;", style)
        self.assertIn("font-size:14px;", style)
        self.assertNotIn("color:", style)
        self.assertNotIn("max-width", style)

    def test_style_string_color_and_overlap(self) -> None:
        self.assertIn("color:#fff;", default_style_string(12, "#fff"))
        overlap = default_style_string(12.5, overlap=True)
        self.assertIn("font-size:12.5px;", overlap)
        self.assertIn("padding:3px;", overlap)
        self.assertIn("display:inline-block;", overlap)
        self.assertNotIn("display:flex;", overlap)
        self.assertIn("max-width:100%;max-height:100%;", overlap)

    def test_error_placeholder(self) -> None:
        self.assertEqual(
            error_placeholder("No pyramid content provided", "pyramid"),
            '<div class="pyramid-error">Error: No pyramid content provided</div>',
        )
        self.assertEqual(error_placeholder("<b>"), '<div class="diagram-error">Error: &lt;b&gt;</div>')

    def test_resolve_positive_fallback_chain(self) -> None:
        self.assertEqual(resolve_positive(None, 16, default=14), 16)
        self.assertEqual(resolve_positive(20, 16, default=14), 20)
        self.assertEqual(resolve_positive("18", default=14), 18.0)
        self.assertEqual(resolve_positive(-3, "abc", True, 0, default=14), 14)
        self.assertEqual(resolve_positive(float("nan"), "inf", default=14), 14)
        self.assertEqual(resolve_positive(default=400), 400)

    def test_text_color_follows_fill_brightness(self) -> None:
        self.assertEqual(text_color_for("#4285F4"), LIGHT_TEXT)
        self.assertEqual(text_color_for("#FBBC05"), DARK_TEXT)
        self.assertEqual(text_color_for("white"), DARK_TEXT)
        self.assertEqual(text_color_for("black"), LIGHT_TEXT)
        self.assertEqual(text_color_for("not-a-color"), LIGHT_TEXT)


if __name__ == "__main__":
    unittest.main()
