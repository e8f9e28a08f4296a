"""Tests for built-in hotkeys and user overrides."""

from __future__ import annotations

import json
import unittest

from clipai.hotkeys import (
    CASUAL_PERSONA,
    DEFAULT_HOTKEYS,
    find_hotkey,
    hotkeys_to_json,
    load_hotkeys,
)


class HotkeyTests(unittest.TestCase):
    def test_defaults_have_unique_ids(self) -> None:
        ids = [hotkey.id for hotkey in DEFAULT_HOTKEYS]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertIn("summarize", ids)

    def test_casual_persona_ends_with_summary(self) -> None:
        casual = find_hotkey(list(DEFAULT_HOTKEYS), "casual-reply")
        assert casual is not None
        self.assertEqual(casual.prompt_template, CASUAL_PERSONA)
        last_paragraph = CASUAL_PERSONA.strip().split("\n\n")[-1]
        self.assertTrue(last_paragraph.startswith("Summary:"))
        self.assertNotIn("Reply to the following message", CASUAL_PERSONA)

    def test_blank_override_returns_defaults(self) -> None:
        self.assertEqual(load_hotkeys(None), list(DEFAULT_HOTKEYS))
        self.assertEqual(load_hotkeys("   "), list(DEFAULT_HOTKEYS))

    def test_valid_override_replaces_defaults(self) -> None:
        raw = json.dumps(
            [{"id": "tldr", "title": "TL;DR", "prompt": "Give a one-line summary:"}]
        )
        hotkeys = load_hotkeys(raw)
        self.assertEqual(len(hotkeys), 1)
        self.assertEqual(hotkeys[0].prompt_template, "Give a one-line summary:")
        self.assertEqual(hotkeys[0].subtitle, "")

    def test_invalid_overrides_fall_back_to_defaults(self) -> None:
        cases = {
            "malformed": "[{",
            "not_a_list": json.dumps({"id": "x"}),
            "missing_prompt": json.dumps([{"id": "x", "title": "X"}]),
            "blank_title": json.dumps([{"id": "x", "title": " ", "prompt": "p"}]),
            "duplicate_ids": json.dumps(
                [
                    {"id": "x", "title": "X", "prompt": "p"},
                    {"id": "x", "title": "Y", "prompt": "q"},
                ]
            ),
        }
        for name, raw in cases.items():
            with self.subTest(case=name):
                with self.assertLogs("clipai.hotkeys", level="WARNING"):
                    self.assertEqual(load_hotkeys(raw), list(DEFAULT_HOTKEYS))

    def test_find_hotkey_trims_id(self) -> None:
        hotkey = find_hotkey(list(DEFAULT_HOTKEYS), " explain ")
        assert hotkey is not None
        self.assertEqual(hotkey.title, "Explain")
        self.assertIsNone(find_hotkey(list(DEFAULT_HOTKEYS), "missing"))

    def test_json_export_loads_back(self) -> None:
        exported = hotkeys_to_json(list(DEFAULT_HOTKEYS))
        self.assertIn('"prompt"', exported)
        self.assertEqual(load_hotkeys(exported), list(DEFAULT_HOTKEYS))


if __name__ == "__main__":
    unittest.main()
