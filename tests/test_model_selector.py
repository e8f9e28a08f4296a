"""Tests for vision auto-switching and token clamping."""

from __future__ import annotations

import unittest

from clipai.config import Preferences
from clipai.content import ChatMessage, ImagePart, PartList, PlainText, TextPart
from clipai.events import MODEL_AUTO_SWITCHED, Event, EventBus
from clipai.model_selector import (
    FALLBACK_VISION_MODEL,
    VISION_MAX_TOKENS,
    ModelParameters,
    ModelSelector,
    is_vision_model,
)

IMAGE_MESSAGE = ChatMessage(
    role="user",
    content=PartList((TextPart("what is this"), ImagePart(url="data:image/png;base64,eA=="))),
)
TEXT_MESSAGE = ChatMessage(role="user", content=PlainText("hello"))


class ModelSelectorTests(unittest.IsolatedAsyncioTestCase):
    async def test_text_only_keeps_configured_values(self) -> None:
        prefs = Preferences(model="gpt-3.5-turbo", temperature=0.2, max_tokens=8000)
        params = await ModelSelector().resolve([TEXT_MESSAGE], prefs)
        self.assertEqual(
            params,
            ModelParameters(model_name="gpt-3.5-turbo", max_output_tokens=8000, temperature=0.2),
        )

    async def test_images_switch_non_vision_model_and_clamp_tokens(self) -> None:
        bus = EventBus()
        events: list[Event] = []
        bus.subscribe(MODEL_AUTO_SWITCHED, events.append)
        prefs = Preferences(model="gpt-3.5-turbo", temperature=0.9, max_tokens=8000)

        params = await ModelSelector(bus).resolve([TEXT_MESSAGE, IMAGE_MESSAGE], prefs)

        self.assertEqual(params.model_name, FALLBACK_VISION_MODEL)
        self.assertTrue(is_vision_model(params.model_name))
        self.assertLessEqual(params.max_output_tokens, VISION_MAX_TOKENS)
        self.assertEqual(params.temperature, 0.9)
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].data["model"], FALLBACK_VISION_MODEL)
        self.assertEqual(events[0].data["requested_model"], "gpt-3.5-turbo")

    async def test_vision_model_is_kept_without_notification(self) -> None:
        bus = EventBus()
        events: list[Event] = []
        bus.subscribe(MODEL_AUTO_SWITCHED, events.append)
        prefs = Preferences(model="GPT-4o-mini", max_tokens=1000)

        params = await ModelSelector(bus).resolve([IMAGE_MESSAGE], prefs)

        self.assertEqual(params.model_name, "GPT-4o-mini")
        self.assertEqual(params.max_output_tokens, 1000)
        self.assertEqual(events, [])

    async def test_lower_configured_limit_is_kept_with_images(self) -> None:
        prefs = Preferences(model="gpt-4o", max_tokens=512)
        params = await ModelSelector().resolve([IMAGE_MESSAGE], prefs)
        self.assertEqual(params.max_output_tokens, 512)

    async def test_resolution_is_recomputed_per_call(self) -> None:
        selector = ModelSelector()
        prefs = Preferences(model="gpt-3.5-turbo", max_tokens=6000)
        first = await selector.resolve([TEXT_MESSAGE], prefs)
        second = await selector.resolve([IMAGE_MESSAGE], prefs)
        third = await selector.resolve([TEXT_MESSAGE], prefs)
        self.assertEqual(first.model_name, "gpt-3.5-turbo")
        self.assertEqual(second.model_name, FALLBACK_VISION_MODEL)
        self.assertEqual(third, first)

    def test_vision_model_matching_is_case_insensitive_substring(self) -> None:
        self.assertTrue(is_vision_model("gpt-4o-2024-08-06"))
        self.assertTrue(is_vision_model("GPT-4-TURBO"))
        self.assertFalse(is_vision_model("gpt-3.5-turbo"))

    def test_parameters_require_positive_tokens(self) -> None:
        with self.assertRaises(ValueError):
            ModelParameters(model_name="gpt-4o", max_output_tokens=0, temperature=0.5)


if __name__ == "__main__":
    unittest.main()
