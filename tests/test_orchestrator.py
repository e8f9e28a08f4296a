"""Tests for hotkey, regenerate, and chat orchestration."""

from __future__ import annotations

import base64
import json
import unittest

import httpx

from clipai.completion import CompletionClient
from clipai.config import Preferences
from clipai.content import ChatMessage, ClipboardSnapshot, ImageAsset, PlainText, compose
from clipai.events import (
    ACTION_FAILURE,
    ACTION_PROGRESS,
    ACTION_SUCCESS,
    MODEL_AUTO_SWITCHED,
    Event,
)
from clipai.exceptions import PreconditionFailure, TransportFailure
from clipai.hotkeys import HotKeyAction
from clipai.orchestrator import ActionOrchestrator
from clipai.session import ConversationSession

SUMMARIZE = HotKeyAction(id="summarize", title="Summarize", prompt="Summarize this:")
IMAGE = ImageAsset(base64.b64encode(b"png-bytes").decode("ascii"), "image/png")


class FakeProvider:
    """OpenAI-compatible endpoint that replays scripted responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []
        self.auth: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.auth.append(request.headers["Authorization"])
        return self.responses.pop(0)


def ok(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


class OrchestratorTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.prefs = Preferences(api_key="sk-test", model="gpt-4o-mini")
        self.events: list[Event] = []

    def _orchestrator(self, provider: FakeProvider) -> ActionOrchestrator:
        client = CompletionClient(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider))
        )
        orchestrator = ActionOrchestrator(lambda: self.prefs, client)
        for name in (ACTION_PROGRESS, ACTION_SUCCESS, ACTION_FAILURE, MODEL_AUTO_SWITCHED):
            orchestrator.bus.subscribe(name, self.events.append)
        return orchestrator

    def _event_names(self) -> list[str]:
        return [event.name for event in self.events]

    async def test_run_hotkey_once_sends_composed_prompt(self) -> None:
        provider = FakeProvider(ok("A fox jumps."))
        orchestrator = self._orchestrator(provider)
        snapshot = ClipboardSnapshot.classify("The quick brown fox")

        outcome = await orchestrator.run_hotkey_once(SUMMARIZE, snapshot)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.text, "A fox jumps.")
        self.assertEqual(
            provider.requests[0]["messages"],
            [{"role": "user", "content": "Summarize this:\n\nThe quick brown fox"}],
        )
        self.assertEqual(provider.auth[0], "Bearer sk-test")
        self.assertEqual(self._event_names(), [ACTION_PROGRESS, ACTION_SUCCESS])
        self.assertEqual(self.events[0].data["title"], "Executing Summarize...")

    async def test_missing_api_key_fails_without_request(self) -> None:
        provider = FakeProvider()
        orchestrator = self._orchestrator(provider)
        self.prefs = Preferences(api_key="  ")

        outcome = await orchestrator.run_hotkey_once(SUMMARIZE, ClipboardSnapshot.classify("x"))

        self.assertFalse(outcome.ok)
        self.assertIsInstance(outcome.error, PreconditionFailure)
        self.assertEqual(provider.requests, [])
        self.assertEqual(self._event_names(), [ACTION_FAILURE])
        self.assertEqual(self.events[0].data["title"], "API Key Required")

    async def test_empty_clipboard_fails_without_request(self) -> None:
        provider = FakeProvider()
        orchestrator = self._orchestrator(provider)

        outcome = await orchestrator.run_hotkey_once(SUMMARIZE, ClipboardSnapshot.empty())

        self.assertEqual(outcome.message, "No text or image found in clipboard")
        self.assertEqual(provider.requests, [])
        self.assertEqual(self.events[-1].data["title"], "No Content")

    async def test_provider_error_is_reported(self) -> None:
        provider = FakeProvider(
            httpx.Response(401, json={"error": {"message": "invalid api key"}})
        )
        orchestrator = self._orchestrator(provider)

        outcome = await orchestrator.run_hotkey_once(SUMMARIZE, ClipboardSnapshot.classify("x"))

        self.assertIsInstance(outcome.error, TransportFailure)
        self.assertEqual(outcome.message, "invalid api key")
        failure = self.events[-1]
        self.assertEqual(failure.name, ACTION_FAILURE)
        self.assertEqual(failure.data["title"], "Error")
        self.assertEqual(failure.data["kind"], "TransportFailure")

    async def test_image_snapshot_switches_model(self) -> None:
        provider = FakeProvider(ok("A red square."))
        orchestrator = self._orchestrator(provider)
        self.prefs = Preferences(api_key="k", model="gpt-3.5-turbo", max_tokens=9000)

        await orchestrator.run_hotkey_once(SUMMARIZE, ClipboardSnapshot.classify(None, [IMAGE]))

        body = provider.requests[0]
        self.assertEqual(body["model"], "gpt-4o")
        self.assertEqual(body["max_tokens"], 4096)
        self.assertEqual(body["messages"][0]["content"][1]["image_url"]["url"], IMAGE.data_uri)
        self.assertIn(MODEL_AUTO_SWITCHED, self._event_names())

    async def test_regenerate_uses_current_preferences(self) -> None:
        provider = FakeProvider(ok("first"), ok("second"))
        orchestrator = self._orchestrator(provider)
        snapshot = ClipboardSnapshot.classify("text")

        await orchestrator.run_hotkey_once(SUMMARIZE, snapshot)
        self.prefs = Preferences(api_key="sk-new", model="gpt-4-turbo", temperature=0.1)
        outcome = await orchestrator.regenerate(SUMMARIZE, snapshot)

        self.assertEqual(outcome.text, "second")
        self.assertEqual(provider.requests[0]["messages"], provider.requests[1]["messages"])
        self.assertEqual(provider.requests[1]["model"], "gpt-4-turbo")
        self.assertEqual(provider.requests[1]["temperature"], 0.1)
        self.assertEqual(provider.auth[1], "Bearer sk-new")
        self.assertEqual(self.events[-1].data["title"], "Response regenerated")

    async def test_expand_to_chat_holds_prior_exchange(self) -> None:
        provider = FakeProvider(ok("follow-up answer"))
        orchestrator = self._orchestrator(provider)
        snapshot = ClipboardSnapshot.classify("The quick brown fox")

        session = orchestrator.expand_to_chat(SUMMARIZE, snapshot, "A fox.")

        self.assertEqual(provider.requests, [])
        self.assertEqual(
            list(session.messages),
            [
                ChatMessage(role="user", content=compose(SUMMARIZE.prompt_template, snapshot)),
                ChatMessage(role="assistant", content=PlainText("A fox.")),
            ],
        )

        outcome = await orchestrator.continue_chat(session, "Shorter please")
        self.assertEqual(outcome.text, "follow-up answer")
        self.assertEqual(len(provider.requests[0]["messages"]), 3)

    async def test_start_chat_fetches_first_reply(self) -> None:
        provider = FakeProvider(ok("Hello!"))
        orchestrator = self._orchestrator(provider)

        session, outcome = await orchestrator.start_chat(ClipboardSnapshot.classify("hi there"))

        assert session is not None
        self.assertTrue(outcome.ok)
        self.assertEqual([m.role for m in session.messages], ["user", "assistant"])
        self.assertEqual(
            provider.requests[0]["messages"], [{"role": "user", "content": "hi there"}]
        )
        self.assertEqual(
            [event.data["title"] for event in self.events],
            ["Starting chat...", "Chat started"],
        )

    async def test_start_chat_with_empty_clipboard_returns_no_session(self) -> None:
        orchestrator = self._orchestrator(FakeProvider())
        session, outcome = await orchestrator.start_chat(ClipboardSnapshot.empty())
        self.assertIsNone(session)
        self.assertIsInstance(outcome.error, PreconditionFailure)

    async def test_failed_first_reply_can_be_retried(self) -> None:
        provider = FakeProvider(httpx.Response(500), ok("recovered"))
        orchestrator = self._orchestrator(provider)

        session, outcome = await orchestrator.start_chat(ClipboardSnapshot.classify("hi"))
        assert session is not None
        self.assertFalse(outcome.ok)
        self.assertEqual([m.role for m in session.messages], ["user"])

        retry = await orchestrator.retry_chat(session)
        self.assertEqual(retry.text, "recovered")
        self.assertEqual([m.role for m in session.messages], ["user", "assistant"])

    async def test_continue_chat_rejects_blank_message(self) -> None:
        provider = FakeProvider()
        orchestrator = self._orchestrator(provider)
        session = orchestrator.expand_to_chat(SUMMARIZE, ClipboardSnapshot.classify("x"), "y")

        outcome = await orchestrator.continue_chat(session, "   ")

        self.assertEqual(outcome.message, "Please enter a message")
        self.assertEqual(self.events[-1].data["title"], "Empty Message")
        self.assertEqual(len(session.messages), 2)

    async def test_continue_chat_attaches_clipboard_snapshot(self) -> None:
        provider = FakeProvider(ok("I see it."))
        orchestrator = self._orchestrator(provider)
        session = orchestrator.expand_to_chat(SUMMARIZE, ClipboardSnapshot.classify("x"), "y")

        await orchestrator.continue_chat(
            session, "What about this?", ClipboardSnapshot.classify("new clip", [IMAGE])
        )

        last = provider.requests[0]["messages"][-1]["content"]
        self.assertEqual(last[0], {"type": "text", "text": "What about this?\n\nnew clip"})
        self.assertEqual(last[1]["type"], "image_url")

    async def test_new_session_is_uninitialized(self) -> None:
        orchestrator = self._orchestrator(FakeProvider())
        session = orchestrator.new_session()
        self.assertIsInstance(session, ConversationSession)
        self.assertFalse(session.is_started)


if __name__ == "__main__":
    unittest.main()
