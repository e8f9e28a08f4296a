"""Top-level use cases: one-shot hotkeys, regenerate, and chat sessions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging

from .clipboard import ClipboardSnapshotter
from .completion import CompletionClient
from .config import Preferences
from .content import ClipboardSnapshot, MessageContent, compose
from .events import (
    ACTION_FAILURE,
    ACTION_PROGRESS,
    ACTION_SUCCESS,
    EventBus,
    FailureEvent,
    ProgressEvent,
    SuccessEvent,
)
from .exceptions import ClipAIError, PreconditionFailure
from .hotkeys import HotKeyAction
from .model_selector import ModelSelector
from .session import ConversationSession, PreferencesProvider
from .transcript import Transcript

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionOutcome:
    """Result of a user-triggered action: reply text or the error that stopped it."""

    text: str | None = None
    error: ClipAIError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None

    @property
    def message(self) -> str:
        if self.error is not None:
            return str(self.error)
        return self.text or ""


class ActionOrchestrator:
    """Drive hotkey actions and conversations from clipboard snapshots.

    Every public coroutine reports failures as an ``ActionOutcome`` and a
    ``action.failure`` event rather than raising.
    """

    def __init__(
        self,
        preferences: PreferencesProvider,
        client: CompletionClient,
        *,
        bus: EventBus | None = None,
        selector: ModelSelector | None = None,
        snapshotter: ClipboardSnapshotter | None = None,
    ) -> None:
        self._preferences = preferences
        self._client = client
        self.bus = bus or EventBus()
        self._selector = selector or ModelSelector(self.bus)
        self._snapshotter = snapshotter or ClipboardSnapshotter()

    async def refresh_clipboard(self) -> ClipboardSnapshot:
        """Capture a fresh clipboard snapshot."""
        return await self._snapshotter.capture()

    async def run_hotkey_once(
        self, hotkey: HotKeyAction, snapshot: ClipboardSnapshot
    ) -> ActionOutcome:
        """Run a templated action as a throwaway one-turn exchange."""
        return await self._one_shot(hotkey, snapshot, f"Executing {hotkey.title}...")

    async def regenerate(
        self, hotkey: HotKeyAction, snapshot: ClipboardSnapshot
    ) -> ActionOutcome:
        """Replay a hotkey against the same snapshot with freshly resolved parameters."""
        return await self._one_shot(
            hotkey,
            snapshot,
            "Regenerating response...",
            success_title="Response regenerated",
        )

    def expand_to_chat(
        self, hotkey: HotKeyAction, snapshot: ClipboardSnapshot, prior_result: str
    ) -> ConversationSession:
        """Turn a one-shot result into a session holding that exact exchange."""
        session = ConversationSession.from_exchange(
            compose(hotkey.prompt_template, snapshot),
            prior_result,
            self._selector,
            self._client,
            self._preferences,
        )
        LOGGER.info(
            "action.expand_to_chat",
            extra={"event": "action.expand_to_chat", "hotkey": hotkey.id},
        )
        return session

    def new_session(self) -> ConversationSession:
        return ConversationSession(self._selector, self._client, self._preferences)

    async def start_chat(
        self, snapshot: ClipboardSnapshot
    ) -> tuple[ConversationSession | None, ActionOutcome]:
        """Open a conversation seeded with the clipboard and fetch the first reply.

        When the first reply fails the session is still returned, holding the
        unanswered user turn so it can be retried with :meth:`retry_chat`.
        """
        try:
            self._check_preconditions(snapshot)
        except PreconditionFailure as exc:
            return None, await self._fail(exc)

        await self._emit_progress("Starting chat...")

        session = self.new_session()
        session.start(compose("", snapshot))
        outcome = await self._guard(session.complete_pending, "Chat started")
        return session, outcome

    async def continue_chat(
        self,
        session: ConversationSession,
        message: str,
        snapshot: ClipboardSnapshot | None = None,
    ) -> ActionOutcome:
        """Send the user's next message, combined with ``snapshot`` when given."""
        if not message.strip():
            return await self._fail(
                PreconditionFailure("Please enter a message", title="Empty Message")
            )
        try:
            self._check_credential()
        except PreconditionFailure as exc:
            return await self._fail(exc)

        content: MessageContent = compose(message, snapshot or ClipboardSnapshot.empty())
        return await self._guard(lambda: session.send_turn(content), "Response received")

    async def retry_chat(self, session: ConversationSession) -> ActionOutcome:
        """Explicitly retry the unanswered last user turn of a session."""
        try:
            self._check_credential()
        except PreconditionFailure as exc:
            return await self._fail(exc)
        return await self._guard(session.complete_pending, "Response received")

    async def _one_shot(
        self,
        hotkey: HotKeyAction,
        snapshot: ClipboardSnapshot,
        progress_title: str,
        success_title: str = "Response generated",
    ) -> ActionOutcome:
        try:
            self._check_preconditions(snapshot)
        except PreconditionFailure as exc:
            return await self._fail(exc)

        await self._emit_progress(progress_title)

        async def run() -> str:
            transcript = Transcript.single(compose(hotkey.prompt_template, snapshot))
            params = await self._selector.resolve(
                transcript.messages, self._current_preferences()
            )
            return await self._client.complete(transcript.messages, params)

        outcome = await self._guard(run, success_title)
        LOGGER.info(
            "action.hotkey.finished",
            extra={
                "event": "action.hotkey.finished",
                "hotkey": hotkey.id,
                "snapshot": snapshot.kind,
                "ok": outcome.ok,
            },
        )
        return outcome

    def _current_preferences(self) -> Preferences:
        prefs = self._preferences()
        self._client.set_credentials(prefs.api_key, prefs.base_url)
        return prefs

    def _check_credential(self) -> None:
        if not self._current_preferences().has_api_key:
            raise PreconditionFailure(
                "Please set your API key in the configuration", title="API Key Required"
            )

    def _check_preconditions(self, snapshot: ClipboardSnapshot) -> None:
        self._check_credential()
        if snapshot.is_empty:
            raise PreconditionFailure(
                "No text or image found in clipboard", title="No Content"
            )

    async def _guard(
        self, operation: Callable[[], Awaitable[str]], success_title: str
    ) -> ActionOutcome:
        try:
            text = await operation()
        except ClipAIError as exc:
            return await self._fail(exc)
        await self.bus.publish(
            ACTION_SUCCESS, SuccessEvent(title=success_title).payload(), source="orchestrator"
        )
        return ActionOutcome(text=text)

    async def _emit_progress(self, title: str) -> None:
        await self.bus.publish(
            ACTION_PROGRESS, ProgressEvent(title=title).payload(), source="orchestrator"
        )

    async def _fail(self, exc: ClipAIError) -> ActionOutcome:
        LOGGER.warning(
            "action.failed",
            extra={
                "event": "action.failed",
                "error_type": type(exc).__name__,
                "reason": str(exc),
            },
        )
        await self.bus.publish(
            ACTION_FAILURE,
            FailureEvent(
                title=_failure_title(exc), message=str(exc), kind=type(exc).__name__
            ).payload(),
            source="orchestrator",
        )
        return ActionOutcome(error=exc)


def _failure_title(exc: ClipAIError) -> str:
    if isinstance(exc, PreconditionFailure):
        return exc.title
    return "Error"
