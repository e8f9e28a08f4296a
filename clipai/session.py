"""Multi-turn conversation session over a single transcript."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Protocol

from .config import Preferences
from .content import ChatMessage, MessageContent, PlainText, text_of
from .exceptions import ClipAIError, SessionBusyError, SessionStateError
from .model_selector import ModelParameters, ModelSelector
from .state import SessionState, StateManager
from .transcript import Transcript

LOGGER = logging.getLogger(__name__)

PreferencesProvider = Callable[[], Preferences]


class Completer(Protocol):
    async def complete(
        self, messages: tuple[ChatMessage, ...], params: ModelParameters
    ) -> str: ...


class ConversationSession:
    """Own one transcript and serialize the requests made against it.

    A session is uninitialized until :meth:`start` (or :meth:`from_exchange`)
    creates its transcript. Only one request may be in flight at a time; a
    concurrent call is rejected with ``SessionBusyError``.
    """

    def __init__(
        self,
        selector: ModelSelector,
        client: Completer,
        preferences: PreferencesProvider,
    ) -> None:
        self._selector = selector
        self._client = client
        self._preferences = preferences
        self._transcript: Transcript | None = None
        self._state = StateManager()

    @classmethod
    def from_exchange(
        cls,
        user_content: MessageContent,
        assistant_text: str,
        selector: ModelSelector,
        client: Completer,
        preferences: PreferencesProvider,
    ) -> ConversationSession:
        """Build an active session that already holds one user/assistant exchange."""
        session = cls(selector, client, preferences)
        session.start(user_content)
        session._require_transcript().append_assistant(PlainText(assistant_text))
        return session

    @property
    def is_started(self) -> bool:
        return self._transcript is not None

    @property
    def state(self) -> SessionState:
        return self._state.state

    @property
    def awaiting_reply(self) -> bool:
        """True when the transcript ends with a user turn that has no reply yet."""
        return self._transcript is not None and self._transcript.last_role == "user"

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        if self._transcript is None:
            return ()
        return self._transcript.messages

    def start(self, first_user_content: MessageContent) -> None:
        """Create the transcript with its first user message."""
        if self._transcript is not None:
            raise SessionStateError("Session has already been started.")
        self._transcript = Transcript.single(first_user_content)
        self._state = StateManager(SessionState.IDLE)
        LOGGER.info("session.started", extra={"event": "session.started"})

    async def send_turn(self, user_content: MessageContent) -> str:
        """Append a user turn, request a reply, append and return it.

        On failure the user turn stays in the transcript, no assistant turn is
        added, and the error propagates. Retrying that turn is an explicit
        :meth:`complete_pending` call.
        """
        transcript = self._require_transcript()
        async with self._request_slot():
            if transcript.last_role == "user":
                raise SessionStateError(
                    "The last message has no reply yet; retry it before sending another."
                )
            transcript.append_user(user_content)
            return await self._request_reply(transcript)

    async def complete_pending(self) -> str:
        """Request a reply for a trailing user turn."""
        transcript = self._require_transcript()
        async with self._request_slot():
            if transcript.last_role != "user":
                raise SessionStateError("There is no user message awaiting a reply.")
            return await self._request_reply(transcript)

    def last_assistant_text(self) -> str:
        if self._transcript is None:
            return ""
        message = self._transcript.last_of("assistant")
        return text_of(message.content) if message is not None else ""

    def last_user_content(self) -> MessageContent | None:
        if self._transcript is None:
            return None
        message = self._transcript.last_of("user")
        return message.content if message is not None else None

    def export_json(self) -> str:
        return self._require_transcript().export_json()

    def _require_transcript(self) -> Transcript:
        if self._transcript is None:
            raise SessionStateError("Session has not been started.")
        return self._transcript

    def _request_slot(self) -> _RequestSlot:
        return _RequestSlot(self._state)

    async def _request_reply(self, transcript: Transcript) -> str:
        try:
            params = await self._selector.resolve(
                transcript.messages, self._preferences()
            )
            reply = await self._client.complete(transcript.messages, params)
        except ClipAIError as exc:
            LOGGER.warning(
                "session.turn.failed",
                extra={
                    "event": "session.turn.failed",
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                    "message_count": len(transcript),
                },
            )
            raise
        transcript.append_assistant(PlainText(reply))
        LOGGER.info(
            "session.turn.complete",
            extra={
                "event": "session.turn.complete",
                "model": params.model_name,
                "message_count": len(transcript),
            },
        )
        return reply


class _RequestSlot:
    """Async context that holds the session in AWAITING_REPLY for one request."""

    def __init__(self, state: StateManager) -> None:
        self._state = state

    async def __aenter__(self) -> None:
        entered = await self._state.transition_if(
            SessionState.IDLE, SessionState.AWAITING_REPLY
        )
        if not entered:
            raise SessionBusyError("A request for this session is already in flight.")

    async def __aexit__(self, *exc_info: object) -> None:
        await self._state.transition_to(SessionState.IDLE)
