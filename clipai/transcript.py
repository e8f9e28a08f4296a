"""Append-only conversation transcript with strict role alternation."""

from __future__ import annotations

from collections.abc import Iterable
import json
from typing import Any

from .content import ChatMessage, MessageContent, Role, has_images
from .exceptions import TranscriptInvariantError


class Transcript:
    """Ordered record of conversation turns.

    The first message is always ``user`` and no two consecutive messages share
    a role. Messages are never removed or replaced once appended.
    """

    def __init__(self, messages: Iterable[ChatMessage] = ()) -> None:
        self._messages: list[ChatMessage] = []
        for message in messages:
            self._append(message)

    @classmethod
    def single(cls, content: MessageContent) -> Transcript:
        """Build a one-turn transcript holding a single user message."""
        return cls([ChatMessage(role="user", content=content)])

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Return an immutable view of all messages."""
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    @property
    def last_role(self) -> Role | None:
        return self._messages[-1].role if self._messages else None

    def expected_role(self) -> Role:
        """Return the role the next appended message must carry."""
        return "assistant" if self.last_role == "user" else "user"

    def append_user(self, content: MessageContent) -> ChatMessage:
        return self._append(ChatMessage(role="user", content=content))

    def append_assistant(self, content: MessageContent) -> ChatMessage:
        return self._append(ChatMessage(role="assistant", content=content))

    def _append(self, message: ChatMessage) -> ChatMessage:
        expected = self.expected_role()
        if message.role != expected:
            raise TranscriptInvariantError(
                f"Expected a {expected!r} message after {self.last_role!r}, "
                f"got {message.role!r}."
            )
        self._messages.append(message)
        return message

    def last_of(self, role: Role) -> ChatMessage | None:
        for message in reversed(self._messages):
            if message.role == role:
                return message
        return None

    def has_images(self) -> bool:
        return any(has_images(message.content) for message in self._messages)

    def to_wire(self) -> list[dict[str, Any]]:
        """Serialize for the chat-completions ``messages`` field."""
        return [message.to_wire() for message in self._messages]

    def export_json(self) -> str:
        """Export history using stable list and field ordering."""
        return json.dumps(
            self.to_wire(), ensure_ascii=False, separators=(",", ":"), sort_keys=False
        )
