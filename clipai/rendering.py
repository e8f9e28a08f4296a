"""Plain-text and markdown projections of snapshots and transcripts."""

from __future__ import annotations

from collections.abc import Iterable

from .content import ChatMessage, ClipboardSnapshot, MessageContent, image_count, text_of

PREVIEW_LIMIT = 100
IMAGE_CHAR_ESTIMATE = 1000

ROLE_HEADINGS = {"user": "🧑‍💻 You", "assistant": "🤖 Assistant"}


def _image_label(count: int) -> str:
    return f"[{count} Image{'s' if count > 1 else ''}]"


def summarize_content(content: MessageContent) -> str:
    """Text of a message with an ``[N Images]`` prefix when images are attached."""
    text = text_of(content)
    count = image_count(content)
    return f"{_image_label(count)} {text}" if count > 0 else text


def conversation_markdown(messages: Iterable[ChatMessage]) -> str:
    return "\n\n---\n\n".join(
        f"## {ROLE_HEADINGS[message.role]}\n\n{summarize_content(message.content)}"
        for message in messages
    )


def conversation_text(messages: Iterable[ChatMessage]) -> str:
    """Flatten a conversation into ``role: text`` blocks for copying."""
    return "\n\n".join(
        f"{message.role}: {summarize_content(message.content)}" for message in messages
    )


def result_markdown(title: str, result: str) -> str:
    return f"# {title}\n\n{result}"


def result_stats(result: str) -> dict[str, int]:
    return {"characters": len(result), "words": len(result.split(" "))}


def snapshot_preview(snapshot: ClipboardSnapshot) -> str:
    parts: list[str] = []
    if snapshot.text:
        body = snapshot.text
        parts.append(
            f"{body[:PREVIEW_LIMIT]}..." if len(body) > PREVIEW_LIMIT else body
        )
    if snapshot.images:
        count = len(snapshot.images)
        parts.append(f"[{count} image{'s' if count > 1 else ''}]")
    return " ".join(parts) if parts else "No content in clipboard"


def snapshot_char_estimate(snapshot: ClipboardSnapshot) -> int:
    """Rough size of a snapshot, counting each image as a fixed number of chars."""
    return len(snapshot.body) + len(snapshot.images) * IMAGE_CHAR_ESTIMATE
