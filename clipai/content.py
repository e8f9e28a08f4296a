"""Clipboard snapshots, multimodal message content, and content composition."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from .exceptions import AssetDecodeFailure

DEFAULT_IMAGE_MIME = "image/png"
IMAGE_DETAIL = "high"

Role = Literal["user", "assistant"]
SnapshotKind = Literal["empty", "text", "image", "mixed"]


@dataclass(frozen=True)
class ImageAsset:
    """Base64-encoded image payload read from the clipboard."""

    bytes_base64: str
    mime_type: str = DEFAULT_IMAGE_MIME

    def __post_init__(self) -> None:
        try:
            raw = base64.b64decode(self.bytes_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise AssetDecodeFailure(f"Image payload is not valid base64: {exc}") from exc
        if not raw:
            raise AssetDecodeFailure("Image payload is empty.")
        if not self.mime_type.strip():
            object.__setattr__(self, "mime_type", DEFAULT_IMAGE_MIME)

    @classmethod
    def from_bytes(cls, payload: bytes, mime_type: str | None = None) -> ImageAsset:
        """Encode raw image bytes into an asset."""
        return cls(
            bytes_base64=base64.b64encode(payload).decode("ascii"),
            mime_type=mime_type or DEFAULT_IMAGE_MIME,
        )

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.bytes_base64}"


@dataclass(frozen=True)
class ClipboardSnapshot:
    """One immutable read of the clipboard.

    ``kind`` tags the variant. ``text`` and ``mixed`` always carry a
    non-blank ``body``; ``image`` and ``mixed`` always carry at least one
    image. Use :meth:`classify` to build a snapshot from raw reads.
    """

    kind: SnapshotKind = "empty"
    body: str = ""
    images: tuple[ImageAsset, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "images", tuple(self.images))
        has_body = bool(self.body.strip())
        has_images = bool(self.images)
        expected: dict[str, tuple[bool, bool]] = {
            "empty": (False, False),
            "text": (True, False),
            "image": (False, True),
            "mixed": (True, True),
        }
        if self.kind not in expected:
            raise ValueError(f"Unknown snapshot kind {self.kind!r}.")
        if (has_body, has_images) != expected[self.kind]:
            raise ValueError(
                f"Snapshot of kind {self.kind!r} has body={has_body} images={has_images}."
            )

    @classmethod
    def empty(cls) -> ClipboardSnapshot:
        return cls()

    @classmethod
    def classify(
        cls, text: str | None, images: Iterable[ImageAsset] = ()
    ) -> ClipboardSnapshot:
        """Build the snapshot variant matching what was actually read."""
        body = (text or "").strip()
        assets = tuple(images)
        if assets and body:
            return cls(kind="mixed", body=body, images=assets)
        if assets:
            return cls(kind="image", images=assets)
        if body:
            return cls(kind="text", body=body)
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.kind == "empty"

    @property
    def text(self) -> str | None:
        return self.body if self.kind in ("text", "mixed") else None


@dataclass(frozen=True)
class TextPart:
    value: str


@dataclass(frozen=True)
class ImagePart:
    url: str
    detail: str = IMAGE_DETAIL


ContentPart = TextPart | ImagePart


@dataclass(frozen=True)
class PlainText:
    """Message content that is a single string."""

    text: str


@dataclass(frozen=True)
class PartList:
    """Message content made of ordered text and image parts."""

    parts: tuple[ContentPart, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(self.parts))


MessageContent = PlainText | PartList


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: MessageContent

    def to_wire(self) -> dict[str, Any]:
        return {"role": self.role, "content": content_to_wire(self.content)}


def canonicalize(parts: Sequence[ContentPart]) -> MessageContent:
    """Collapse a lone text part to plain text; keep everything else as a list."""
    if len(parts) == 1 and isinstance(parts[0], TextPart):
        return PlainText(parts[0].value)
    if not parts:
        return PlainText("")
    return PartList(tuple(parts))


def compose(prompt_template: str, snapshot: ClipboardSnapshot) -> MessageContent:
    """Merge a prompt template and a clipboard snapshot into message content.

    Template text comes first; clipboard text is appended to it after a blank
    line. Images follow in clipboard order. An empty template with an empty
    snapshot yields ``PlainText("")``.
    """
    parts: list[ContentPart] = []

    text_value = prompt_template if prompt_template.strip() else None
    clipboard_text = snapshot.text
    if clipboard_text:
        text_value = (
            clipboard_text if text_value is None else f"{text_value}\n\n{clipboard_text}"
        )
    if text_value is not None:
        parts.append(TextPart(text_value))

    for image in snapshot.images:
        parts.append(ImagePart(url=image.data_uri, detail=IMAGE_DETAIL))

    return canonicalize(parts)


def has_images(content: MessageContent) -> bool:
    return isinstance(content, PartList) and any(
        isinstance(part, ImagePart) for part in content.parts
    )


def image_count(content: MessageContent) -> int:
    if isinstance(content, PlainText):
        return 0
    return sum(1 for part in content.parts if isinstance(part, ImagePart))


def text_of(content: MessageContent, separator: str = " ") -> str:
    """Return the text portion of content, joining text parts with ``separator``."""
    if isinstance(content, PlainText):
        return content.text
    return separator.join(
        part.value for part in content.parts if isinstance(part, TextPart)
    )


def content_to_wire(content: MessageContent) -> str | list[dict[str, Any]]:
    """Serialize content into the chat-completions request shape."""
    if isinstance(content, PlainText):
        return content.text
    payload: list[dict[str, Any]] = []
    for part in content.parts:
        if isinstance(part, TextPart):
            payload.append({"type": "text", "text": part.value})
        else:
            payload.append(
                {"type": "image_url", "image_url": {"url": part.url, "detail": part.detail}}
            )
    return payload


def content_from_wire(payload: Any) -> MessageContent:
    """Parse a wire content value back into canonical message content."""
    if isinstance(payload, str):
        return PlainText(payload)
    if not isinstance(payload, list):
        raise ValueError("Message content must be a string or a list of parts.")

    parts: list[ContentPart] = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError("Content parts must be objects.")
        kind = item.get("type")
        if kind == "text" and isinstance(item.get("text"), str):
            parts.append(TextPart(item["text"]))
        elif kind == "image_url" and isinstance(item.get("image_url"), dict):
            image = item["image_url"]
            url = image.get("url")
            if not isinstance(url, str):
                raise ValueError("image_url parts require a string url.")
            parts.append(ImagePart(url=url, detail=str(image.get("detail", IMAGE_DETAIL))))
        else:
            raise ValueError(f"Unsupported content part {kind!r}.")
    return canonicalize(parts)
