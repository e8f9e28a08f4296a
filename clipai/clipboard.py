"""Read the system clipboard into an immutable snapshot."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from io import BytesIO
import logging
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from PIL import Image, ImageGrab
import pyperclip

from .content import DEFAULT_IMAGE_MIME, ClipboardSnapshot, ImageAsset
from .exceptions import AssetDecodeFailure

LOGGER = logging.getLogger(__name__)

TextReader = Callable[[], str | None]
ImageReader = Callable[[], Any]


def read_clipboard_text() -> str | None:
    """Return clipboard text, or None when no clipboard backend is usable."""
    try:
        return pyperclip.paste()
    except pyperclip.PyperclipException as exc:
        LOGGER.warning(
            "clipboard.text.read_failed",
            extra={"event": "clipboard.text.read_failed", "reason": str(exc)},
        )
        return None


def read_clipboard_image() -> Any:
    """Return Pillow's clipboard grab: an image, a list of file paths, or None."""
    try:
        return ImageGrab.grabclipboard()
    except (OSError, NotImplementedError, ValueError) as exc:
        LOGGER.debug(
            "clipboard.image.read_failed",
            extra={"event": "clipboard.image.read_failed", "reason": str(exc)},
        )
        return None


def _path_from_clipboard_entry(entry: str) -> Path:
    if entry.startswith("file://"):
        return Path(unquote(urlparse(entry).path))
    return Path(entry).expanduser()


def _mime_for(image: Image.Image) -> str:
    return Image.MIME.get(image.format or "", DEFAULT_IMAGE_MIME)


def _asset_from_bytes(payload: bytes) -> ImageAsset:
    if not payload:
        raise AssetDecodeFailure("Clipboard image is empty.")
    with Image.open(BytesIO(payload)) as image:
        image.verify()
        mime_type = _mime_for(image)
    return ImageAsset.from_bytes(payload, mime_type)


def _asset_from_image(image: Image.Image) -> ImageAsset:
    fmt = image.format or "PNG"
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return ImageAsset.from_bytes(buffer.getvalue(), Image.MIME.get(fmt, DEFAULT_IMAGE_MIME))


def decode_clipboard_image(raw: Any) -> ImageAsset | None:
    """Turn a raw clipboard image value into an asset.

    Accepts a Pillow image, raw bytes, a path or ``file://`` URL, or a list of
    those (only the first entry is used). Raises ``AssetDecodeFailure`` when
    the value cannot be read as an image.
    """
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        return decode_clipboard_image(raw[0]) if raw else None
    try:
        if isinstance(raw, Image.Image):
            return _asset_from_image(raw)
        if isinstance(raw, (bytes, bytearray)):
            return _asset_from_bytes(bytes(raw))
        if isinstance(raw, (str, Path)):
            path = _path_from_clipboard_entry(str(raw))
            return _asset_from_bytes(path.read_bytes())
    except AssetDecodeFailure:
        raise
    except (OSError, ValueError, SyntaxError) as exc:
        raise AssetDecodeFailure(f"Unable to decode clipboard image: {exc}") from exc
    raise AssetDecodeFailure(f"Unsupported clipboard image value {type(raw).__name__}.")


class ClipboardSnapshotter:
    """Capture clipboard text and at most one image as a ClipboardSnapshot.

    Image problems never block text: an undecodable image is logged and
    dropped, downgrading ``mixed`` to ``text`` and ``image`` to ``empty``.
    """

    def __init__(
        self,
        text_reader: TextReader = read_clipboard_text,
        image_reader: ImageReader = read_clipboard_image,
    ) -> None:
        self._read_text = text_reader
        self._read_image = image_reader

    async def capture(self) -> ClipboardSnapshot:
        """Read the clipboard off the event loop and classify the result."""
        return await asyncio.to_thread(self.capture_sync)

    def capture_sync(self) -> ClipboardSnapshot:
        text = self._read_text()
        images: list[ImageAsset] = []
        try:
            asset = decode_clipboard_image(self._read_image())
        except AssetDecodeFailure as exc:
            LOGGER.warning(
                "clipboard.image.decode_failed",
                extra={"event": "clipboard.image.decode_failed", "reason": str(exc)},
            )
        else:
            if asset is not None:
                images.append(asset)

        snapshot = ClipboardSnapshot.classify(text, images)
        LOGGER.debug(
            "clipboard.captured",
            extra={
                "event": "clipboard.captured",
                "kind": snapshot.kind,
                "chars": len(snapshot.body),
                "images": len(snapshot.images),
            },
        )
        return snapshot
