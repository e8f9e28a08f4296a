"""Per-request model parameter resolution with vision auto-switching."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging

from .config import Preferences
from .content import ChatMessage, has_images
from .events import MODEL_AUTO_SWITCHED, EventBus, ModelSwitchedEvent

LOGGER = logging.getLogger(__name__)

VISION_MODELS: tuple[str, ...] = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4-vision-preview",
    "gpt-4-turbo-2024-04-09",
)
FALLBACK_VISION_MODEL = "gpt-4o"
VISION_MAX_TOKENS = 4096


@dataclass(frozen=True)
class ModelParameters:
    """Resolved request parameters; never persisted."""

    model_name: str
    max_output_tokens: int
    temperature: float

    def __post_init__(self) -> None:
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be positive.")


def is_vision_model(model: str) -> bool:
    """Return True when ``model`` names a known vision-capable variant."""
    lowered = model.strip().lower()
    return any(candidate in lowered for candidate in VISION_MODELS)


class ModelSelector:
    """Choose the effective model and token limit from message content."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self._bus = bus

    async def resolve(
        self, messages: Iterable[ChatMessage], preferences: Preferences
    ) -> ModelParameters:
        """Resolve parameters for the messages about to be sent.

        Image content forces a vision-capable model and caps the output
        tokens at ``VISION_MAX_TOKENS``. Nothing is cached between calls.
        """
        contains_images = any(has_images(message.content) for message in messages)
        model = preferences.model
        max_tokens = preferences.max_tokens

        if contains_images:
            if not is_vision_model(model):
                LOGGER.info(
                    "model.auto_switched",
                    extra={
                        "event": "model.auto_switched",
                        "requested_model": model,
                        "model": FALLBACK_VISION_MODEL,
                    },
                )
                if self._bus is not None:
                    await self._bus.publish(
                        MODEL_AUTO_SWITCHED,
                        ModelSwitchedEvent(
                            requested_model=model, model=FALLBACK_VISION_MODEL
                        ).payload(),
                        source="model_selector",
                    )
                model = FALLBACK_VISION_MODEL
            max_tokens = min(max_tokens, VISION_MAX_TOKENS)

        return ModelParameters(
            model_name=model,
            max_output_tokens=max_tokens,
            temperature=preferences.temperature,
        )
