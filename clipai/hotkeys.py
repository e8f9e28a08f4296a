"""Built-in hotkey actions and loading of user overrides."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

LOGGER = logging.getLogger(__name__)

CASUAL_PERSONA = """
You write replies on behalf of the user. Match their voice: witty, a little
sarcastic, honest, quick to banter and often self-deprecating, but grounded.
Switch tone based on who the message is from:

1. Group: Friends
Tone: Witty, sarcastic, light-hearted, meme-worthy
Response Style: Short bursts, casual slang, inside jokes
Personality: Chill but sharp; often ironic or exaggerated; roasts without malice

2. Group: Family
Tone: Caring, teasing, slightly protective, emotionally available
Response Style: Slightly longer messages, emojis, supportive tone
Personality: Responsible and warm while still joking around

3. Group: Close circle
Tone: Reflective, balanced, grounded advice
Response Style: Calm, to the point with occasional humor
Personality: Mentor-like, helpful, shares learnings

4. Group: Professional setup (general)
Tone: Crisp, minimal, solution-focused. Use logical progression. Slight informality allowed.

Note: For very formal contexts (someone new, a client) use a professional tone.
Tone: Polite, articulate, friendly, mildly assertive. Express gratitude. Add light
casualness when needed, but remain professional.

5. Generic handling guidelines (for all groups):
When in doubt: Use humor or deflect with a witty line.
When a serious topic arises: Empathize briefly, then bring calm logic or a subtle joke.
When roasted: Accept with flair, turn it back with sarcasm.
On achievements: Humblebrag or self-roast before appreciating others.
On emotional stuff: Brief comfort plus comic relief.

Summary:
Someone who jokes a lot but observes deeply, hides seriousness in sarcasm, keeps
the group energy fun, and bonds through playful roasting and genuine support.
"""


class HotKeyAction(BaseModel):
    """A named, pre-templated single-turn request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    subtitle: str = ""
    prompt_template: str = Field(alias="prompt")
    icon: str = ""

    @field_validator("id", "title", mode="before")
    @classmethod
    def _validate_non_empty_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized

    @field_validator("prompt_template", mode="before")
    @classmethod
    def _validate_prompt(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("prompt must be a string.")
        return value


DEFAULT_HOTKEYS: tuple[HotKeyAction, ...] = (
    HotKeyAction(
        id="professional-reply",
        title="Professional Reply",
        subtitle="Generate a professional reply",
        prompt=(
            "Generate a professional and concise reply to this message and match "
            "the tone of the conversation, (Just provide the response):"
        ),
        icon="reply",
    ),
    HotKeyAction(
        id="casual-reply",
        title="Casual Reply",
        subtitle="Generate a casual reply",
        prompt=CASUAL_PERSONA,
        icon="reply",
    ),
    HotKeyAction(
        id="email",
        title="Email",
        subtitle="Create an email",
        prompt="Create an email with this subject and body:",
        icon="envelope",
    ),
    HotKeyAction(
        id="summarize",
        title="Summarize",
        subtitle="Create a brief summary",
        prompt="Summarize this text in a clear and concise manner:",
        icon="document",
    ),
    HotKeyAction(
        id="explain",
        title="Explain",
        subtitle="Explain in simple terms",
        prompt="Explain this text in simple, easy-to-understand terms:",
        icon="question-mark",
    ),
    HotKeyAction(
        id="improve",
        title="Improve Writing",
        subtitle="Enhance grammar and style",
        prompt="Improve the grammar, style, and clarity of this text:",
        icon="pencil",
    ),
)


def load_hotkeys(raw_json: str | None) -> list[HotKeyAction]:
    """Parse a JSON array of hotkeys, falling back to the built-in set.

    Blank input means "no override". Malformed JSON, a non-list payload,
    invalid entries, or duplicate ids are logged and the defaults returned.
    """
    if not raw_json or not raw_json.strip():
        return list(DEFAULT_HOTKEYS)

    try:
        payload = json.loads(raw_json)
        if not isinstance(payload, list):
            raise ValueError("hotkeys JSON must be an array.")
        hotkeys = [HotKeyAction.model_validate(item) for item in payload]
        ids = [hotkey.id for hotkey in hotkeys]
        if len(ids) != len(set(ids)):
            raise ValueError("hotkey ids must be unique.")
    except (ValueError, ValidationError) as exc:
        LOGGER.warning(
            "hotkeys.load.failed",
            extra={"event": "hotkeys.load.failed", "reason": str(exc)},
        )
        return list(DEFAULT_HOTKEYS)

    return hotkeys


def find_hotkey(hotkeys: list[HotKeyAction], hotkey_id: str) -> HotKeyAction | None:
    normalized = hotkey_id.strip()
    for hotkey in hotkeys:
        if hotkey.id == normalized:
            return hotkey
    return None


def hotkeys_to_json(hotkeys: list[HotKeyAction]) -> str:
    """Serialize hotkeys in the same shape ``load_hotkeys`` accepts."""
    return json.dumps(
        [hotkey.model_dump(by_alias=True) for hotkey in hotkeys],
        ensure_ascii=False,
        indent=2,
    )
