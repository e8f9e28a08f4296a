"""Top-level package for clipai."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .clipboard import ClipboardSnapshotter
    from .completion import CompletionClient
    from .config import Preferences, ensure_config_dir, load_config, load_preferences
    from .content import ClipboardSnapshot, ImageAsset, compose
    from .exceptions import (
        ClipAIError,
        ConfigValidationError,
        InvalidResponseShape,
        PreconditionFailure,
        SessionBusyError,
        TransportFailure,
    )
    from .hotkeys import DEFAULT_HOTKEYS, HotKeyAction, load_hotkeys
    from .model_selector import ModelParameters, ModelSelector
    from .orchestrator import ActionOrchestrator, ActionOutcome
    from .session import ConversationSession
    from .transcript import Transcript

# Symbol -> submodule. Resolved lazily so importing the package does not pull
# in the clipboard or HTTP stacks.
_EXPORTS: dict[str, str] = {
    "ActionOrchestrator": "orchestrator",
    "ActionOutcome": "orchestrator",
    "ClipAIError": "exceptions",
    "ClipboardSnapshot": "content",
    "ClipboardSnapshotter": "clipboard",
    "CompletionClient": "completion",
    "ConfigValidationError": "exceptions",
    "ConversationSession": "session",
    "DEFAULT_HOTKEYS": "hotkeys",
    "HotKeyAction": "hotkeys",
    "ImageAsset": "content",
    "InvalidResponseShape": "exceptions",
    "ModelParameters": "model_selector",
    "ModelSelector": "model_selector",
    "PreconditionFailure": "exceptions",
    "Preferences": "config",
    "SessionBusyError": "exceptions",
    "Transcript": "transcript",
    "TransportFailure": "exceptions",
    "compose": "content",
    "ensure_config_dir": "config",
    "load_config": "config",
    "load_hotkeys": "hotkeys",
    "load_preferences": "config",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import exported symbols from their submodules."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(f".{module_name}", __name__)
    return getattr(module, name)
