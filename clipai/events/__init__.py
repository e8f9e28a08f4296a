"""Presentation-boundary events published by the core."""

from .bus import Event, EventBus
from .domain import (
    ACTION_FAILURE,
    ACTION_PROGRESS,
    ACTION_SUCCESS,
    MODEL_AUTO_SWITCHED,
    FailureEvent,
    ModelSwitchedEvent,
    ProgressEvent,
    SuccessEvent,
)

__all__ = [
    "ACTION_FAILURE",
    "ACTION_PROGRESS",
    "ACTION_SUCCESS",
    "MODEL_AUTO_SWITCHED",
    "Event",
    "EventBus",
    "FailureEvent",
    "ModelSwitchedEvent",
    "ProgressEvent",
    "SuccessEvent",
]
