"""Event names and payloads emitted towards the presentation layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

ACTION_PROGRESS = "action.progress"
ACTION_SUCCESS = "action.success"
ACTION_FAILURE = "action.failure"
MODEL_AUTO_SWITCHED = "model.auto_switched"


@dataclass
class ProgressEvent:
    title: str

    def payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SuccessEvent:
    title: str

    def payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FailureEvent:
    title: str
    message: str
    kind: str  # exception class name, e.g. "TransportFailure"

    def payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ModelSwitchedEvent:
    requested_model: str
    model: str

    def payload(self) -> dict[str, Any]:
        data = asdict(self)
        data["title"] = "Switched to Vision Model"
        data["message"] = f"Using {self.model} for image processing"
        return data
