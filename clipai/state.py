"""Lock-protected request state for a conversation session."""

from __future__ import annotations

import asyncio
from enum import Enum


class SessionState(str, Enum):
    """Finite state machine for a session's request lifecycle."""

    UNINITIALIZED = "UNINITIALIZED"
    IDLE = "IDLE"
    AWAITING_REPLY = "AWAITING_REPLY"


class StateManager:
    """Manage state transitions with async lock semantics."""

    def __init__(self, initial: SessionState = SessionState.UNINITIALIZED) -> None:
        self._lock = asyncio.Lock()
        self._state = initial

    @property
    def state(self) -> SessionState:
        """Return the last observed state without waiting on the lock."""
        return self._state

    async def transition_to(self, new_state: SessionState) -> SessionState:
        """Transition to a new state and return it."""
        async with self._lock:
            self._state = new_state
            return self._state

    async def transition_if(
        self,
        expected_state: SessionState,
        new_state: SessionState,
    ) -> bool:
        """Transition only when current state matches expected state."""
        async with self._lock:
            if self._state != expected_state:
                return False
            self._state = new_state
            return True
