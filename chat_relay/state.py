"""Send-cycle state machine and lock-protected transitions."""

from __future__ import annotations

import asyncio
from enum import Enum


class ConversationState(str, Enum):
    """Finite state machine for the controller's send cycle."""

    IDLE = "IDLE"
    SENDING = "SENDING"


class StateManager:
    """Manage state transitions with async lock semantics."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._state = ConversationState.IDLE

    @property
    def state(self) -> ConversationState:
        """Return the current state without locking (for synchronous readers)."""
        return self._state

    async def transition_to(self, new_state: ConversationState) -> ConversationState:
        """Transition to a new state and return it."""
        async with self._lock:
            self._state = new_state
            return self._state

    async def transition_if(
        self,
        expected_state: ConversationState,
        new_state: ConversationState,
    ) -> bool:
        """Transition only when current state matches expected state."""
        async with self._lock:
            if self._state != expected_state:
                return False
            self._state = new_state
            return True
