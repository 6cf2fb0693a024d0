"""Tests for lock-protected send-cycle state transitions."""

from __future__ import annotations

import asyncio
import unittest

from chat_relay.state import ConversationState, StateManager


class StateManagerTests(unittest.IsolatedAsyncioTestCase):
    """Validate the busy flag state machine."""

    async def test_transition_to_sets_state(self) -> None:
        manager = StateManager()
        self.assertEqual(manager.state, ConversationState.IDLE)
        await manager.transition_to(ConversationState.SENDING)
        self.assertEqual(manager.state, ConversationState.SENDING)
        await manager.transition_to(ConversationState.IDLE)
        self.assertEqual(manager.state, ConversationState.IDLE)

    async def test_transition_if_enforces_expected_state(self) -> None:
        manager = StateManager()
        changed = await manager.transition_if(
            ConversationState.SENDING, ConversationState.IDLE
        )
        self.assertFalse(changed)
        self.assertEqual(manager.state, ConversationState.IDLE)

        changed = await manager.transition_if(
            ConversationState.IDLE, ConversationState.SENDING
        )
        self.assertTrue(changed)
        self.assertEqual(manager.state, ConversationState.SENDING)

    async def test_lock_prevents_double_send_entry(self) -> None:
        manager = StateManager()

        async def try_enter_sending() -> bool:
            await asyncio.sleep(0)
            return await manager.transition_if(
                ConversationState.IDLE, ConversationState.SENDING
            )

        results = await asyncio.gather(*(try_enter_sending() for _ in range(10)))
        self.assertEqual(sum(1 for result in results if result), 1)
        self.assertEqual(manager.state, ConversationState.SENDING)


if __name__ == "__main__":
    unittest.main()
