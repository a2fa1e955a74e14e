"""
Offline stand-in used when no provider credentials are configured.
"""
import asyncio
from typing import AsyncIterator

from app.services.adapter.base import ChatAdapter, ChatMessage


MOCK_APOLOGY = "Sorry, I can't handle that request at the moment, check back soon."
MAX_ECHO_LENGTH = 120


def build_mock_reply(messages: list[ChatMessage]) -> str:
    """Canned reply quoting the most recent user message."""
    last_user = next(
        (m.content for m in reversed(messages) if m.role == "user" and m.content),
        None,
    )
    if last_user is None:
        return MOCK_APOLOGY
    if len(last_user) > MAX_ECHO_LENGTH:
        last_user = last_user[:MAX_ECHO_LENGTH] + "..."
    return f'You said: "{last_user}". {MOCK_APOLOGY}'


class MockAdapter(ChatAdapter):
    """Streams a deterministic reply one character at a time."""

    provider_name = "mock"

    def __init__(self, model: str = "mock", delay_ms: int = 15):
        super().__init__(model)
        self.delay = max(delay_ms, 0) / 1000

    async def open_stream(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        return self._emit(build_mock_reply(messages))

    async def _emit(self, reply: str) -> AsyncIterator[str]:
        for index, char in enumerate(reply):
            if index and self.delay:
                await asyncio.sleep(self.delay)
            yield char
