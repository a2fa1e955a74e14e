"""
Chat adapter contract shared by every provider.
"""
from abc import ABC, abstractmethod
from typing import AsyncIterator, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel


Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """Chat message structure."""
    role: Role
    content: Optional[str] = ""

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


class ChatAdapter(ABC):
    """
    Abstract base class for chat provider adapters.

    ``open_stream`` does everything that can fail before the response is
    committed (credentials, connecting, upstream status) and hands back a
    lazy iterator of text deltas. Failures while iterating belong to the
    stream, not to the request.
    """

    provider_name = "unknown"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def open_stream(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        """Open the upstream stream and return its token iterator."""
        pass


class TokenStream:
    """
    Async token iterator with an attached cleanup step.

    The cleanup runs once: when the tokens run out, when iteration fails,
    or on ``aclose()``. ``aclose()`` releases the upstream even if the
    stream was never iterated, which a bare async generator cannot do.
    """

    def __init__(
        self,
        tokens: AsyncIterator[str],
        cleanup: Callable[[], Awaitable[None]],
    ):
        self._tokens = tokens
        self._cleanup = cleanup
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "TokenStream":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._tokens.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            aclose = getattr(self._tokens, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            await self._cleanup()
