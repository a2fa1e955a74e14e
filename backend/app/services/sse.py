"""
Server-Sent Events framing for token streams.

Wire format: one ``data: <token>`` event per token, then a single
``data: [DONE]`` or ``data: [ERROR] <message>`` sentinel.
"""
import re
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi.responses import StreamingResponse

from app.core.logging import get_logger

logger = get_logger(__name__)


SSE_HEADERS = {
    "Content-Type": "text/event-stream; charset=utf-8",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}

DONE_SENTINEL = "[DONE]"
ERROR_PREFIX = "[ERROR]"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def format_event(data: str) -> str:
    """Frame ``data`` as one event; embedded line breaks become extra data lines."""
    return "".join(f"data: {line}\n" for line in _LINE_BREAK.split(data)) + "\n"


def _error_text(error: Exception) -> str:
    return str(error) or type(error).__name__


async def _close(tokens: AsyncIterator[str]) -> None:
    aclose = getattr(tokens, "aclose", None)
    if aclose is not None:
        await aclose()


async def frame_sse(tokens: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Relay ``tokens`` as SSE events.

    Ends with ``[DONE]`` on success or ``[ERROR] <message>`` if the source
    raises, never both. The source is closed when framing stops for any
    reason, including the client going away.
    """
    try:
        try:
            async for token in tokens:
                yield format_event(token)
        except Exception as e:
            logger.warning("Stream ended with error sentinel", error_type=type(e).__name__)
            yield format_event(f"{ERROR_PREFIX} {_error_text(e)}")
            return
        yield format_event(DONE_SENTINEL)
    finally:
        await _close(tokens)


class SSEResponse(StreamingResponse):
    """
    Streaming response for SSE bodies with a release hook.

    ``release`` runs after the response finishes for any reason. It covers
    the case where the client leaves before the body is first read, when
    ``frame_sse`` never starts and so never closes its source.
    """

    def __init__(
        self,
        content: AsyncIterator[str],
        release: Optional[Callable[[], Awaitable[None]]] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("headers", SSE_HEADERS)
        super().__init__(content, **kwargs)
        self.release = release

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            if self.release is not None:
                await self.release()
