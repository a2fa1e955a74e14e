"""
Ollama adapter over raw HTTP.

``/api/chat`` streams newline-delimited JSON where each line carries the
full assistant text so far in ``message.content``; deltas are computed here.
"""
import json
import re
from typing import AsyncIterator, Optional

import httpx

from app.core.exceptions import TransportError
from app.core.logging import get_logger
from app.services.adapter.base import ChatAdapter, ChatMessage, TokenStream

logger = get_logger(__name__)


class LineBuffer:
    """Reassembles complete lines from arbitrarily split text chunks."""

    _SEPARATOR = re.compile(r"\n+")

    def __init__(self):
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        """Add a chunk and return the lines it completed."""
        self._pending += text
        *lines, self._pending = self._SEPARATOR.split(self._pending)
        return [line for line in lines if line.strip()]

    def flush(self) -> list[str]:
        """Return whatever partial line is left once the input has ended."""
        rest, self._pending = self._pending, ""
        return [rest] if rest.strip() else []


class CumulativeDelta:
    """Turns a series of cumulative strings into incremental deltas."""

    def __init__(self):
        self.previous = ""

    def push(self, full: str) -> str:
        if full.startswith(self.previous):
            delta = full[len(self.previous):]
        else:
            delta = full
        self.previous = full
        return delta


def parse_chat_line(line: str) -> tuple[Optional[str], bool]:
    """
    Decode one stream line into ``(content, done)``.

    Lines that are not JSON objects yield ``(None, False)``.
    """
    try:
        obj = json.loads(line)
    except json.JSONDecodeError:
        return None, False
    if not isinstance(obj, dict):
        return None, False

    message = obj.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        content = None
    return content, bool(obj.get("done"))


class OllamaAdapter(ChatAdapter):
    """Adapter for a local Ollama server."""

    provider_name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(model)
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    async def open_stream(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        """POST the chat and check the upstream status before streaming."""
        payload = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "stream": True,
        }
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        # No timeout: generation can legitimately stall between tokens
        client = httpx.AsyncClient(timeout=None, transport=self._transport)
        request = client.build_request("POST", self.chat_url, json=payload)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise TransportError(f"ollama upstream unreachable: {e}") from e

        if not response.is_success:
            await response.aclose()
            await client.aclose()
            logger.warning(
                "Ollama upstream rejected request",
                status_code=response.status_code,
                model=self.model,
            )
            raise TransportError(f"ollama upstream {response.status_code}")

        return TokenStream(self._relay(response), cleanup=lambda: self._release(client, response))

    async def _lines(self, response: httpx.Response) -> AsyncIterator[str]:
        buffer = LineBuffer()
        async for text in response.aiter_text():
            for line in buffer.feed(text):
                yield line
        for line in buffer.flush():
            yield line

    async def _relay(self, response: httpx.Response) -> AsyncIterator[str]:
        differ = CumulativeDelta()
        lines = self._lines(response)
        try:
            async for line in lines:
                content, done = parse_chat_line(line)
                if content:
                    delta = differ.push(content)
                    if delta:
                        yield delta
                if done:
                    return
        finally:
            await lines.aclose()

    async def _release(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        try:
            await response.aclose()
        finally:
            await client.aclose()
