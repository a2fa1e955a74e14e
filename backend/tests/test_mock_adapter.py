"""Tests for the offline mock provider."""

import asyncio

from app.services.adapter import ChatMessage
from app.services.adapter.mock_adapter import MOCK_APOLOGY, MockAdapter, build_mock_reply
from app.services.sse import frame_sse


HISTORY = [
    ChatMessage(role="system", content="You are an airline assistant."),
    ChatMessage(role="user", content="hello"),
]


async def _collect(adapter, messages):
    tokens = await adapter.open_stream(messages)
    return [token async for token in tokens]


def test_reply_quotes_last_user_message() -> None:
    reply = build_mock_reply(HISTORY + [
        ChatMessage(role="assistant", content="Hi!"),
        ChatMessage(role="user", content="change my seat"),
    ])

    assert '"change my seat"' in reply
    assert reply.endswith(MOCK_APOLOGY)


def test_reply_is_deterministic() -> None:
    assert build_mock_reply(HISTORY) == build_mock_reply(HISTORY)


def test_reply_without_user_message_is_plain_apology() -> None:
    assert build_mock_reply([ChatMessage(role="system", content="x")]) == MOCK_APOLOGY


def test_long_input_is_shortened() -> None:
    reply = build_mock_reply([ChatMessage(role="user", content="x" * 500)])

    assert "x" * 120 + "..." in reply
    assert "x" * 121 not in reply


def test_stream_is_one_character_per_token() -> None:
    tokens = asyncio.run(_collect(MockAdapter(delay_ms=0), HISTORY))

    assert all(len(token) == 1 for token in tokens)
    assert "".join(tokens) == build_mock_reply(HISTORY)


def test_framed_stream_ends_with_done() -> None:
    async def run():
        tokens = await MockAdapter(delay_ms=0).open_stream(HISTORY)
        return [frame async for frame in frame_sse(tokens)]

    frames = asyncio.run(run())

    assert frames[-1] == "data: [DONE]\n\n"
    assert "".join(frame[len("data: "):-2] for frame in frames[:-1]) == build_mock_reply(HISTORY)
