"""Tests for the SDK-backed OpenAI and Azure adapters, without network."""

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest
from azure.core.exceptions import ClientAuthenticationError

from app.core.exceptions import AuthError, TransportError
from app.services.adapter import ChatMessage
from app.services.adapter import openai_adapter
from app.services.adapter.openai_adapter import AzureOpenAIAdapter, OpenAIAdapter


MESSAGES = [ChatMessage(role="user", content="Any flights to Lisbon?")]


def _chunk(content=None, with_choice=True):
    choices = [SimpleNamespace(delta=SimpleNamespace(content=content))] if with_choice else []
    return SimpleNamespace(choices=choices)


class FakeStream:
    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration

    async def close(self):
        self.closed = True


class FakeClient:
    def __init__(self, stream=None, error=None):
        self.calls = []
        self.closed = False
        self._stream = stream
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._stream

    async def close(self):
        self.closed = True


def _use_client(monkeypatch, adapter, client):
    async def build():
        return client
    monkeypatch.setattr(adapter, "_build_client", build)


async def _collect(adapter, temperature=None):
    tokens = await adapter.open_stream(MESSAGES, temperature)
    return [token async for token in tokens]


def test_deltas_are_relayed_in_order(monkeypatch) -> None:
    stream = FakeStream([
        _chunk(with_choice=False),
        _chunk("Yes"),
        _chunk(None),
        _chunk(""),
        _chunk(", two"),
    ])
    client = FakeClient(stream=stream)
    adapter = OpenAIAdapter(api_key="sk-test", model="gpt-4o-mini")
    _use_client(monkeypatch, adapter, client)

    assert asyncio.run(_collect(adapter)) == ["Yes", ", two"]
    assert client.calls[0] == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "user", "content": "Any flights to Lisbon?"}],
        "temperature": 0.3,
        "stream": True,
    }
    assert stream.closed and client.closed


def test_request_temperature_overrides_default(monkeypatch) -> None:
    client = FakeClient(stream=FakeStream([]))
    adapter = OpenAIAdapter(api_key="sk-test", model="gpt-4o-mini")
    _use_client(monkeypatch, adapter, client)

    asyncio.run(_collect(adapter, temperature=0.9))

    assert client.calls[0]["temperature"] == 0.9


def test_api_error_before_streaming_is_a_transport_error(monkeypatch) -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    client = FakeClient(error=error)
    adapter = OpenAIAdapter(api_key="sk-test", model="gpt-4o-mini")
    _use_client(monkeypatch, adapter, client)

    with pytest.raises(TransportError, match="openai upstream error"):
        asyncio.run(adapter.open_stream(MESSAGES))
    assert client.closed


def test_error_mid_stream_propagates_after_tokens(monkeypatch) -> None:
    stream = FakeStream([_chunk("Par")], error=RuntimeError("connection reset"))
    client = FakeClient(stream=stream)
    adapter = OpenAIAdapter(api_key="sk-test", model="gpt-4o-mini")
    _use_client(monkeypatch, adapter, client)

    received = []

    async def run():
        tokens = await adapter.open_stream(MESSAGES)
        async for token in tokens:
            received.append(token)

    with pytest.raises(RuntimeError, match="connection reset"):
        asyncio.run(run())
    assert received == ["Par"]
    assert stream.closed and client.closed


def test_azure_defaults() -> None:
    adapter = AzureOpenAIAdapter(
        endpoint="https://example.openai.azure.com/",
        deployment="gpt-4o",
        api_version="2024-06-01",
        api_key="azure-key",
    )

    assert adapter.provider_name == "azure"
    assert adapter.model == "gpt-4o"
    assert adapter.endpoint == "https://example.openai.azure.com"
    assert adapter.default_temperature == 1.0


def test_azure_key_auth_builds_azure_client() -> None:
    adapter = AzureOpenAIAdapter(
        endpoint="https://example.openai.azure.com",
        deployment="gpt-4o",
        api_version="2024-06-01",
        api_key="azure-key",
    )

    async def build_and_close():
        client = await adapter._build_client()
        await adapter._close_client(client)
        return client

    assert isinstance(asyncio.run(build_and_close()), openai.AsyncAzureOpenAI)


def test_managed_identity_failure_is_an_auth_error(monkeypatch) -> None:
    credentials = []

    class FakeCredential:
        def __init__(self, client_id):
            self.client_id = client_id
            self.closed = False
            credentials.append(self)

        async def close(self):
            self.closed = True

    def fake_token_provider(credential, scope):
        async def provide():
            raise ClientAuthenticationError(message="no identity endpoint")
        return provide

    monkeypatch.setattr(openai_adapter, "ManagedIdentityCredential", FakeCredential)
    monkeypatch.setattr(openai_adapter, "get_bearer_token_provider", fake_token_provider)

    adapter = AzureOpenAIAdapter(
        endpoint="https://example.openai.azure.com",
        deployment="gpt-4o",
        api_version="2024-06-01",
        managed_identity_client_id="client-id",
    )

    with pytest.raises(AuthError, match="no identity endpoint"):
        asyncio.run(adapter.open_stream(MESSAGES))
    assert credentials[0].client_id == "client-id"
    assert credentials[0].closed


def test_managed_identity_token_is_supplied_as_provider(monkeypatch) -> None:
    requested_scopes = []

    class FakeCredential:
        def __init__(self, client_id):
            self.closed = False

        async def close(self):
            self.closed = True

    def fake_token_provider(credential, scope):
        requested_scopes.append(scope)

        async def provide():
            return "bearer-token"
        return provide

    monkeypatch.setattr(openai_adapter, "ManagedIdentityCredential", FakeCredential)
    monkeypatch.setattr(openai_adapter, "get_bearer_token_provider", fake_token_provider)

    adapter = AzureOpenAIAdapter(
        endpoint="https://example.openai.azure.com",
        deployment="gpt-4o",
        api_version="2024-06-01",
        managed_identity_client_id="client-id",
        scope="https://cognitiveservices.azure.com/.default",
    )

    async def build_and_close():
        client = await adapter._build_client()
        credential = adapter._credential
        await adapter._close_client(client)
        return client, credential

    client, credential = asyncio.run(build_and_close())

    assert isinstance(client, openai.AsyncAzureOpenAI)
    assert requested_scopes == ["https://cognitiveservices.azure.com/.default"]
    assert credential.closed


def test_credential_setup_failure_is_an_auth_error(monkeypatch) -> None:
    def broken_credential(**kwargs):
        raise ImportError("aiohttp package is not installed")

    monkeypatch.setattr(openai_adapter, "ManagedIdentityCredential", broken_credential)

    adapter = AzureOpenAIAdapter(
        endpoint="https://example.openai.azure.com",
        deployment="gpt-4o",
        api_version="2024-06-01",
        managed_identity_client_id="client-id",
    )

    with pytest.raises(AuthError, match="aiohttp package is not installed"):
        asyncio.run(adapter.open_stream(MESSAGES))


def test_stream_closed_without_reading_releases_client(monkeypatch) -> None:
    stream = FakeStream([_chunk("unused")])
    client = FakeClient(stream=stream)
    adapter = OpenAIAdapter(api_key="sk-test", model="gpt-4o-mini")
    _use_client(monkeypatch, adapter, client)

    async def open_then_close():
        tokens = await adapter.open_stream(MESSAGES)
        await tokens.aclose()
        await tokens.aclose()

    asyncio.run(open_then_close())

    assert stream.closed and client.closed
