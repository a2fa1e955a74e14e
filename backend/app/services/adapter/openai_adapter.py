"""
OpenAI and Azure OpenAI adapters, both backed by the official SDK.
"""
from typing import Any, AsyncIterator, Optional

import openai
from azure.core.exceptions import AzureError
from azure.core.pipeline.transport import AsyncHttpTransport
from azure.identity.aio import ManagedIdentityCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI, AsyncOpenAI

from app.core.config import AZURE_DEFAULT_SCOPE
from app.core.exceptions import AuthError, TransportError
from app.core.logging import get_logger
from app.services.adapter.base import ChatAdapter, ChatMessage, TokenStream

logger = get_logger(__name__)


class OpenAIAdapter(ChatAdapter):
    """Adapter for the OpenAI chat completions API."""

    provider_name = "openai"
    default_temperature = 0.3

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None):
        super().__init__(model)
        self.api_key = api_key
        self.base_url = base_url

    async def _build_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)

    async def _close_client(self, client: AsyncOpenAI) -> None:
        await client.close()

    async def open_stream(
        self,
        messages: list[ChatMessage],
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        """Start a streaming completion; SDK errors at this point fail the request."""
        client = await self._build_client()
        try:
            stream = await client.chat.completions.create(
                model=self.model,
                messages=[m.to_dict() for m in messages],
                temperature=self.default_temperature if temperature is None else temperature,
                stream=True,
            )
        except openai.APIError as e:
            await self._close_client(client)
            raise TransportError(f"{self.provider_name} upstream error: {e}") from e
        except BaseException:
            await self._close_client(client)
            raise

        return TokenStream(self._relay(stream), cleanup=lambda: self._release(client, stream))

    async def _relay(self, stream: Any) -> AsyncIterator[str]:
        async for chunk in stream:
            # Azure sends content-filter chunks with no choices
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            token = delta.content if delta is not None else None
            if token:
                yield token

    async def _release(self, client: AsyncOpenAI, stream: Any) -> None:
        try:
            await stream.close()
        finally:
            await self._close_client(client)


class AzureOpenAIAdapter(OpenAIAdapter):
    """
    Adapter for Azure OpenAI deployments.

    Authenticates with a managed identity when a client id is configured,
    otherwise with a static API key.
    """

    provider_name = "azure"
    default_temperature = 1.0

    def __init__(
        self,
        endpoint: str,
        deployment: str,
        api_version: str,
        api_key: Optional[str] = None,
        managed_identity_client_id: Optional[str] = None,
        scope: str = AZURE_DEFAULT_SCOPE,
        credential_transport: Optional[AsyncHttpTransport] = None,
    ):
        super().__init__(api_key=api_key or "", model=deployment)
        self.endpoint = endpoint.rstrip("/")
        self.deployment = deployment
        self.api_version = api_version
        self.managed_identity_client_id = managed_identity_client_id
        self.scope = scope
        self.credential_transport = credential_transport
        self._credential: Optional[ManagedIdentityCredential] = None

    def _build_credential(self) -> ManagedIdentityCredential:
        kwargs: dict[str, Any] = {"client_id": self.managed_identity_client_id}
        if self.credential_transport is not None:
            kwargs["transport"] = self.credential_transport
        return ManagedIdentityCredential(**kwargs)

    async def _build_client(self) -> AsyncAzureOpenAI:
        if not self.managed_identity_client_id:
            return AsyncAzureOpenAI(
                azure_endpoint=self.endpoint,
                azure_deployment=self.deployment,
                api_version=self.api_version,
                api_key=self.api_key,
            )

        credential = None
        try:
            credential = self._build_credential()
            token_provider = get_bearer_token_provider(credential, self.scope)
            # Acquire the first token now so auth failures are reported before streaming
            await token_provider()
        except (AzureError, ImportError, ValueError) as e:
            if credential is not None:
                await credential.close()
            logger.warning(
                "Managed identity token acquisition failed",
                provider=self.provider_name,
                scope=self.scope,
                error_type=type(e).__name__,
            )
            raise AuthError(f"Azure managed identity token acquisition failed: {e}") from e

        self._credential = credential
        return AsyncAzureOpenAI(
            azure_endpoint=self.endpoint,
            azure_deployment=self.deployment,
            api_version=self.api_version,
            azure_ad_token_provider=token_provider,
        )

    async def _close_client(self, client: AsyncOpenAI) -> None:
        try:
            await client.close()
        finally:
            if self._credential is not None:
                credential, self._credential = self._credential, None
                await credential.close()
