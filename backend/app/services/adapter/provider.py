"""
Chat Provider Adapter factory.

Maps a ``Provider`` tag to the adapter for that backend, resolving its
configuration from a ``Settings`` instance built for the current request.
"""
from typing import Callable, Optional

from app.core.config import Settings
from app.core.exceptions import ConfigurationError
from app.core.logging import get_logger
from app.services.adapter.base import ChatAdapter
from app.services.adapter.mock_adapter import MockAdapter
from app.services.adapter.ollama_adapter import OllamaAdapter
from app.services.adapter.openai_adapter import AzureOpenAIAdapter, OpenAIAdapter
from app.services.adapter.selector import Provider

logger = get_logger(__name__)


# Default models when neither the request nor the environment names one
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OLLAMA_MODEL = "gpt-oss:20b"


def _build_openai(settings: Settings, model: Optional[str]) -> ChatAdapter:
    if not settings.OPENAI_API_KEY:
        raise ConfigurationError("OPENAI_API_KEY missing")
    return OpenAIAdapter(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.OPENAI_MODEL or DEFAULT_OPENAI_MODEL,
        base_url=settings.OPENAI_BASE_URL,
    )


def _build_azure(settings: Settings, model: Optional[str]) -> ChatAdapter:
    deployment = model or settings.AZURE_OPENAI_DEPLOYMENT
    missing = settings.missing_azure_settings(deployment)
    if missing:
        raise ConfigurationError(f"Azure config missing (need {', '.join(missing)})")

    client_id = settings.AZURE_OPENAI_MANAGED_IDENTITY_CLIENT_ID
    if not client_id and not settings.azure_api_key:
        raise ConfigurationError(
            "Azure auth missing (need AZURE_OPENAI_API_KEY or "
            "AZURE_OPENAI_MANAGED_IDENTITY_CLIENT_ID)"
        )

    return AzureOpenAIAdapter(
        endpoint=settings.AZURE_OPENAI_ENDPOINT,
        deployment=deployment,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        api_key=settings.azure_api_key,
        managed_identity_client_id=client_id,
        scope=settings.AZURE_OPENAI_SCOPE,
    )


def _build_ollama(settings: Settings, model: Optional[str]) -> ChatAdapter:
    return OllamaAdapter(
        base_url=settings.OLLAMA_BASE_URL,
        model=model or settings.OLLAMA_MODEL or settings.OPENAI_MODEL or DEFAULT_OLLAMA_MODEL,
    )


def _build_mock(settings: Settings, model: Optional[str]) -> ChatAdapter:
    return MockAdapter(model=model or "mock", delay_ms=settings.MOCK_STREAM_DELAY_MS)


ADAPTER_BUILDERS: dict[Provider, Callable[[Settings, Optional[str]], ChatAdapter]] = {
    Provider.OPENAI: _build_openai,
    Provider.AZURE: _build_azure,
    Provider.OLLAMA: _build_ollama,
    Provider.MOCK: _build_mock,
}


def get_chat_adapter(
    provider: Provider,
    settings: Settings,
    model: Optional[str] = None,
) -> ChatAdapter:
    """
    Build the adapter for ``provider``.

    ``model`` is the per-request override (the deployment name for Azure).

    Raises:
        ConfigurationError: required settings or credentials are missing.
    """
    adapter = ADAPTER_BUILDERS[provider](settings, model)

    logger.info(
        "Initializing chat adapter",
        provider=provider.value,
        model=adapter.model,
    )
    return adapter
