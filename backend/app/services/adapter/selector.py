"""
Provider selection.
"""
from enum import Enum
from typing import Any, Optional

from app.core.config import Settings


class Provider(str, Enum):
    """Supported chat backends."""
    OPENAI = "openai"
    AZURE = "azure"
    OLLAMA = "ollama"
    MOCK = "mock"


def parse_provider(name: Any) -> Optional[Provider]:
    """Map a provider name to ``Provider``, case-insensitively. None if unknown."""
    if not isinstance(name, str):
        return None
    try:
        return Provider(name.strip().lower())
    except ValueError:
        return None


def detect_provider(explicit: Optional[str], settings: Settings) -> Provider:
    """
    Choose the provider for a request.

    A recognized explicit name always wins. Otherwise Azure is used when
    fully configured, then OpenAI when a key is present, then the mock.
    Ollama is only reachable by name.
    """
    provider = parse_provider(explicit)
    if provider is not None:
        return provider
    if settings.azure_configured():
        return Provider.AZURE
    if settings.OPENAI_API_KEY:
        return Provider.OPENAI
    return Provider.MOCK
