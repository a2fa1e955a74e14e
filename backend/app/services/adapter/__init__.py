"""
Chat Adapter module - Provider abstraction layer.

Supports multiple chat providers with streaming output:
- OpenAI (official SDK)
- Azure OpenAI (API key or managed identity)
- Ollama (raw HTTP, newline-delimited JSON)
- Mock (offline, deterministic)
"""
from app.services.adapter.base import ChatAdapter, ChatMessage, TokenStream
from app.services.adapter.messages import sanitize_messages
from app.services.adapter.provider import get_chat_adapter
from app.services.adapter.selector import Provider, detect_provider, parse_provider

__all__ = [
    "ChatAdapter",
    "ChatMessage",
    "Provider",
    "TokenStream",
    "detect_provider",
    "get_chat_adapter",
    "parse_provider",
    "sanitize_messages",
]
