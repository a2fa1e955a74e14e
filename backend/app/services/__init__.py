"""
Services module - Application business logic layer.

Modules:
- adapter: Chat provider abstraction layer
- sse: Server-Sent Events framing for token streams
"""
from app.services.adapter import Provider, detect_provider, get_chat_adapter
from app.services.sse import frame_sse

__all__ = [
    "Provider",
    "detect_provider",
    "frame_sse",
    "get_chat_adapter",
]
