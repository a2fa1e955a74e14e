"""
Conversation clean-up applied before any provider sees the messages.
"""
from app.services.adapter.base import ChatMessage


def sanitize_messages(messages: list[ChatMessage]) -> list[ChatMessage]:
    """
    Drop turns whose content is blank and trim the rest.

    Order and roles are preserved. Returns an empty list when nothing is
    left; rejecting that is up to the caller.
    """
    cleaned = []
    for message in messages:
        content = (message.content or "").strip()
        if content:
            cleaned.append(ChatMessage(role=message.role, content=content))
    return cleaned
