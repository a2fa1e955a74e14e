"""
Chat proxy API endpoint.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field, ValidationError, field_validator

from app.core.config import Settings, get_settings
from app.core.exceptions import ChatProxyError, InputError, TransportError
from app.core.logging import AIDebugLogger, get_logger, log_ai_error, log_ai_request
from app.services.adapter import (
    ChatMessage,
    detect_provider,
    get_chat_adapter,
    parse_provider,
    sanitize_messages,
)
from app.services.sse import SSEResponse, frame_sse

logger = get_logger(__name__)
debug_logger = AIDebugLogger(logger)
router = APIRouter()

MAX_MESSAGES = 64


# ========================================
# Request Schemas
# ========================================

class ChatRequest(BaseModel):
    """Chat proxy request body."""
    messages: list[ChatMessage] = Field(..., min_length=1, max_length=MAX_MESSAGES)
    provider: Optional[str] = Field(default=None, description="openai, azure, ollama or mock")
    model: Optional[str] = Field(default=None, description="Model or Azure deployment override")
    temperature: Optional[float] = None

    @field_validator("provider", "model")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"invalid {location or 'request'}: {first.get('msg', 'validation failed')}"


def parse_chat_request(payload: Any) -> ChatRequest:
    """
    Validate a decoded JSON body.

    Raises:
        InputError: the body does not describe a usable chat request.
    """
    messages = payload.get("messages") if isinstance(payload, dict) else None
    if not isinstance(messages, list) or not messages:
        raise InputError("messages required")
    if len(messages) > MAX_MESSAGES:
        raise InputError(f"too many messages (max {MAX_MESSAGES})")

    try:
        chat_request = ChatRequest.model_validate(payload)
    except ValidationError as e:
        raise InputError(_describe_validation_error(e)) from e

    if chat_request.provider and parse_provider(chat_request.provider) is None:
        raise InputError(f"unknown provider: {chat_request.provider}")
    return chat_request


# ========================================
# API Endpoints
# ========================================

@router.post("")
async def chat(
    request: Request,
    settings: Settings = Depends(get_settings),
):
    """
    Forward a conversation to the selected provider.

    Returns a Server-Sent Events stream. Problems found before streaming
    starts are returned as JSON ``{"ok": false, "error": ...}``.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise InputError("Invalid JSON")

    chat_request = parse_chat_request(payload)
    messages = sanitize_messages(chat_request.messages)
    if not messages:
        raise InputError("no non-empty messages")

    provider = detect_provider(chat_request.provider or settings.CHAT_PROVIDER, settings)
    adapter = get_chat_adapter(provider, settings, model=chat_request.model)

    call = debug_logger.start_call(adapter.provider_name, adapter.model)
    call.add_messages([m.to_dict() for m in messages])
    call.set_request_params(temperature=chat_request.temperature)
    log_ai_request(
        logger,
        provider=adapter.provider_name,
        model=adapter.model,
        call_id=call.call_id,
        message_count=len(messages),
    )

    try:
        tokens = await adapter.open_stream(messages, chat_request.temperature)
    except Exception as e:
        call.set_error(type(e).__name__, str(e))
        log_ai_error(
            logger,
            provider=adapter.provider_name,
            model=adapter.model,
            error_type=type(e).__name__,
            error_message=str(e),
            call_id=call.call_id,
            stage="open",
        )
        call.finish()
        if isinstance(e, ChatProxyError):
            raise
        raise TransportError(f"{adapter.provider_name} init failed: {e}") from e

    return SSEResponse(
        frame_sse(call.wrap(tokens)),
        release=lambda: call.release(tokens),
    )
