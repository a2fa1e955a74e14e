"""
Structured logging configuration.
Designed for easy debugging without exposing sensitive data.
"""
import asyncio
import logging
import sys
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Optional

import structlog
from structlog.types import Processor

from app.core.config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""

    # Common processors
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        # JSON format for production
        renderer = structlog.processors.JSONRenderer()
    else:
        # Console format for development
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure root logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("azure").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def _truncate_content(content: str, max_length: int = 0) -> str:
    """Truncate content if max_length is set."""
    if max_length <= 0:
        return content
    if len(content) <= max_length:
        return content
    return content[:max_length] + f"... [truncated, total {len(content)} chars]"


def log_ai_request(
    logger: structlog.stdlib.BoundLogger,
    provider: str,
    model: str,
    **extra: Any
) -> None:
    """
    Log AI request info for debugging.
    NEVER logs actual prompt content or API keys.
    """
    logger.info(
        "AI request",
        provider=provider,
        model=model,
        **extra
    )


def log_ai_error(
    logger: structlog.stdlib.BoundLogger,
    provider: str,
    model: str,
    error_type: str,
    error_message: str,
    **extra: Any
) -> None:
    """
    Log AI errors for debugging.
    Logs error details but NEVER API keys or sensitive info.
    """
    logger.error(
        "AI error",
        provider=provider,
        model=model,
        error_type=error_type,
        error_message=error_message,
        **extra
    )


# ========================================
# AI Debug Logging
# ========================================

@dataclass
class AIMessageLog:
    """Structure for logging AI messages."""
    role: str
    content: str
    content_length: int = 0

    def __post_init__(self):
        self.content_length = len(self.content)


@dataclass
class AICallLog:
    """Complete log entry for a streamed AI call."""
    call_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    provider: str = ""
    model: str = ""

    # Request info
    request_messages: List[AIMessageLog] = field(default_factory=list)
    request_temperature: Optional[float] = None

    # Response info
    response_chunks: List[str] = field(default_factory=list)
    response_chunk_count: int = 0
    response_content_length: int = 0

    # Timing
    start_time: float = 0.0
    first_token_ms: Optional[float] = None
    end_time: float = 0.0
    duration_ms: float = 0.0

    # Status
    success: bool = True
    cancelled: bool = False
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class AIDebugLogger:
    """
    AI debug logger for streamed chat calls.

    Usage:
        debug_logger = AIDebugLogger(logger)
        call = debug_logger.start_call("openai", "gpt-4o-mini")
        call.add_messages(messages)
        tokens = call.wrap(await adapter.open_stream(messages, temperature))
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger):
        self.logger = logger
        self.enabled = settings.AI_DEBUG_LOG
        self.max_length = settings.AI_DEBUG_LOG_MAX_LENGTH

    def start_call(self, provider: str, model: str) -> "AICallTracker":
        """Create and start a tracker for one call."""
        tracker = AICallTracker(
            logger=self.logger,
            enabled=self.enabled,
            max_length=self.max_length,
            provider=provider,
            model=model,
        )
        tracker.start()
        return tracker


class AICallTracker:
    """Tracker for a single AI call."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        enabled: bool,
        max_length: int,
        provider: str,
        model: str,
    ):
        self.logger = logger
        self.enabled = enabled
        self.max_length = max_length
        self.log = AICallLog(provider=provider, model=model)
        self._finished = False

    @property
    def call_id(self) -> str:
        return self.log.call_id

    def start(self) -> None:
        """Mark the start of the call."""
        self.log.start_time = time.time()

        if self.enabled:
            self.logger.debug(
                "AI call started",
                call_id=self.log.call_id,
                provider=self.log.provider,
                model=self.log.model,
            )

    def add_message(self, role: str, content: str) -> None:
        """Add a message to the request log."""
        msg = AIMessageLog(role=role, content=content)
        self.log.request_messages.append(msg)

        if self.enabled:
            truncated = _truncate_content(content, self.max_length)
            self.logger.debug(
                "AI request message",
                call_id=self.log.call_id,
                role=role,
                content_length=msg.content_length,
                content=truncated,
            )

    def add_messages(self, messages: List[dict]) -> None:
        """Add multiple messages from a list of dicts."""
        for msg in messages:
            self.add_message(msg.get("role", "unknown"), msg.get("content", ""))

    def set_request_params(self, temperature: Optional[float] = None) -> None:
        """Set request parameters."""
        self.log.request_temperature = temperature

    def add_chunk(self, text: str) -> None:
        """Record one streamed token."""
        if self.log.first_token_ms is None:
            self.log.first_token_ms = (time.time() - self.log.start_time) * 1000
        self.log.response_chunk_count += 1
        self.log.response_content_length += len(text)
        if self.enabled:
            self.log.response_chunks.append(text)

    def set_error(self, error_type: str, error_message: str) -> None:
        """Set error information."""
        self.log.success = False
        self.log.error_type = error_type
        self.log.error_message = error_message

    def set_cancelled(self) -> None:
        """Mark the call as abandoned by the client."""
        self.log.cancelled = True

    async def wrap(self, tokens: AsyncIterator[str]) -> AsyncIterator[str]:
        """
        Pass tokens through while recording them.

        Closes ``tokens`` and logs the summary when iteration ends, fails or
        is abandoned.
        """
        try:
            async for token in tokens:
                self.add_chunk(token)
                yield token
        except (GeneratorExit, asyncio.CancelledError):
            self.set_cancelled()
            raise
        except Exception as e:
            self.set_error(type(e).__name__, str(e))
            log_ai_error(
                self.logger,
                provider=self.log.provider,
                model=self.log.model,
                error_type=type(e).__name__,
                error_message=str(e),
                call_id=self.log.call_id,
                stage="stream",
            )
            raise
        finally:
            try:
                aclose = getattr(tokens, "aclose", None)
                if aclose is not None:
                    await aclose()
            finally:
                self.finish()

    async def release(self, tokens: AsyncIterator[str]) -> None:
        """
        Close ``tokens`` and finish the call.

        A no-op after ``wrap`` has run to completion; otherwise the response
        was torn down before streaming began and the call counts as cancelled.
        """
        if not self._finished:
            self.set_cancelled()
        try:
            aclose = getattr(tokens, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            self.finish()

    def finish(self) -> None:
        """Mark the end of the call and log summary."""
        if self._finished:
            return
        self._finished = True
        self.log.end_time = time.time()
        self.log.duration_ms = (self.log.end_time - self.log.start_time) * 1000

        # Calculate total message lengths
        total_request_chars = sum(m.content_length for m in self.log.request_messages)
        message_count = len(self.log.request_messages)
        message_roles = [m.role for m in self.log.request_messages]

        if self.log.success:
            self.logger.info(
                "AI call completed",
                call_id=self.log.call_id,
                provider=self.log.provider,
                model=self.log.model,
                duration_ms=round(self.log.duration_ms, 2),
                first_token_ms=(
                    round(self.log.first_token_ms, 2)
                    if self.log.first_token_ms is not None else None
                ),
                cancelled=self.log.cancelled,
                message_count=message_count,
                message_roles=message_roles,
                request_chars=total_request_chars,
                response_chunks=self.log.response_chunk_count,
                response_chars=self.log.response_content_length,
            )
            if self.enabled:
                content = "".join(self.log.response_chunks)
                self.logger.debug(
                    "AI response content",
                    call_id=self.log.call_id,
                    content_length=len(content),
                    content=_truncate_content(content, self.max_length),
                )
        else:
            self.logger.error(
                "AI call failed",
                call_id=self.log.call_id,
                provider=self.log.provider,
                model=self.log.model,
                duration_ms=round(self.log.duration_ms, 2),
                response_chunks=self.log.response_chunk_count,
                error_type=self.log.error_type,
                error_message=self.log.error_message,
            )
