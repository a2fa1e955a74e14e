"""
SkyChat Backend - FastAPI Application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import chat
from app.core.config import settings
from app.core.exceptions import ChatProxyError
from app.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    logger.info("Starting SkyChat Backend", version="1.0.0")

    yield

    # Shutdown
    logger.info("Shutting down SkyChat Backend")


app = FastAPI(
    title="SkyChat API",
    description="Chat proxy for the airline booking demo",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatProxyError)
async def chat_proxy_error_handler(request: Request, exc: ChatProxyError):
    """Render pre-stream failures as ``{"ok": false, "error": ...}``."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Chat request failed",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.message},
    )


# Include routers
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "skychat-backend"}
