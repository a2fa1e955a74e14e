"""
Chat proxy error types.

Every error raised before the SSE response is committed is one of these and
is rendered as ``{"ok": false, "error": ...}`` with ``status_code``.
"""


class ChatProxyError(Exception):
    """Base class for errors reported as a JSON error response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(ChatProxyError):
    """Malformed or invalid request body."""

    status_code = 400


class ConfigurationError(ChatProxyError):
    """A provider is missing required settings or credentials."""


class AuthError(ChatProxyError):
    """Credential acquisition failed."""


class TransportError(ChatProxyError):
    """The upstream provider could not be reached or answered with an error."""
