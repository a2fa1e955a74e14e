"""
Application configuration.
All sensitive values loaded from environment variables.
"""
from typing import List, Optional

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


AZURE_DEFAULT_SCOPE = "https://cognitiveservices.azure.com/.default"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Chat provider selection
    # Supported providers: openai, azure, ollama, mock
    # Unknown values fall back to auto-detection
    CHAT_PROVIDER: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CHAT_PROVIDER", "NEXT_PUBLIC_CHAT_PROVIDER"),
    )

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None  # Custom base URL if needed

    # Azure OpenAI
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_DEPLOYMENT: Optional[str] = None
    AZURE_OPENAI_API_VERSION: Optional[str] = None
    AZURE_OPENAI_API_KEY: Optional[str] = None
    # Managed identity takes precedence over the static key when set
    AZURE_OPENAI_MANAGED_IDENTITY_CLIENT_ID: Optional[str] = None
    AZURE_OPENAI_SCOPE: str = AZURE_DEFAULT_SCOPE

    # Ollama
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: Optional[str] = None

    # Mock provider: delay between emitted characters
    MOCK_STREAM_DELAY_MS: int = 15

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # AI Debug Logging - enables detailed message content logging
    # WARNING: Set to True only for debugging, logs may contain sensitive data
    AI_DEBUG_LOG: bool = False
    # Maximum length of message content to log (0 = unlimited)
    AI_DEBUG_LOG_MAX_LENGTH: int = 2000

    @field_validator(
        "CHAT_PROVIDER",
        "OPENAI_API_KEY",
        "OPENAI_MODEL",
        "OPENAI_BASE_URL",
        "AZURE_OPENAI_ENDPOINT",
        "AZURE_OPENAI_DEPLOYMENT",
        "AZURE_OPENAI_API_VERSION",
        "AZURE_OPENAI_API_KEY",
        "AZURE_OPENAI_MANAGED_IDENTITY_CLIENT_ID",
        "OLLAMA_MODEL",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value):
        # Empty env vars (KEY=) count as unset
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("AZURE_OPENAI_SCOPE", "OLLAMA_BASE_URL", mode="before")
    @classmethod
    def blank_to_default(cls, value, info: ValidationInfo):
        if isinstance(value, str) and not value.strip():
            return cls.model_fields[info.field_name].default
        return value

    @property
    def azure_api_key(self) -> Optional[str]:
        """Azure key, falling back to the plain OpenAI key."""
        return self.AZURE_OPENAI_API_KEY or self.OPENAI_API_KEY

    def missing_azure_settings(self, deployment: Optional[str] = None) -> list[str]:
        """Names of required Azure settings that are not configured."""
        required = {
            "AZURE_OPENAI_ENDPOINT": self.AZURE_OPENAI_ENDPOINT,
            "AZURE_OPENAI_DEPLOYMENT": deployment or self.AZURE_OPENAI_DEPLOYMENT,
            "AZURE_OPENAI_API_VERSION": self.AZURE_OPENAI_API_VERSION,
        }
        return [name for name, value in required.items() if not value]

    def azure_configured(self) -> bool:
        """True when endpoint, deployment, api version and some auth material are all set."""
        has_auth = bool(self.AZURE_OPENAI_API_KEY or self.AZURE_OPENAI_MANAGED_IDENTITY_CLIENT_ID)
        return not self.missing_azure_settings() and has_auth


settings = Settings()


def get_settings() -> Settings:
    """
    Build a fresh settings object.

    Used as a request dependency so configuration changes are picked up
    without a restart.
    """
    return Settings()
