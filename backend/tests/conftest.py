"""Shared fixtures for the chat proxy tests."""

import pytest
from fastapi.testclient import TestClient

from app.main import app


PROVIDER_ENV = [
    "CHAT_PROVIDER",
    "NEXT_PUBLIC_CHAT_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_DEPLOYMENT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_MANAGED_IDENTITY_CLIENT_ID",
    "AZURE_OPENAI_SCOPE",
    "OLLAMA_BASE_URL",
    "OLLAMA_MODEL",
    # Read by azure-identity when picking a managed identity source
    "AZURE_CLIENT_ID",
    "AZURE_FEDERATED_TOKEN_FILE",
    "IDENTITY_ENDPOINT",
    "IDENTITY_HEADER",
    "IDENTITY_SERVER_THUMBPRINT",
    "IMDS_ENDPOINT",
    "MSI_ENDPOINT",
    "MSI_SECRET",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MOCK_STREAM_DELAY_MS", "0")
    # Keep a developer's .env file out of the tests
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def azure_env(monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com/")
    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o")
    monkeypatch.setenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-key")


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client

