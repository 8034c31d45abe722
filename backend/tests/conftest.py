"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or identity services
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("IDENTITY_PROVIDER", "hmac")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("COLLABORATOR_TIMEOUT_SECONDS", "2")
os.environ.setdefault("LOG_FORMAT", "text")
