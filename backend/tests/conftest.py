"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real auth server or database
os.environ.setdefault("AUTH_BASE_URL", "http://auth.test/auth/v1")
os.environ.setdefault("AUTH_API_KEY", "anon-test-key")
os.environ.setdefault("GUARD_TOKEN_SECRET", "guard-test-secret-0123456789abcdef")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)
