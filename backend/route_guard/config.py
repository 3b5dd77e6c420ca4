"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in production)
    - get_settings() is cached (lru_cache) — single instance per process
    - cookie_secure defaults to True in production unless explicitly overridden

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box locally
    - Route tables are NOT settings: they live in core/route_config.py and are only
      pointed at by route_config_path
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    environment: str = "development"

    # Database (profiles table)
    database_url: str = (
        "postgresql+asyncpg://guard:guard@db:5432/guard"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Session backend (GoTrue-compatible auth API)
    auth_base_url: str = "http://localhost:9999/auth/v1"
    auth_api_key: str = "anon-placeholder"
    # Per call; sized so a hung backend still gets a retry inside identity_timeout_seconds
    auth_http_timeout_seconds: float = 1.5
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"

    # Identity resolution
    identity_timeout_seconds: float = 5.0
    identity_max_retries: int = 2
    identity_base_delay_ms: int = 1000
    identity_max_delay_ms: int = 4000
    refresh_margin_seconds: int = 60

    # Profile status
    profile_timeout_seconds: float = 3.0

    # Redirect loop guard
    guard_cookie_name: str = "_sg"
    guard_token_secret: str = "guard-secret-placeholder"
    guard_window_ms: int = 5000
    guard_max_redirects: int = 2
    cookie_secure: bool | None = None

    # Routing
    route_config_path: str | None = None
    login_return_param: str | None = "redirect"
    prefetch_headers: dict[str, str] = {
        "purpose": "prefetch",
        "sec-purpose": "prefetch",
        "x-purpose": "preview",
        "x-moz": "prefetch",
        "next-router-prefetch": "1",
    }

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @model_validator(mode="after")
    def default_cookie_secure(self) -> "Settings":
        if self.cookie_secure is None:
            self.cookie_secure = self.environment == "production"
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
