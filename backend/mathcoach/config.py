"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded for production)
    - get_settings() is cached (lru_cache) — single instance per process
    - total_rounds >= 1; max_image_bytes > 0

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://mathcoach:mathcoach@db:5432/mathcoach"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Anthropic
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 60
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 30_000

    # Collaborators
    vision_model: str = "claude-sonnet-4-5"
    dialogue_model: str = "claude-haiku-4-5"
    report_model: str = "claude-haiku-4-5"
    collaborator_timeout_seconds: float = 30.0

    # Tutoring
    total_rounds: int = Field(3, ge=1)
    max_image_bytes: int = Field(900 * 1024, gt=0)
    history_cap: int = Field(50, ge=1)
    stats_timezone: str = "Asia/Shanghai"

    # Identity
    identity_provider: str = Field("hmac", pattern=r"^(hmac|wechat)$")
    wechat_app_id: str = ""
    wechat_app_secret: str = ""
    wechat_api_base: str = "https://api.weixin.qq.com"
    secret_key: str = "dev-secret-change-me"

    # Storage
    blob_storage_dir: str = "./blobs"

    # Background jobs
    background_workers: int = Field(2, ge=1)
    background_max_attempts: int = Field(3, ge=1)
    background_retry_delay_seconds: float = 0.5
    background_queue_size: int = 1000

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
