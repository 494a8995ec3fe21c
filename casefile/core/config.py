"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./casefile.db"

    # Cache store (Redis when configured, bounded in-memory LRU otherwise)
    REDIS_URL: str = ""
    CACHE_MAX_ENTRIES: int = 4096
    CACHE_DEFAULT_TTL_SECONDS: int = 3600
    CACHE_KEY_PREFIX: str = "casefile:"

    # Public intake links
    INTAKE_TOKEN_BYTES: int = 32
    INTAKE_TOKEN_CACHE_TTL_SECONDS: int = 300

    # Duplicate/retry protection on public intake submissions
    INTAKE_SUBMISSIONS_PER_WINDOW: int = 20
    INTAKE_SUBMISSION_WINDOW_SECONDS: int = 3600

    # Rate Limiting (requests per minute, per client IP)
    RATE_LIMIT_PUBLIC_READ: int = 60
    RATE_LIMIT_PUBLIC_WRITE: int = 30

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
