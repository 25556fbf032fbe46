# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars in production (.env):
      - DATABASE_URL (Postgres connection string)
      - JWT_SECRET (signing secret for session tokens)
      - GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET (OAuth2 client)

    Optional:
      - ALLOWED_ADMIN_EMAILS (comma-separated, case-insensitive)
      - FRONTEND_URL (used to build the OAuth redirect URI)
    """

    PROJECT_NAME: str = "AMI E-Commerce API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # DB config
    DATABASE_URL: str = "sqlite:///./ecommerce.db"

    # Session tokens
    JWT_SECRET: str = "development-secret-key"
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_DAYS: int = 7
    AUTH_COOKIE_NAME: str = "token"

    # Google OAuth
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_HTTP_TIMEOUT_SECONDS: float = 10.0
    FRONTEND_URL: str = "http://localhost:3000"

    # Comma-separated list, e.g. "owner@shop.com, ops@shop.com"
    ALLOWED_ADMIN_EMAILS: str = ""

    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Bounded retries when two checkouts race for the same order number
    ORDER_NUMBER_MAX_ATTEMPTS: int = 5

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def admin_emails(self) -> frozenset[str]:
        """Lower-cased admin allow-list; blank entries are dropped."""
        return frozenset(
            e.strip().lower()
            for e in self.ALLOWED_ADMIN_EMAILS.split(",")
            if e.strip()
        )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def oauth_redirect_uri(self) -> str:
        return f"{self.FRONTEND_URL.rstrip('/')}/auth/callback"

    def validate_for_startup(self) -> list[str]:
        """
        Check required values before serving traffic.

        Returns:
            Human-readable warnings (non-fatal outside production).

        Raises:
            RuntimeError: if a required value is missing in production.
        """
        missing = [
            name
            for name in ("JWT_SECRET", "GOOGLE_CLIENT_ID")
            if not getattr(self, name)
        ]
        if self.is_production and self.JWT_SECRET == "development-secret-key":
            missing.append("JWT_SECRET")
        if missing and self.is_production:
            raise RuntimeError(f"Missing required config: {', '.join(sorted(set(missing)))}")

        warnings: list[str] = []
        if missing:
            warnings.append(f"Missing config (ignored outside production): {', '.join(missing)}")
        if not self.admin_emails:
            warnings.append("No admin emails configured. Admin access will be denied.")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Drop the cached settings and re-read the environment.

    Used when an operator edits ALLOWED_ADMIN_EMAILS without a restart.
    """
    get_settings.cache_clear()
    return get_settings()
