"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-jwt-secret-change-in-production"
DEV_UNBLOCK_SECRET = "dev-unblock-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"
    log_level: str = "INFO"

    # Persisted state (rate rules, failures, flags, blocks)
    data_dir: Path = Path("./data")

    # Security secrets
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    unblock_secret: str = DEV_UNBLOCK_SECRET

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Rate limiting (default rule for endpoints without their own)
    rate_limit_max: int = 100
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_cleanup_interval_seconds: float = 60.0

    # Suspicious activity thresholds
    max_failures: int = 5
    spike_threshold: int = 20
    spike_window_ms: int = 10_000
    pattern_interval_ms: int = 100

    # Admission
    admin_path_prefix: str = "/admin/"
    trust_proxy_headers: bool = False
    abusive_words: list[str] = ["abuse", "hate", "spam", "fuck", "shit", "asshole"]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins, filtering empty strings."""
        if not self.cors_origins:
            return ["http://localhost:3000"]
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins if origins else ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def validate_security_settings(settings: Settings) -> None:
    """Ensure insecure defaults are never used in production-like environments."""
    if settings.environment.lower() not in {"production", "prod"}:
        return

    insecure = []
    if settings.jwt_secret == DEV_JWT_SECRET:
        insecure.append("JWT_SECRET")
    if settings.unblock_secret == DEV_UNBLOCK_SECRET:
        insecure.append("UNBLOCK_SECRET")

    if insecure:
        insecure_list = ", ".join(insecure)
        raise RuntimeError(
            f"Insecure default secrets are configured for production: {insecure_list}. "
            "Set strong values in the environment before starting the API."
        )
