"""Configuration management for streakboard."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEV_SECRET_KEY = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    sqlite_db_path: str = Field(default="data/streakboard.db", description="SQLite database file path")

    # Session Configuration
    session_file_path: str = Field(
        default="data/session.json", description="Local file holding the persisted signed session marker"
    )
    secret_key: str = Field(default=DEV_SECRET_KEY, description="Secret used to sign session tokens")
    session_max_age_seconds: int = Field(default=86400 * 30, description="Maximum age of an API bearer token")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value

    @property
    def is_production(self) -> bool:
        """Whether the app runs in the production environment."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_BAD_REQUEST: int = 400
    HTTP_UNPROCESSABLE: int = 422
    HTTP_SERVER_ERROR: int = 500

    # Leaderboard & Gamification
    POINTS_PER_COMPLETION: int = 10
    STREAK_LOOKBACK_DAYS: int = 30

    # Sign-up validation
    MIN_PASSWORD_LENGTH: int = 6

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries
    DEFAULT_FEED_LIMIT: int = 50

    # Password hashing (werkzeug.security method string)
    PASSWORD_HASH_METHOD: str = "scrypt"

    # Profile achievements
    FIRST_STEP_COMPLETIONS: int = 1
    WEEK_WARRIOR_STREAK: int = 7
    CONSISTENCY_KING_COMPLETIONS: int = 15
    CHALLENGE_CHAMPION_COMPLETIONS: int = 30


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
