"""Configuration management for the election portal service."""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Service configuration
    SERVICE_NAME: str = "election-portal"
    API_VERSION: str = "v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Remote election API
    ELECTION_API_URL: str = "http://localhost:5000"
    ELECTION_API_TIMEOUT: float = 5.0
    SUBMIT_TIMEOUT: float = 10.0

    # Voter sessions are keyed by this header's bearer token
    SESSION_HEADER: str = "Authorization"
    MAX_SESSIONS: int = 10000

    # Rate limiting
    RATE_LIMIT: str = "60/minute"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    @property
    def api_prefix(self) -> str:
        """Route prefix for versioned portal endpoints."""
        return f"/api/{self.API_VERSION}"

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()


settings = Settings()
