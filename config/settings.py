"""
Settings configuration for GBase Slides.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    # App settings
    APP_ENV: str = Field("development", description="Deployment environment name")
    LOG_LEVEL: str = Field("INFO", description="Log level for the standard logger")

    # API settings
    API_ENABLED: bool = Field(True, description="Accept websocket connections")
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(8000)
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed to open websocket connections"
    )

    # Logging
    LOGFIRE_TOKEN: Optional[str] = Field(None)

    # Gemini models
    # A per-connection key sent by the client takes precedence over this one
    GEMINI_API_KEY: Optional[str] = Field(None, description="Fallback Gemini API key")
    ANALYSIS_MODEL: str = Field("gemini-2.5-pro", description="Model that plans the slides")
    VISION_MODEL: str = Field("gemini-2.5-flash", description="Model that reads reference templates")
    IMAGE_MODEL: str = Field("gemini-3-pro-image-preview", description="Slide image model")
    IMAGE_ASPECT_RATIO: str = Field("16:9")
    IMAGE_SIZE: str = Field("2K")
    GEMINI_TIMEOUT_SECONDS: int = Field(120, ge=1, description="HTTP timeout per Gemini request")

    # Rate limiting between image calls
    # The image model allows very few requests per minute; 65s keeps one call per window
    MIN_CALL_INTERVAL_SECONDS: float = Field(65.0, ge=0.0)
    COOLDOWN_TICK_SECONDS: float = Field(1.0, gt=0.0)
    PER_JOB_ESTIMATE_SECONDS: float = Field(
        30.0,
        ge=0.0,
        description="Expected duration of one image request, used for ETA"
    )

    # Retry / backoff
    IMAGE_MAX_TRANSIENT_RETRIES: int = Field(2, ge=0, le=10)
    IMAGE_RETRY_INITIAL_DELAY: float = Field(2.0, ge=0.0)
    ANALYSIS_MAX_RETRIES: int = Field(2, ge=0, le=10)
    ANALYSIS_RETRY_INITIAL_DELAY: float = Field(1.5, ge=0.0)
    RETRY_MAX_JITTER: float = Field(0.5, ge=0.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def has_default_api_key(self) -> bool:
        """Check if a server-side Gemini key is configured."""
        return bool(self.GEMINI_API_KEY)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV.lower() == "production"

    def validate_settings(self) -> None:
        """
        Validate that essential settings are consistent.

        Raises:
            ValueError: If the cooldown or ETA settings cannot work together
        """
        if self.COOLDOWN_TICK_SECONDS > self.MIN_CALL_INTERVAL_SECONDS > 0:
            raise ValueError(
                "COOLDOWN_TICK_SECONDS must not exceed MIN_CALL_INTERVAL_SECONDS "
                f"({self.COOLDOWN_TICK_SECONDS} > {self.MIN_CALL_INTERVAL_SECONDS})"
            )

        if not self.has_default_api_key:
            # Clients can still send their own key over the websocket
            from gbase_slides.utils.logger import setup_logger
            logger = setup_logger(__name__)
            logger.info("No GEMINI_API_KEY configured: clients must send an API key with 'configure'")


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
