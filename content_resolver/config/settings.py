from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = Field(default="INFO", validation_alias="CONTENT_RESOLVER_LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="CONTENT_RESOLVER_LOG_FILE")
    database_url: str = Field(
        default="sqlite:///content_resolver.db",  # Local document store; point at Postgres in production
        validation_alias="CONTENT_RESOLVER_DATABASE_URL",
    )
    max_concurrent_fetches: int = Field(
        default=16,
        validation_alias="CONTENT_RESOLVER_MAX_CONCURRENT_FETCHES",
        description="Upper bound on document reads in flight during one resolution",
    )
    strict_module_resolution: bool = Field(
        default=True,
        validation_alias="CONTENT_RESOLVER_STRICT_MODULE_RESOLUTION",
        description="Fail the whole program when a library-backed module cannot be resolved",
    )
    untitled_module_title: str = Field(default="Untitled Module", validation_alias="CONTENT_RESOLVER_UNTITLED_MODULE_TITLE")
    untitled_session_title: str = Field(default="Untitled Session", validation_alias="CONTENT_RESOLVER_UNTITLED_SESSION_TITLE")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid log level '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("max_concurrent_fetches")
    @classmethod
    def validate_max_concurrent_fetches(cls, value: int) -> int:
        """Clamp the fetch limit to at least one in-flight read."""
        if value < 1:
            logger.warning(f"max_concurrent_fetches must be >= 1, got {value}. Using 1.")
            return 1
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        populate_by_name=True,
        extra="ignore",
    )


settings = Settings()
