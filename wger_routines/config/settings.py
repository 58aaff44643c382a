from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    wger_base_url: str = Field(
        default="https://wger.de/api/v2",
        validation_alias="WGER_BASE_URL",
        description="Root of the wger REST API (collections are resolved below it)",
    )
    wger_api_key: str = Field(default="", validation_alias="WGER_API_KEY")
    wger_username: str = Field(default="", validation_alias="WGER_USERNAME")
    wger_password: str = Field(default="", validation_alias="WGER_PASSWORD")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="", validation_alias="LOG_FILE")
    http_timeout_seconds: float = Field(default=30.0, validation_alias="WGER_HTTP_TIMEOUT")
    http_max_retries: int = Field(
        default=3,
        validation_alias="WGER_HTTP_MAX_RETRIES",
        description="Attempts per request for timeouts, network errors and 5xx responses",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        validation_alias="WGER_RETRY_BACKOFF",
        description="Base of the exponential backoff between retries (capped at 10s)",
    )
    list_limit: int = Field(
        default=100,
        validation_alias="WGER_LIST_LIMIT",
        description="Page size sent as `limit` on every collection read",
    )
    server_host: str = Field(default="127.0.0.1", validation_alias="SERVER_HOST")
    server_port: int = Field(default=8080, validation_alias="SERVER_PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("wger_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("http_max_retries", "list_limit")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @property
    def auth_method(self) -> str:
        """Which credential flavour the auth manager will use."""
        if self.wger_api_key:
            return "api_key"
        if self.wger_username and self.wger_password:
            return "password"
        return "none"


settings = Settings()
