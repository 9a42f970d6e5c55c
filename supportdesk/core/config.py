from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    app_name: str = Field(default="Support Desk")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(levelname)s %(name)s %(message)s")
    api_prefix: str = Field(default="")

    # Staff authentication
    admin_password: str = Field(default="abdzgoat0")

    # Ticket lifecycle
    enforce_unique_ticket_numbers: bool = Field(default=False)
    cascade_delete_messages: bool = Field(default=False)
    allow_messages_on_closed: bool = Field(default=True)

    # Staff panel synchronization
    poll_interval_seconds: float = Field(default=2.0, gt=0)
    new_ticket_window_seconds: float = Field(default=5.0, ge=0)

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="support-desk")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: str | None = Field(default=None)


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()
