"""
Application configuration settings.
"""
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    api_reload: bool = Field(default=False)

    # Database
    database_url: str = Field(..., description="PostgreSQL or SQLite connection URL")
    db_pool_size: int = Field(default=20)
    db_max_overflow: int = Field(default=30)

    # Authentication
    jwt_secret_key: str = Field(...)
    jwt_algorithm: str = Field(default="HS256")
    jwt_access_token_expire_minutes: int = Field(default=60 * 24 * 7)

    # SendGrid
    sendgrid_api_key: Optional[str] = Field(default=None)
    sendgrid_from_email: str = Field(default="noreply@mailpilot.app")
    sendgrid_from_name: str = Field(default="MailPilot")
    sendgrid_webhook_public_key: Optional[str] = Field(
        default=None,
        description="Verification key for signed event webhooks",
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_calls: int = Field(default=100)
    rate_limit_period: int = Field(default=15 * 60)

    # CORS
    cors_origins: str = Field(default="http://localhost:3000")
    cors_allow_credentials: bool = Field(default=True)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
