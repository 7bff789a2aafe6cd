"""Application configuration using pydantic-settings.

All sensitive configuration must come from environment variables.
In production the application refuses to start without a spreadsheet ID
and an API access token.
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Required environment variables (production):
    - GOOGLE_SPREADSHEET_ID: Spreadsheet backing slots, orders and services
    - SECRET_ACCESS_TOKEN: Bearer token for protected endpoints

    Google credentials come either from GOOGLE_CREDENTIALS_* variables or
    from the JSON key file at GOOGLE_CREDENTIALS_FILE.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars not defined in Settings
    )

    # Server
    port: int = 3000
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API access - must be set via environment variable
    secret_access_token: str = ""

    # Spreadsheet
    google_spreadsheet_id: str = ""
    schedule_sheet: str = "Schedule"
    orders_sheet: str = "Orders"
    services_sheet: str = "Services"
    orders_layout: Literal["v1", "v2"] = "v2"
    services_layout: Literal["v1", "v2"] = "v1"
    sheets_timeout: int = 60

    # Service account key file
    google_credentials_file: str = "credentials/google-credentials.json"

    # Service account key fields (alternative to the key file)
    google_credentials_type: str = "service_account"
    google_credentials_project_id: str = ""
    google_credentials_private_id: str = ""
    google_credentials_private_key: str = ""
    google_credentials_client_email: str = ""
    google_credentials_client_id: str = ""
    google_credentials_auth_uri: str = "https://accounts.google.com/o/oauth2/auth"
    google_credentials_token_uri: str = "https://oauth2.googleapis.com/token"
    google_credentials_auth_cert_url: str = "https://www.googleapis.com/oauth2/v1/certs"
    google_credentials_client_cert_url: str = ""
    google_credentials_universe_domain: str = "googleapis.com"

    # Checkout
    deposit_amount: str = "100.00"

    # Rate limiting for public write endpoints
    rate_limit_enabled: bool = True
    public_rate_limit: str = "30/minute"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    def google_service_account_info(self) -> dict[str, Any] | None:
        """Build service account key info from GOOGLE_CREDENTIALS_* variables.

        Returns None unless both the private key and client email are set.
        Escaped newlines in the private key are restored.
        """
        if not self.google_credentials_private_key or not self.google_credentials_client_email:
            return None
        return {
            "type": self.google_credentials_type,
            "project_id": self.google_credentials_project_id,
            "private_key_id": self.google_credentials_private_id,
            "private_key": self.google_credentials_private_key.replace("\\n", "\n"),
            "client_email": self.google_credentials_client_email,
            "client_id": self.google_credentials_client_id,
            "auth_uri": self.google_credentials_auth_uri,
            "token_uri": self.google_credentials_token_uri,
            "auth_provider_x509_cert_url": self.google_credentials_auth_cert_url,
            "client_x509_cert_url": self.google_credentials_client_cert_url,
            "universe_domain": self.google_credentials_universe_domain,
        }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Validate that required settings are configured."""
        errors = []

        if self.is_production and not self.google_spreadsheet_id:
            errors.append("GOOGLE_SPREADSHEET_ID must be set in production")

        if self.is_production and not self.secret_access_token:
            errors.append("SECRET_ACCESS_TOKEN must be set in production")

        if errors:
            raise ValueError("Configuration errors:\n  - " + "\n  - ".join(errors))

        return self

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of: {allowed}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known value."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the application.
    """
    return Settings()
