"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: str = "INFO"

    # SharePoint site holding the "Shared Documents" library
    sharepoint_site_url: str = ""  # e.g. https://contoso.sharepoint.com/sites/team

    # Azure AD app registration used for app-only access
    sharepoint_tenant_id: str = ""
    sharepoint_client_id: str = ""
    sharepoint_client_secret: str = ""
    sharepoint_certificate_path: str = ""  # PEM private key, alternative to secret
    sharepoint_certificate_thumbprint: str = ""

    # HTTP
    sharepoint_timeout: float = 60.0  # seconds

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper() if isinstance(v, str) else "INFO"

    @field_validator("sharepoint_site_url", mode="before")
    @classmethod
    def strip_site_url(cls, v: str) -> str:
        """Drop surrounding whitespace and the trailing slash."""
        return v.strip().rstrip("/") if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_sharepoint_settings(self) -> "Settings":
        """Production environment requires a complete SharePoint configuration."""
        if self.environment != "production":
            return self

        errors = []

        if not self.sharepoint_site_url:
            errors.append("SHAREPOINT_SITE_URL is required in production")
        elif not self.sharepoint_site_url.startswith("https://"):
            errors.append("SHAREPOINT_SITE_URL must use https in production")

        if not self.sharepoint_tenant_id:
            errors.append("SHAREPOINT_TENANT_ID is required in production")

        if not self.sharepoint_client_id:
            errors.append("SHAREPOINT_CLIENT_ID is required in production")

        if not self.has_sharepoint_credential:
            errors.append(
                "SHAREPOINT_CLIENT_SECRET or SHAREPOINT_CERTIFICATE_PATH "
                "with SHAREPOINT_CERTIFICATE_THUMBPRINT is required in production"
            )

        if errors:
            raise ValueError(
                "Production configuration errors:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def has_sharepoint_credential(self) -> bool:
        """Check if a client secret or a certificate credential is set."""
        return bool(
            self.sharepoint_client_secret
            or (
                self.sharepoint_certificate_path
                and self.sharepoint_certificate_thumbprint
            )
        )

    @property
    def is_sharepoint_configured(self) -> bool:
        """Check if SharePoint access is fully configured."""
        return bool(
            self.sharepoint_site_url
            and self.sharepoint_tenant_id
            and self.sharepoint_client_id
            and self.has_sharepoint_credential
        )

    @property
    def sharepoint_site_origin(self) -> str:
        """Scheme and host of the site, e.g. https://contoso.sharepoint.com."""
        parsed = urlparse(self.sharepoint_site_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def sharepoint_site_path(self) -> str:
        """Server-relative path of the site, e.g. /sites/team ("" for the root site)."""
        return urlparse(self.sharepoint_site_url).path.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
