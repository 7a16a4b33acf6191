"""MSAL token management for SharePoint REST API authentication.

Provides app-only (client credentials) token acquisition. MSAL caches
tokens in its in-memory TokenCache; acquire_token_silent returns a cached
token until it nears expiry.
"""

from pathlib import Path
from typing import Any

import msal

from sharepoint_fs.config import Settings, get_settings
from sharepoint_fs.core.logging import get_logger
from sharepoint_fs.core.sharepoint.exceptions import SharePointAuthenticationError

logger = get_logger(__name__)


class SharePointAuthService:
    """MSAL-based authentication service for the SharePoint REST API.

    The token audience is the SharePoint site origin
    (e.g. ``https://contoso.sharepoint.com/.default``), not Microsoft Graph.

    Attributes:
        _msal_app: MSAL ConfidentialClientApplication instance
        _settings: Application settings
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the MSAL client when SharePoint is configured.

        Args:
            settings: Settings to use (default: cached application settings)
        """
        self._settings = settings or get_settings()
        self._msal_app: msal.ConfidentialClientApplication | None = None

        if self.is_configured:
            self._msal_app = self._create_msal_app()
            logger.info(
                "sharepoint_auth_initialized",
                tenant_id=self._settings.sharepoint_tenant_id[:8] + "...",
                credential=self.credential_kind,
            )
        else:
            logger.warning(
                "sharepoint_auth_not_configured",
                reason="missing_required_settings",
            )

    def _client_credential(self) -> str | dict[str, str]:
        """Build the MSAL client credential.

        A certificate takes precedence over a client secret; SharePoint REST
        rejects secret-based app-only tokens on most tenants.
        """
        if self.credential_kind == "certificate":
            private_key = Path(self._settings.sharepoint_certificate_path).read_text(
                encoding="utf-8"
            )
            return {
                "private_key": private_key,
                "thumbprint": self._settings.sharepoint_certificate_thumbprint,
            }
        return self._settings.sharepoint_client_secret

    def _create_msal_app(self) -> msal.ConfidentialClientApplication:
        """Create and configure MSAL ConfidentialClientApplication."""
        authority = (
            f"https://login.microsoftonline.com/{self._settings.sharepoint_tenant_id}"
        )

        logger.debug(
            "sharepoint_msal_app_creating",
            authority=authority,
            client_id=self._settings.sharepoint_client_id[:8] + "...",
        )

        return msal.ConfidentialClientApplication(
            client_id=self._settings.sharepoint_client_id,
            client_credential=self._client_credential(),
            authority=authority,
        )

    @property
    def scopes(self) -> list[str]:
        """Scopes requested for the SharePoint site."""
        return [f"{self._settings.sharepoint_site_origin}/.default"]

    def get_app_token(self) -> str:
        """Acquire access token using client credentials (app-only flow).

        First attempts to retrieve a cached token, then falls back
        to acquiring a new token from Azure AD.

        Returns:
            Access token string

        Raises:
            SharePointAuthenticationError: If token acquisition fails or
                SharePoint is not configured
        """
        if not self.is_configured or self._msal_app is None:
            logger.error(
                "sharepoint_app_token_failed",
                reason="not_configured",
            )
            raise SharePointAuthenticationError(
                "SharePoint authentication is not configured"
            )

        result = self._msal_app.acquire_token_silent(
            scopes=self.scopes,
            account=None,
        )

        if result and "access_token" in result:
            logger.debug(
                "sharepoint_app_token_cached",
                expires_in=result.get("expires_in"),
            )
            return self._handle_auth_result(result)

        logger.debug("sharepoint_app_token_acquiring_new")
        result = self._msal_app.acquire_token_for_client(scopes=self.scopes)

        return self._handle_auth_result(result)

    def _handle_auth_result(self, result: dict[str, Any] | None) -> str:
        """Process MSAL authentication result.

        Args:
            result: MSAL result dictionary containing access_token or error

        Returns:
            Access token string

        Raises:
            SharePointAuthenticationError: If result is None or contains error
        """
        if result is None:
            logger.error("sharepoint_app_token_failed", reason="null_result")
            raise SharePointAuthenticationError(
                "Failed to acquire app token: no result from MSAL"
            )

        if "error" in result:
            error_code = result.get("error", "unknown")
            error_description = result.get("error_description", "No description")

            logger.error(
                "sharepoint_app_token_failed",
                error_code=error_code,
                error_description=error_description[:100],
            )
            raise SharePointAuthenticationError(
                f"Failed to acquire app token: {error_code} - {error_description}"
            )

        access_token = result.get("access_token")
        if not access_token:
            logger.error(
                "sharepoint_app_token_failed",
                reason="missing_access_token",
            )
            raise SharePointAuthenticationError(
                "Failed to acquire app token: access_token not in response"
            )

        logger.info(
            "sharepoint_app_token_acquired",
            expires_in=result.get("expires_in"),
            token_type=result.get("token_type"),
        )

        return access_token

    @property
    def credential_kind(self) -> str:
        """Credential type in use: certificate or secret."""
        if (
            self._settings.sharepoint_certificate_path
            and self._settings.sharepoint_certificate_thumbprint
        ):
            return "certificate"
        return "secret"

    @property
    def is_configured(self) -> bool:
        """Check if SharePoint authentication is properly configured."""
        return self._settings.is_sharepoint_configured


# Module-level singleton
_auth_service: SharePointAuthService | None = None


def get_sharepoint_auth() -> SharePointAuthService:
    """Get the SharePoint authentication service singleton."""
    global _auth_service
    if _auth_service is None:
        _auth_service = SharePointAuthService()
    return _auth_service


def reset_sharepoint_auth() -> None:
    """Reset the SharePoint authentication service singleton.

    Used primarily for testing to ensure clean state between tests.
    """
    global _auth_service
    _auth_service = None
