"""Remote backup connectivity: an authenticated identity check against GitHub."""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from marknotes.config import config
from marknotes.exceptions import ConfigurationError, ErrorCode, ExternalServiceError
from marknotes.models.schema import BackupConfig

logger = logging.getLogger(__name__)

SERVICE_NAME = "github"


@dataclass(frozen=True)
class SyncStatus:
    """What the sync indicator shows."""

    state: str  # "synced" or "pending"
    label: str


def sync_status(backup_config: BackupConfig) -> SyncStatus:
    """Indicator state for the given backup configuration."""
    if backup_config.is_configured:
        return SyncStatus(state="synced", label="Ready to sync")
    return SyncStatus(state="pending", label="Not configured")


class GitHubClient:
    """Minimal client for the backup service's user-identity endpoint.

    Only verifies that the configured token is accepted; no retry, no
    upload. Tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        backup_config: BackupConfig,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.backup_config = backup_config
        self.base_url = (base_url or config.github_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.http_timeout
        self._transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"token {self.backup_config.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    def test_connection(self) -> str:
        """Check that the token authenticates.

        Returns:
            The login reported by the service (falls back to the configured
            username when the response has none).

        Raises:
            ConfigurationError: If username or token is missing.
            ExternalServiceError: On network failure or a non-2xx status.
        """
        if not self.backup_config.username or not self.backup_config.token:
            raise ConfigurationError(
                "Please fill in username and token",
                config_key="token" if self.backup_config.username else "username",
                code=ErrorCode.CONFIG_MISSING,
            )

        url = f"{self.base_url}/user"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"GitHub connection failed: {e}")
            raise ExternalServiceError(
                "GitHub connection failed",
                service=SERVICE_NAME,
                code=ErrorCode.REMOTE_UNREACHABLE,
                original_error=e,
            ) from e

        if not response.is_success:
            logger.warning(f"GitHub authentication failed: HTTP {response.status_code}")
            raise ExternalServiceError(
                "Authentication failed",
                service=SERVICE_NAME,
                status_code=response.status_code,
                code=ErrorCode.REMOTE_AUTH_FAILED,
            )

        login = self.backup_config.username
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("login"):
                login = str(body["login"])
        except ValueError:
            logger.debug("Identity response was not JSON")
        logger.info(f"GitHub connection successful for {login}")
        return login
