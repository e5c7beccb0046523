"""OAuth2 authorization-code flow for Lightspeed X-Series."""

import json
import logging
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from .config import Settings, get_settings
from .exceptions import OAuthError, OAuthResponseError

logger = logging.getLogger(__name__)


class LightspeedOAuth:
    """Builds authorization URLs and exchanges or refreshes tokens."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        domain_prefix: str,
        redirect_uri: str,
        scopes: Optional[List[str]] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            domain_prefix: Store prefix, e.g. "mystore"
            redirect_uri: Registered redirect URI
            scopes: OAuth scopes (required for apps created from March 2026)
            settings: Settings to read the platform host and timeout from
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.domain_prefix = domain_prefix
        self.redirect_uri = redirect_uri
        self._scopes: List[str] = list(scopes or [])
        self.settings = settings or get_settings()

    @property
    def base_url(self) -> str:
        return f"https://{self.domain_prefix}.{self.settings.platform_host}"

    @property
    def token_url(self) -> str:
        return self.base_url + "/api/1.0/token"

    @property
    def scopes(self) -> List[str]:
        return list(self._scopes)

    def set_scopes(self, scopes: List[str]) -> "LightspeedOAuth":
        self._scopes = list(scopes)
        return self

    @staticmethod
    def generate_state() -> str:
        """Random CSRF state: 16 bytes as 32 lowercase hex characters."""
        return secrets.token_hex(16)

    def get_authorization_url(self, state: Optional[str] = None) -> Dict[str, str]:
        """Build the URL to send the merchant to.

        Returns:
            {"url": ..., "state": ...}; keep the state to check the callback.
        """
        if state is None:
            state = self.generate_state()

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "state": state,
        }
        if self._scopes:
            params["scope"] = " ".join(self._scopes)

        return {
            "url": f"{self.base_url}/connect?{urlencode(params)}",
            "state": state,
        }

    def exchange_code_for_token(self, code: str) -> Dict[str, Any]:
        """Exchange the callback's authorization code for tokens."""
        return self._make_token_request({
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "code": code,
        })

    def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Get a new access token from a refresh token."""
        return self._make_token_request({
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
        })

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=self.settings.oauth_timeout)

    def _make_token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        logger.debug(f"Requesting token ({data['grant_type']}) from {self.token_url}")
        try:
            with self._get_client() as client:
                response = client.post(
                    self.token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise OAuthError(f"OAuth request failed: {e}", original_exception=e) from e

        try:
            result = json.loads(response.text)
        except ValueError:
            result = None

        if response.status_code >= 400:
            message = "Unknown error"
            if isinstance(result, dict):
                message = result.get("error_description") or result.get("error") or message
            raise OAuthError(message, status_code=response.status_code)

        if not isinstance(result, dict):
            raise OAuthResponseError(response.text, status_code=response.status_code)

        return result
