"""
OAuth service for the source and destination accounts.
Handles authorization URLs, redirect parsing, code exchange and token refresh.
"""

import secrets
import logging
from typing import Callable, Optional
from datetime import datetime, timezone
from urllib.parse import urlencode, urlparse, parse_qs

from core.config import settings
from .exceptions import AuthError, NetworkError, SecurityError
from .session import ComplianceLevel, OAuthSession, TokenPair
from .transport import HttpTransport, RequestConfig
from . import urls

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OAuthService:
    """Handle OAuth flows and the token lifecycle for both tenants"""

    def __init__(
        self,
        transport: Optional[HttpTransport] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.transport = transport or HttpTransport()
        self._now = clock or utcnow

    def generate_state(self) -> str:
        """Generate OAuth state parameter"""
        return secrets.token_urlsafe(32)

    def get_authorization_url(self, session: OAuthSession, redirect_uri: str = None) -> str:
        """Build the consent-screen URL for a session"""
        params = {
            "response_type": "code",
            "client_id": session.credentials.client_id,
            "redirect_uri": redirect_uri or settings.REDIRECT_URI,
            "scope": settings.OAUTH_SCOPES,
            "state": session.initial_oauth_state,
        }
        endpoint = urls.get_authorization_endpoint(session.compliance_level, session.shard)
        return f"{endpoint}?{urlencode(params)}"

    def get_auth_grant(self, redirect_url: str, expected_state: str) -> str:
        """
        Extract the authorization code from a redirect URL.

        The state parameter must match the one issued when login started;
        anything else means the redirect cannot be trusted.
        """
        query = parse_qs(urlparse(redirect_url).query)

        state = query.get("state", [None])[0]
        if not state or not secrets.compare_digest(state, expected_state):
            logger.warning("OAuth state mismatch on redirect", extra={"action": "oauth_state_mismatch"})
            raise SecurityError("OAuth state parameter does not match the login that was started")

        if "error" in query:
            description = query.get("error_description", query["error"])[0]
            raise AuthError(f"Authorization was not granted: {description}")

        code = query.get("code", [None])[0]
        if not code:
            raise AuthError("Redirect URL does not carry an authorization code")
        return code

    async def get_token(
        self,
        compliance_level: ComplianceLevel,
        shard: str,
        client_id: str,
        client_secret: str,
        authorization_grant: str,
        redirect_uri: str
    ) -> TokenPair:
        """Exchange authorization code for tokens"""
        data = await self._post_token(
            urls.get_token_endpoint(compliance_level, shard),
            {
                "grant_type": "authorization_code",
                "code": authorization_grant,
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
            }
        )

        if not data.get("refresh_token"):
            raise AuthError("Token response did not include a refresh token")

        return TokenPair(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            time_of_last_refresh=self._now(),
        )

    async def refresh_token(self, session: OAuthSession, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new access token"""
        data = await self._post_token(
            urls.get_token_endpoint(session.compliance_level, session.shard, refresh=True),
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": session.credentials.client_id,
                "client_secret": session.credentials.client_secret,
            }
        )

        # The commercial refresh endpoint does not rotate the refresh token
        return TokenPair(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or refresh_token,
            time_of_last_refresh=self._now(),
        )

    async def swap_tokens(
        self,
        session: OAuthSession,
        access_token: str,
        refresh_token: str,
        time_of_last_refresh: datetime,
        token_lifetime_seconds: float,
        refresh_margin_fraction: float
    ) -> TokenPair:
        """Refresh the pair once the margin of its lifetime has elapsed"""
        now = self._now()
        elapsed = (now - time_of_last_refresh).total_seconds()

        if elapsed < token_lifetime_seconds * refresh_margin_fraction:
            return TokenPair(access_token, refresh_token, time_of_last_refresh)

        logger.debug(
            f"Refreshing {session.role.value} token after {elapsed:.1f}s",
            extra={"role": session.role.value, "action": "token_refresh"}
        )
        return await self.refresh_token(session, refresh_token)

    async def _post_token(self, url: str, form: dict) -> dict:
        try:
            data = await self.transport.request(RequestConfig(method="POST", url=url, form=form))
        except NetworkError as e:
            logger.error(f"Token request to {url} failed: {e.status}")
            raise AuthError(f"Token request failed: {e}") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthError("Token response did not include an access token")
        return data
