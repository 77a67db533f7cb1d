"""
OAuth Service Unit Tests
"""

from urllib.parse import parse_qs, urlparse

import pytest

from conftest import redirect_url, token_response
from services.migration.exceptions import AuthError, NetworkError, SecurityError
from services.migration.session import ComplianceLevel, TenantRole, TokenPair

pytestmark = pytest.mark.unit


class TestAuthorizationUrl:
    """Test consent-screen URL construction."""

    def test_generate_state_is_random_and_url_safe(self, oauth):
        states = {oauth.generate_state() for _ in range(20)}

        assert len(states) == 20
        assert all(len(s) >= 43 and "/" not in s and "+" not in s for s in states)

    def test_url_carries_session_state_and_client(self, oauth, make_session):
        session = make_session(TenantRole.SOURCE, logged_in=False)

        url = oauth.get_authorization_url(session, "https://migrationtool.com")
        parsed = urlparse(url)
        query = parse_qs(parsed.query)

        assert parsed.netloc == "secure.na1.adobesign.com"
        assert query["state"] == ["source-state"]
        assert query["client_id"] == ["source-client"]
        assert query["redirect_uri"] == ["https://migrationtool.com"]
        assert query["response_type"] == ["code"]

    def test_government_url_uses_auth_service(self, oauth, make_session):
        session = make_session(TenantRole.DEST, logged_in=False, compliance_level=ComplianceLevel.GOV_PROD)

        url = oauth.get_authorization_url(session)

        assert url.startswith("https://secure.na1.adobesign.us/api/gateway/adobesignauthservice/api/v1/authorize?")


class TestGetAuthGrant:
    """Test authorization code extraction and state verification."""

    def test_returns_code_when_state_matches(self, oauth):
        assert oauth.get_auth_grant(redirect_url("CODE123", "state-a"), "state-a") == "CODE123"

    def test_state_mismatch_raises_security_error(self, oauth):
        with pytest.raises(SecurityError):
            oauth.get_auth_grant(redirect_url("CODE123", "state-b"), "state-a")

    def test_missing_state_raises_security_error(self, oauth):
        with pytest.raises(SecurityError):
            oauth.get_auth_grant("https://migrationtool.com/?code=CODE123", "state-a")

    def test_denied_consent_raises_auth_error(self, oauth):
        url = "https://migrationtool.com/?error=access_denied&error_description=User+denied&state=state-a"

        with pytest.raises(AuthError, match="User denied"):
            oauth.get_auth_grant(url, "state-a")

    def test_missing_code_raises_auth_error(self, oauth):
        with pytest.raises(AuthError):
            oauth.get_auth_grant("https://migrationtool.com/?state=state-a", "state-a")


class TestGetToken:
    """Test the authorization-code exchange."""

    @pytest.mark.asyncio
    async def test_exchanges_code_for_pair(self, oauth, transport, clock):
        transport.request.return_value = token_response("access-1", "refresh-1")

        pair = await oauth.get_token(
            ComplianceLevel.COMMERCIAL, "na2", "client", "secret", "CODE123", "https://migrationtool.com"
        )

        assert pair == TokenPair("access-1", "refresh-1", clock())
        config = transport.request.await_args.args[0]
        assert config.method == "POST"
        assert config.url == "https://api.na2.adobesign.com/oauth/v2/token"
        assert config.form["grant_type"] == "authorization_code"
        assert config.form["code"] == "CODE123"
        assert config.form["redirect_uri"] == "https://migrationtool.com"

    @pytest.mark.asyncio
    async def test_rejected_grant_raises_auth_error(self, oauth, transport):
        transport.request.side_effect = NetworkError("POST token returned 400", status=400)

        with pytest.raises(AuthError):
            await oauth.get_token(ComplianceLevel.GOV_STAGE, "na1", "c", "s", "EXPIRED", "https://migrationtool.com")

    @pytest.mark.asyncio
    async def test_response_without_refresh_token_raises_auth_error(self, oauth, transport):
        transport.request.return_value = token_response("access-1")

        with pytest.raises(AuthError):
            await oauth.get_token(ComplianceLevel.COMMERCIAL, "na1", "c", "s", "CODE", "https://migrationtool.com")


class TestSwapTokens:
    """Test proactive token refresh."""

    @pytest.mark.asyncio
    async def test_fresh_pair_is_returned_without_network_call(self, oauth, transport, clock, make_session):
        session = make_session(TenantRole.SOURCE)
        last_refresh = clock()
        clock.advance(29)

        pair = await oauth.swap_tokens(session, "access", "refresh", last_refresh, 300, 0.1)

        assert pair == TokenPair("access", "refresh", last_refresh)
        transport.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_pair_past_margin_is_refreshed(self, oauth, transport, clock, make_session):
        session = make_session(TenantRole.SOURCE)
        last_refresh = clock()
        clock.advance(30)
        transport.request.return_value = token_response("access-2", "refresh-2")

        pair = await oauth.swap_tokens(session, "access", "refresh", last_refresh, 300, 0.1)

        assert pair.access_token == "access-2"
        assert pair.refresh_token == "refresh-2"
        assert pair.time_of_last_refresh > last_refresh
        config = transport.request.await_args.args[0]
        assert config.url == "https://api.na1.adobesign.com/oauth/v2/refresh"
        assert config.form == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh",
            "client_id": "source-client",
            "client_secret": "source-secret",
        }

    @pytest.mark.asyncio
    async def test_refresh_keeps_refresh_token_when_not_rotated(self, oauth, transport, clock, make_session):
        session = make_session(TenantRole.DEST)
        last_refresh = clock()
        clock.advance(600)
        transport.request.return_value = token_response("access-2")

        pair = await oauth.swap_tokens(session, "access", "refresh", last_refresh, 300, 0.1)

        assert pair.refresh_token == "refresh"

    @pytest.mark.asyncio
    async def test_government_refresh_uses_token_endpoint(self, oauth, transport, clock, make_session):
        session = make_session(TenantRole.DEST, compliance_level=ComplianceLevel.GOV_STAGE)
        last_refresh = clock()
        clock.advance(60)
        transport.request.return_value = token_response("access-2", "refresh-2")

        await oauth.swap_tokens(session, "access", "refresh", last_refresh, 300, 0.1)

        config = transport.request.await_args.args[0]
        assert config.url == (
            "https://secure.na1.adobesignstage.us/api/gateway/adobesignauthservice/api/v1/token"
        )

    @pytest.mark.asyncio
    async def test_failed_refresh_raises_auth_error(self, oauth, transport, clock, make_session):
        session = make_session(TenantRole.SOURCE)
        last_refresh = clock()
        clock.advance(300)
        transport.request.side_effect = NetworkError("timed out")

        with pytest.raises(AuthError):
            await oauth.swap_tokens(session, "access", "refresh", last_refresh, 300, 0.1)
