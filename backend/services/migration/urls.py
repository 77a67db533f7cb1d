"""
Base URI lookup for each compliance realm.
Pure functions of (realm, shard, in_development, use_proxy).
"""

from typing import Optional

from core.config import settings
from .session import ComplianceLevel

# Paths the development proxy rewrites onto the real hosts
PROXY_PATHS = {
    "commercial": "/commercial-api",
    "gov": "/gov-api",
    "oauth": "/oauth-api",
}

GOV_AUTH_SERVICE_PATH = "/api/gateway/adobesignauthservice/api/v1"


def _resolve(in_development: Optional[bool], use_proxy: Optional[bool]):
    if in_development is None:
        in_development = settings.IN_DEVELOPMENT
    if use_proxy is None:
        use_proxy = settings.USE_PROXY
    return in_development, use_proxy


def _gov_domain(compliance_level: ComplianceLevel, in_development: bool) -> str:
    if compliance_level is ComplianceLevel.GOV_STAGE or in_development:
        return "adobesignstage.us"
    return "adobesign.us"


def get_api_base_uri(
    compliance_level: ComplianceLevel,
    shard: str,
    in_development: Optional[bool] = None,
    use_proxy: Optional[bool] = None
) -> str:
    """REST API base URI for a tenant"""
    in_development, use_proxy = _resolve(in_development, use_proxy)
    compliance_level = ComplianceLevel(compliance_level)

    if use_proxy:
        key = "gov" if compliance_level.is_government else "commercial"
        return f"{settings.PROXY_BASE_URL}{PROXY_PATHS[key]}"

    if compliance_level.is_government:
        return f"https://api.{shard}.{_gov_domain(compliance_level, in_development)}/api/rest/v6"
    return f"https://api.{shard}.adobesign.com/api/rest/v6"


def get_authorization_endpoint(
    compliance_level: ComplianceLevel,
    shard: str,
    in_development: Optional[bool] = None,
    use_proxy: Optional[bool] = None
) -> str:
    """URL the user's browser is sent to for the consent screen"""
    in_development, use_proxy = _resolve(in_development, use_proxy)
    compliance_level = ComplianceLevel(compliance_level)

    # The browser talks to the real host even when API traffic is proxied
    if compliance_level.is_government:
        domain = _gov_domain(compliance_level, in_development)
        return f"https://secure.{shard}.{domain}{GOV_AUTH_SERVICE_PATH}/authorize"
    return f"https://secure.{shard}.adobesign.com/public/oauth/v2"


def get_token_endpoint(
    compliance_level: ComplianceLevel,
    shard: str,
    refresh: bool = False,
    in_development: Optional[bool] = None,
    use_proxy: Optional[bool] = None
) -> str:
    """Token endpoint for the authorization-code grant, or the refresh grant"""
    in_development, use_proxy = _resolve(in_development, use_proxy)
    compliance_level = ComplianceLevel(compliance_level)

    if not compliance_level.is_government:
        path = "/oauth/v2/refresh" if refresh else "/oauth/v2/token"
        return f"https://api.{shard}.adobesign.com{path}"

    # Both grants share one endpoint; the proxy target already ends at the auth service
    if use_proxy:
        return f"{settings.PROXY_BASE_URL}{PROXY_PATHS['oauth']}/api/v1/token"
    domain = _gov_domain(compliance_level, in_development)
    return f"https://secure.{shard}.{domain}{GOV_AUTH_SERVICE_PATH}/token"
