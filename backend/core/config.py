"""
Template Migration Tool - Configuration
"""
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # "json" or "text"

    # Environment
    # In development the government realm resolves to its stage hosts
    IN_DEVELOPMENT: bool = False
    USE_PROXY: bool = False
    PROXY_BASE_URL: str = "http://localhost:4200"

    # OAuth
    # Must match the redirect URI registered for both OAuth applications
    REDIRECT_URI: str = "https://migrationtool.com"
    DEFAULT_SHARD: str = "na1"
    OAUTH_SCOPES: str = "library_read:account library_write:account user_login:self"

    # Listing
    DEV_PAGE_LIMIT: int = -1  # Negative disables the page cap

    # Token lifecycle used by the migration loop
    TOKEN_LIFETIME_SECONDS: int = 300
    REFRESH_MARGIN_FRACTION: float = 0.1  # (1/50) * 5

    # HTTP transport
    HTTP_TIMEOUT_SECONDS: float = 60.0
    VERIFY_SSL: bool = True

    # API
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
