# Migration of library documents between two e-signature accounts
# Source and destination may live in the commercial or government realm

from .console import MigrationConsole
from .orchestrator import MigrationOrchestrator
from .oauth_service import OAuthService
from .session import (
    ComplianceLevel,
    Credentials,
    LibraryDocument,
    MigrationContext,
    TenantRole,
    TokenPair,
)

__all__ = [
    "MigrationConsole",
    "MigrationOrchestrator",
    "OAuthService",
    "ComplianceLevel",
    "Credentials",
    "LibraryDocument",
    "MigrationContext",
    "TenantRole",
    "TokenPair",
]
