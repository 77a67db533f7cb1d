"""
Session state for a source/destination migration.

Everything a console session mutates lives in a MigrationContext that is
passed explicitly into the lister, the orchestrator and the transfer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .exceptions import NotLoggedInError


class TenantRole(str, Enum):
    SOURCE = "source"
    DEST = "dest"


class ComplianceLevel(str, Enum):
    COMMERCIAL = "commercial"
    GOV_STAGE = "gov-stage"
    GOV_PROD = "gov-prod"

    @property
    def is_government(self) -> bool:
        return self is not ComplianceLevel.COMMERCIAL


@dataclass(frozen=True)
class Credentials:
    """OAuth application credentials supplied by the user"""
    client_id: str
    client_secret: str
    login_email: str = ""

    def __repr__(self) -> str:
        return f"Credentials(client_id={self.client_id!r}, login_email={self.login_email!r})"


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh tokens; replaced as a whole on every refresh"""
    access_token: str
    refresh_token: str
    time_of_last_refresh: datetime

    def __repr__(self) -> str:
        return f"TokenPair(time_of_last_refresh={self.time_of_last_refresh.isoformat()})"


@dataclass
class OAuthSession:
    """One tenant's login, from initiation until the console resets"""
    role: TenantRole
    credentials: Credentials
    compliance_level: ComplianceLevel
    shard: str
    initial_oauth_state: str
    token_pair: Optional[TokenPair] = None

    @property
    def is_logged_in(self) -> bool:
        return self.token_pair is not None

    @property
    def access_token(self) -> str:
        if self.token_pair is None:
            raise NotLoggedInError(f"The {self.role.value} account is not logged in")
        return self.token_pair.access_token


@dataclass(frozen=True)
class LibraryDocument:
    id: str
    name: str
    owner_email: str = ""

    @classmethod
    def from_api(cls, record: dict) -> "LibraryDocument":
        return cls(
            id=record["id"],
            name=record.get("name", ""),
            owner_email=record.get("ownerEmail", ""),
        )


class ConsoleLog:
    """Append-only progress record shown to the user"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._entries: List[str] = []
        self._logger = logger or logging.getLogger("migration_tool.console")

    def append(self, message: str):
        self._entries.append(message)
        self._logger.info(message)

    @property
    def entries(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def since(self, offset: int) -> List[str]:
        return self._entries[max(offset, 0):]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))


@dataclass
class MigrationContext:
    """Orchestration context owned by a single console session"""
    console: ConsoleLog = field(default_factory=ConsoleLog)
    sessions: Dict[TenantRole, OAuthSession] = field(default_factory=dict)
    login_order: List[TenantRole] = field(default_factory=list)
    documents: List[LibraryDocument] = field(default_factory=list)
    selection: List[str] = field(default_factory=list)

    def session(self, role: TenantRole) -> OAuthSession:
        session = self.sessions.get(role)
        if session is None:
            raise NotLoggedInError(f"No login has been started for the {role.value} account")
        return session

    def logged_in_session(self, role: TenantRole) -> OAuthSession:
        session = self.session(role)
        if not session.is_logged_in:
            raise NotLoggedInError(f"The {role.value} account is not logged in")
        return session

    @property
    def source(self) -> OAuthSession:
        return self.logged_in_session(TenantRole.SOURCE)

    @property
    def dest(self) -> OAuthSession:
        return self.logged_in_session(TenantRole.DEST)
