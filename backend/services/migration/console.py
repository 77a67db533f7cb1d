"""
Migration console.
Owns the MigrationContext of one source/destination session and sequences
login, listing, migration and deletion over it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence

from core.config import settings
from .exceptions import (
    AuthError,
    ConsoleBusyError,
    LoginSequenceError,
    RedirectsIncomplete,
    SecurityError,
)
from .oauth_service import OAuthService
from .orchestrator import MigrationOrchestrator
from .redirects import ROLES, RedirectDelivery, attribute_redirects
from .session import (
    ComplianceLevel,
    Credentials,
    LibraryDocument,
    MigrationContext,
    OAuthSession,
    TenantRole,
)

logger = logging.getLogger(__name__)


class MigrationConsole:
    """Single-user console session"""

    def __init__(
        self,
        oauth: OAuthService,
        orchestrator: MigrationOrchestrator,
        redirect_uri: str = None
    ):
        self.oauth = oauth
        self.orchestrator = orchestrator
        self.redirect_uri = redirect_uri or settings.REDIRECT_URI
        self.context = MigrationContext()
        self._redirects = RedirectDelivery()
        self._lock = asyncio.Lock()
        # Held from accepting a background migration until it finishes
        self._reserved = False

    @property
    def busy(self) -> bool:
        return self._reserved or self._lock.locked()

    @asynccontextmanager
    async def _exclusive(self, operation: str, reserved: bool = False):
        if self._lock.locked() or (self._reserved and not reserved):
            raise ConsoleBusyError(f"Cannot {operation} while another operation is running")
        async with self._lock:
            yield

    # ==================== LOGIN ====================

    def begin_login(
        self,
        role: TenantRole,
        credentials: Credentials,
        compliance_level: ComplianceLevel = ComplianceLevel.COMMERCIAL,
        shard: str = None
    ) -> str:
        """Start a tenant's OAuth login and return its authorization URL"""
        role = TenantRole(role)
        if role in self.context.login_order:
            raise LoginSequenceError(f"Login for the {role.value} account was already started; reset first")

        session = OAuthSession(
            role=role,
            credentials=credentials,
            compliance_level=ComplianceLevel(compliance_level),
            shard=shard or settings.DEFAULT_SHARD,
            initial_oauth_state=self.oauth.generate_state(),
        )
        self.context.sessions[role] = session
        self.context.login_order.append(role)

        logger.info(f"Started login for the {role.value} account", extra={"role": role.value, "action": "login_started"})
        return self.oauth.get_authorization_url(session, self.redirect_uri)

    def notify_init_started(self):
        """Tell the shell the console is ready to receive the captured redirects"""
        self._redirects.notify_init_started()

    def deliver_redirects(self, redirect_urls: Sequence[str]):
        self._redirects.deliver(redirect_urls)

    async def complete_login(self):
        """Wait for the redirects, attribute them, and log both tenants in"""
        redirect_urls = await self._redirects.wait()
        try:
            attribution = attribute_redirects(redirect_urls, self.context.login_order)
        except RedirectsIncomplete:
            # Let the shell deliver again once both redirects are in
            self._redirects = RedirectDelivery()
            raise

        for role in ROLES:
            session = self.context.session(role)
            try:
                grant = self.oauth.get_auth_grant(attribution[role], session.initial_oauth_state)
                session.token_pair = await self.oauth.get_token(
                    session.compliance_level,
                    session.shard,
                    session.credentials.client_id,
                    session.credentials.client_secret,
                    grant,
                    self.redirect_uri,
                )
            except (AuthError, SecurityError) as e:
                self.context.console.append(f"Login to the {role.value} account failed: {e}")
                raise

            self.context.console.append(f"Logged in to the {role.value} account.")

    async def login_with_redirects(self, redirect_urls: Sequence[str]):
        """Deliver the shell's redirects and finish both logins"""
        self.notify_init_started()
        self.deliver_redirects(redirect_urls)
        await self.complete_login()

    def status(self) -> Dict[str, object]:
        return {
            "login_order": [role.value for role in self.context.login_order],
            "logged_in": {
                role.value: role in self.context.sessions and self.context.sessions[role].is_logged_in
                for role in ROLES
            },
            "busy": self.busy,
            "document_count": len(self.context.documents),
        }

    # ==================== DOCUMENTS ====================

    async def refresh_documents(self, owner_filter: str = "") -> List[LibraryDocument]:
        async with self._exclusive("load templates"):
            return await self.orchestrator.load_documents(self.context, owner_filter)

    def select(self, document_ids: Sequence[str]) -> List[str]:
        self.context.selection = list(document_ids)
        return self.context.selection

    async def migrate_selected(self, document_ids: Optional[Sequence[str]] = None):
        async with self._exclusive("start a migration"):
            if document_ids is not None:
                self.select(document_ids)
            await self.orchestrator.migrate_selected(self.context, self.context.selection)

    def reserve_migration(self, document_ids: Sequence[str]) -> List[str]:
        """
        Claim the console for a migration that will run in the background.

        Raises ConsoleBusyError or NotLoggedInError right away, so a request
        that is accepted is never dropped later. The reservation holds until
        run_reserved_migration finishes.
        """
        if self.busy:
            raise ConsoleBusyError("Cannot start a migration while another operation is running")
        for role in ROLES:
            self.context.logged_in_session(role)

        self._reserved = True
        return self.select(document_ids)

    async def run_reserved_migration(self):
        try:
            async with self._exclusive("start a migration", reserved=True):
                await self.orchestrator.migrate_selected(self.context, self.context.selection)
        finally:
            self._reserved = False

    async def delete_selected(self, document_ids: Optional[Sequence[str]] = None):
        async with self._exclusive("delete templates"):
            if document_ids is not None:
                self.select(document_ids)
            await self.orchestrator.delete_selected(self.context, self.context.selection)

    def reset(self):
        """Forget both logins; the console log is kept"""
        if self.busy:
            raise ConsoleBusyError("Cannot reset while an operation is running")
        console = self.context.console
        self.context = MigrationContext(console=console)
        self._redirects = RedirectDelivery()
        console.append("Session reset.")
