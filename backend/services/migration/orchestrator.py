"""
Migration orchestrator.
Drives the selected documents through the importer one at a time.
"""

import logging
from typing import Callable, List, Optional, Protocol, Sequence

from core.config import settings
from .exceptions import AuthError, MigrationToolError, NetworkError
from .oauth_service import OAuthService
from .providers.base import BaseDocumentProvider
from .providers.sign_provider import SignDocumentProvider
from .session import LibraryDocument, MigrationContext, OAuthSession, TenantRole

logger = logging.getLogger(__name__)

SEPARATOR = "=" * 72

# Listing and deletion only talk to the source account
SOURCE_ONLY = (TenantRole.SOURCE,)


class TransferCollaborator(Protocol):
    async def migrate(self, context: MigrationContext, document_id: str) -> None:
        ...


class MigrationOrchestrator:
    """Orchestrate listing, migration and deletion for one console session"""

    def __init__(
        self,
        oauth: OAuthService,
        transfer: TransferCollaborator,
        provider_factory: Optional[Callable[[OAuthSession], BaseDocumentProvider]] = None,
        token_lifetime_seconds: Optional[float] = None,
        refresh_margin_fraction: Optional[float] = None,
        page_limit: Optional[int] = None
    ):
        self.oauth = oauth
        self.transfer = transfer
        self.provider_factory = provider_factory or (lambda session: SignDocumentProvider(oauth.transport, session))
        self.token_lifetime_seconds = (
            token_lifetime_seconds if token_lifetime_seconds is not None else settings.TOKEN_LIFETIME_SECONDS
        )
        self.refresh_margin_fraction = (
            refresh_margin_fraction if refresh_margin_fraction is not None else settings.REFRESH_MARGIN_FRACTION
        )
        self.page_limit = page_limit if page_limit is not None else settings.DEV_PAGE_LIMIT

    async def refresh_tokens(
        self,
        context: MigrationContext,
        roles: Sequence[TenantRole] = (TenantRole.SOURCE, TenantRole.DEST)
    ):
        """Swap the tenants' tokens in order, each fully before the next"""
        for role in roles:
            session = context.logged_in_session(role)
            pair = session.token_pair
            session.token_pair = await self.oauth.swap_tokens(
                session,
                pair.access_token,
                pair.refresh_token,
                pair.time_of_last_refresh,
                self.token_lifetime_seconds,
                self.refresh_margin_fraction,
            )

    async def migrate_selected(self, context: MigrationContext, document_ids: Sequence[str]):
        """
        Migrate documents in selection order.

        A failed document is retried until it succeeds; the loop only moves
        on after a success, so nothing is skipped, repeated or reordered.
        """
        selected = list(document_ids)
        total = len(selected)
        console = context.console

        i = 0
        while i < total:
            try:
                await self.refresh_tokens(context)
            except MigrationToolError as e:
                console.append(f"Could not refresh the account tokens: {e}. Migration stopped.")
                raise

            console.append(f"Beginning migration of document {i + 1} of the {total} documents.")
            try:
                await self.transfer.migrate(context, selected[i])
            except Exception as e:
                logger.warning(
                    f"Migration of {selected[i]} failed, retrying: {e}",
                    extra={"document_id": selected[i], "action": "migration_retry"}
                )
                console.append(
                    f"Migration of document {i + 1} of the {total} failed. Retrying migration of document {i + 1}."
                )
                continue

            console.append(f"Document {i + 1} of the {total} documents has been successfully migrated.")
            console.append(SEPARATOR)
            i += 1

    async def load_documents(self, context: MigrationContext, owner_filter: str = "") -> List[LibraryDocument]:
        """Rebuild the context's document list from the source account"""
        provider = self.provider_factory(context.source)
        console = context.console

        async def report_progress(lower: int, upper: int):
            console.append(f"Loaded more than {lower} and at most {upper} templates from the source account.")

        try:
            await self.refresh_tokens(context, SOURCE_ONLY)
            documents = await provider.list_documents(
                owner_filter=owner_filter,
                page_limit=self.page_limit,
                progress_callback=report_progress,
            )
        except (AuthError, NetworkError) as e:
            console.append(f"Loading templates from the source account failed: {e}")
            raise

        console.append(f"Done loading. Loaded {len(documents)} templates from the source account.")
        context.documents = documents
        return documents

    async def delete_selected(self, context: MigrationContext, document_ids: Sequence[str]):
        """Remove each document from the source account, refreshing the list after each"""
        provider = self.provider_factory(context.source)

        for document_id in list(document_ids):
            try:
                await self.refresh_tokens(context, SOURCE_ONLY)
                await provider.remove_document(document_id)
            except (AuthError, NetworkError) as e:
                logger.warning(
                    f"Could not remove document {document_id}: {e}",
                    extra={"document_id": document_id, "action": "delete_failed"}
                )

            try:
                await self.load_documents(context, "")
            except (AuthError, NetworkError) as e:
                logger.warning(f"Listing refresh after deleting {document_id} failed: {e}")
