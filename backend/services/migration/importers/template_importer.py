"""
Library document importer.
Copies one template from the source account into the destination account.
"""

import logging
from typing import Callable, Optional

from services.migration.exceptions import TransferError
from services.migration.providers.base import BaseDocumentProvider
from services.migration.providers.sign_provider import SignDocumentProvider
from services.migration.session import MigrationContext, OAuthSession
from services.migration.transport import HttpTransport

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[OAuthSession], BaseDocumentProvider]


class TemplateImporter:
    """Re-upload a library document through a transient document"""

    def __init__(
        self,
        transport: Optional[HttpTransport] = None,
        provider_factory: Optional[ProviderFactory] = None
    ):
        self.transport = transport or HttpTransport()
        self.provider_factory = provider_factory or (lambda session: SignDocumentProvider(self.transport, session))

    async def migrate(self, context: MigrationContext, document_id: str):
        """Copy a document; raises TransferError on any failure"""
        source = self.provider_factory(context.source)
        dest = self.provider_factory(context.dest)

        try:
            info = await source.get_document(document_id)
            form_fields = await source.get_form_fields(document_id)
            content = await source.download_combined_document(document_id)

            name = info.get("name") or document_id
            transient_id = await dest.upload_transient_document(f"{name}.pdf", content)

            new_id = await dest.create_document({
                "fileInfos": [{"transientDocumentId": transient_id}],
                "name": name,
                "sharingMode": info.get("sharingMode", "USER"),
                "templateTypes": info.get("templateTypes", ["DOCUMENT"]),
                "state": "AUTHORING",
            })

            if form_fields and form_fields.get("fields"):
                await dest.put_form_fields(new_id, form_fields)
            await dest.set_document_state(new_id, "ACTIVE")
        except TransferError:
            raise
        except Exception as e:
            logger.error(f"Failed to migrate document {document_id}: {e}", extra={"document_id": document_id})
            raise TransferError(document_id, str(e)) from e

        logger.info(
            f"Migrated document {document_id} as {new_id} ({len(content)} bytes)",
            extra={"document_id": document_id, "action": "document_migrated"}
        )
