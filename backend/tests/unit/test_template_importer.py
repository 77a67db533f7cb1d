"""
Template Importer Unit Tests
"""

import pytest
from unittest.mock import AsyncMock

from services.migration.exceptions import NetworkError, TransferError
from services.migration.importers.template_importer import TemplateImporter
from services.migration.providers.base import BaseDocumentProvider
from services.migration.session import TenantRole

pytestmark = pytest.mark.unit


@pytest.fixture
def providers():
    return {
        TenantRole.SOURCE: AsyncMock(spec=BaseDocumentProvider),
        TenantRole.DEST: AsyncMock(spec=BaseDocumentProvider),
    }


@pytest.fixture
def importer(transport, providers):
    return TemplateImporter(transport, provider_factory=lambda session: providers[session.role])


@pytest.fixture
def source(providers):
    provider = providers[TenantRole.SOURCE]
    provider.get_document.return_value = {
        "id": "doc-1",
        "name": "Lease Agreement",
        "sharingMode": "ACCOUNT",
        "templateTypes": ["DOCUMENT", "FORM_FIELD_LAYER"],
    }
    provider.get_form_fields.return_value = {"fields": [{"name": "Signature 1"}]}
    provider.download_combined_document.return_value = b"%PDF-1.7 lease"
    return provider


@pytest.fixture
def dest(providers):
    provider = providers[TenantRole.DEST]
    provider.upload_transient_document.return_value = "TRANSIENT-1"
    provider.create_document.return_value = "NEW-1"
    return provider


class TestTemplateImporter:
    """Test copying one document between accounts."""

    @pytest.mark.asyncio
    async def test_copies_document_into_destination(self, importer, context, source, dest):
        await importer.migrate(context, "doc-1")

        source.download_combined_document.assert_awaited_once_with("doc-1")
        dest.upload_transient_document.assert_awaited_once_with("Lease Agreement.pdf", b"%PDF-1.7 lease")
        dest.create_document.assert_awaited_once_with({
            "fileInfos": [{"transientDocumentId": "TRANSIENT-1"}],
            "name": "Lease Agreement",
            "sharingMode": "ACCOUNT",
            "templateTypes": ["DOCUMENT", "FORM_FIELD_LAYER"],
            "state": "AUTHORING",
        })
        dest.put_form_fields.assert_awaited_once_with("NEW-1", {"fields": [{"name": "Signature 1"}]})
        dest.set_document_state.assert_awaited_once_with("NEW-1", "ACTIVE")

    @pytest.mark.asyncio
    async def test_document_without_fields_skips_form_fields(self, importer, context, source, dest):
        source.get_form_fields.return_value = {"fields": []}

        await importer.migrate(context, "doc-1")

        dest.put_form_fields.assert_not_called()
        dest.set_document_state.assert_awaited_once_with("NEW-1", "ACTIVE")

    @pytest.mark.asyncio
    async def test_source_never_modified(self, importer, context, source, dest):
        await importer.migrate(context, "doc-1")

        source.create_document.assert_not_called()
        source.set_document_state.assert_not_called()
        source.remove_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_raises_transfer_error(self, importer, context, source, dest):
        dest.upload_transient_document.side_effect = NetworkError("POST transientDocuments returned 413", status=413)

        with pytest.raises(TransferError) as exc_info:
            await importer.migrate(context, "doc-1")

        assert exc_info.value.document_id == "doc-1"
        dest.create_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_response_key_raises_transfer_error(self, importer, context, source, dest):
        dest.create_document.side_effect = KeyError("id")

        with pytest.raises(TransferError):
            await importer.migrate(context, "doc-1")
