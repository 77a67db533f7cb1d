"""
E-signature REST API provider.
Uses the libraryDocuments and transientDocuments endpoints.
"""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import NetworkError
from ..session import LibraryDocument, OAuthSession
from ..transport import HttpTransport, RequestConfig, bearer
from .. import urls
from .base import BaseDocumentProvider, ProgressCallback

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class SignDocumentProvider(BaseDocumentProvider):
    """
    Library document access for one tenant.

    The access token is read from the session on every request, so a token
    swapped by the orchestrator is picked up without rebuilding the provider.
    """

    def __init__(self, transport: HttpTransport, session: OAuthSession):
        self.transport = transport
        self.session = session

    @property
    def base_uri(self) -> str:
        return urls.get_api_base_uri(self.session.compliance_level, self.session.shard)

    def _headers(self) -> Dict[str, str]:
        return bearer(self.session.access_token)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        config = RequestConfig(method=method, url=f"{self.base_uri}{path}", headers=self._headers(), **kwargs)
        return await self.transport.request(config)

    async def list_documents(
        self,
        owner_filter: str = "",
        page_limit: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[LibraryDocument]:
        """Fetch library documents page by page, following the cursor"""
        documents: List[LibraryDocument] = []
        cursor = None
        page = 0

        while True:
            page += 1
            params = {"pageSize": PAGE_SIZE}
            if cursor is not None:
                params["cursor"] = cursor

            data = await self._request("GET", "/libraryDocuments", params=params)
            records, cursor = self._parse_page(data)

            # Filter per page so the page cap counts pages fetched, not documents kept
            if owner_filter:
                records = [r for r in records if r.get("ownerEmail") == owner_filter]
            try:
                documents.extend(LibraryDocument.from_api(r) for r in records)
            except (KeyError, TypeError) as e:
                raise NetworkError(f"Library document record without an id on page {page}") from e

            if progress_callback:
                await progress_callback((page - 1) * PAGE_SIZE, page * PAGE_SIZE)

            if cursor is None:
                break
            if page_limit is not None and page_limit >= 0 and page >= page_limit:
                logger.info(f"Stopped listing after {page} pages (page limit {page_limit})")
                break

        return documents

    def _parse_page(self, data: Any):
        if not isinstance(data, dict) or not isinstance(data.get("libraryDocumentList"), list):
            raise NetworkError("Library document listing returned a malformed page")
        page_info = data.get("page") or {}
        return data["libraryDocumentList"], page_info.get("nextCursor")

    async def remove_document(self, document_id: str):
        await self.set_document_state(document_id, "REMOVED")

    async def get_document(self, document_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/libraryDocuments/{document_id}")

    async def get_form_fields(self, document_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/libraryDocuments/{document_id}/formFields")

    async def download_combined_document(self, document_id: str) -> bytes:
        data = await self._request("GET", f"/libraryDocuments/{document_id}/combinedDocument/url")
        if not isinstance(data, dict) or not data.get("url"):
            raise NetworkError(f"No combined document URL for {document_id}")
        # The URL is pre-signed and must be fetched without the bearer header
        return await self.transport.download(data["url"])

    async def upload_transient_document(self, file_name: str, content: bytes) -> str:
        data = await self.transport.upload(
            f"{self.base_uri}/transientDocuments",
            headers=self._headers(),
            file_name=file_name,
            content=content,
        )
        return data["transientDocumentId"]

    async def create_document(self, payload: Dict[str, Any]) -> str:
        data = await self._request("POST", "/libraryDocuments", json=payload)
        return data["id"]

    async def put_form_fields(self, document_id: str, form_fields: Dict[str, Any]):
        await self._request("PUT", f"/libraryDocuments/{document_id}/formFields", json=form_fields)

    async def set_document_state(self, document_id: str, state: str):
        await self._request("PUT", f"/libraryDocuments/{document_id}/state", json={"state": state})
