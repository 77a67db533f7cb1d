"""
Base provider interface for the e-signature accounts.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..session import LibraryDocument

# Receives (lower, upper) bounds on the number of documents loaded so far
ProgressCallback = Callable[[int, int], Awaitable[None]]


class BaseDocumentProvider(ABC):
    """Abstract access to one tenant's library documents"""

    @abstractmethod
    async def list_documents(
        self,
        owner_filter: str = "",
        page_limit: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[LibraryDocument]:
        """Walk every page of the library document listing"""
        pass

    @abstractmethod
    async def remove_document(self, document_id: str):
        """Mark a library document as removed"""
        pass

    @abstractmethod
    async def get_document(self, document_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def get_form_fields(self, document_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def download_combined_document(self, document_id: str) -> bytes:
        """Download the PDF the document's form fields are placed on"""
        pass

    @abstractmethod
    async def upload_transient_document(self, file_name: str, content: bytes) -> str:
        """Upload a file and return its transient document id"""
        pass

    @abstractmethod
    async def create_document(self, payload: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    async def put_form_fields(self, document_id: str, form_fields: Dict[str, Any]):
        pass

    @abstractmethod
    async def set_document_state(self, document_id: str, state: str):
        pass
