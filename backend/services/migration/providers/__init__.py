# Providers for the e-signature accounts

from .base import BaseDocumentProvider, ProgressCallback
from .sign_provider import SignDocumentProvider, PAGE_SIZE

__all__ = [
    "BaseDocumentProvider",
    "ProgressCallback",
    "SignDocumentProvider",
    "PAGE_SIZE",
]
