"""
Errors raised by the migration services.
"""

from typing import Optional


class MigrationToolError(Exception):
    """Base error for the migration tool"""
    pass


class AuthError(MigrationToolError):
    """Bad or expired grant, invalid credentials, or unreachable token endpoint"""
    pass


class SecurityError(MigrationToolError):
    """OAuth state parameter did not match the one issued at login"""
    pass


class NetworkError(MigrationToolError):
    """HTTP failure, timeout, or malformed response"""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class TransferError(MigrationToolError):
    """A library document could not be copied to the destination account"""

    def __init__(self, document_id: str, message: str):
        super().__init__(f"Transfer of {document_id} failed: {message}")
        self.document_id = document_id


class RedirectsIncomplete(MigrationToolError):
    """Not enough redirects captured yet to attribute them to both tenants"""
    pass


class LoginSequenceError(MigrationToolError):
    """Login steps were performed out of order"""
    pass


class NotLoggedInError(MigrationToolError):
    """An operation needs a tenant that has not completed login"""
    pass


class ConsoleBusyError(MigrationToolError):
    """Another long-running console operation is in progress"""
    pass
