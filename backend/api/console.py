"""
Migration console API endpoints.
Drives login, listing, migration and deletion for one console session.
"""

from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from core.logging import get_logger
from services.migration.console import MigrationConsole
from services.migration.exceptions import (
    AuthError,
    ConsoleBusyError,
    LoginSequenceError,
    MigrationToolError,
    NetworkError,
    NotLoggedInError,
    RedirectsIncomplete,
    SecurityError,
)
from services.migration.session import ComplianceLevel, Credentials, LibraryDocument, TenantRole

logger = get_logger("migration_tool.api.console")

router = APIRouter(prefix="/console", tags=["Migration Console"])


# ==================== REQUEST/RESPONSE MODELS ====================

class LoginRequest(BaseModel):
    """Credentials for one account's OAuth application"""
    client_id: str
    client_secret: str
    login_email: str = ""
    compliance_level: ComplianceLevel = ComplianceLevel.COMMERCIAL
    shard: Optional[str] = None


class LoginResponse(BaseModel):
    role: TenantRole
    authorization_url: str


class RedirectsRequest(BaseModel):
    """Redirect URLs captured by the shell, in capture order"""
    redirect_urls: List[str]


class RefreshDocumentsRequest(BaseModel):
    owner: str = ""


class DocumentSelectionRequest(BaseModel):
    document_ids: List[str] = Field(..., min_length=1)


class DocumentResponse(BaseModel):
    id: str
    name: str
    owner_email: str


class ConsoleLogResponse(BaseModel):
    offset: int
    entries: List[str]


# ==================== HELPER FUNCTIONS ====================

def get_console(request: Request) -> MigrationConsole:
    """Console instance created at application startup"""
    return request.app.state.console


def to_http_error(error: MigrationToolError) -> HTTPException:
    if isinstance(error, AuthError):
        return HTTPException(status_code=401, detail=str(error))
    if isinstance(error, SecurityError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NetworkError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, (RedirectsIncomplete, LoginSequenceError, ConsoleBusyError, NotLoggedInError)):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def serialize_documents(documents: List[LibraryDocument]) -> List[DocumentResponse]:
    return [DocumentResponse(id=d.id, name=d.name, owner_email=d.owner_email) for d in documents]


async def run_migration(console: MigrationConsole):
    """Background migration task for a reserved console"""
    try:
        await console.run_reserved_migration()
    except MigrationToolError as e:
        logger.error(f"Migration stopped: {e}", action="migration_stopped")


# ==================== LOGIN ====================

@router.post("/login/{role}", response_model=LoginResponse)
async def begin_login(
    role: TenantRole,
    request: LoginRequest,
    console: MigrationConsole = Depends(get_console)
):
    """
    Start the OAuth login for the source or destination account.
    Returns the URL the shell should open for the consent screen.
    """
    credentials = Credentials(
        client_id=request.client_id,
        client_secret=request.client_secret,
        login_email=request.login_email,
    )
    try:
        url = console.begin_login(role, credentials, request.compliance_level, request.shard)
    except MigrationToolError as e:
        raise to_http_error(e)

    return LoginResponse(role=role, authorization_url=url)


@router.post("/redirects")
async def deliver_redirects(
    request: RedirectsRequest,
    console: MigrationConsole = Depends(get_console)
):
    """
    Receive the shell's captured redirects and log both accounts in.
    Called once per login pair.
    """
    try:
        await console.login_with_redirects(request.redirect_urls)
    except MigrationToolError as e:
        logger.warning(f"Login failed: {e}", action="login_failed")
        raise to_http_error(e)

    logger.info("Both accounts logged in", action="login_completed")
    return console.status()


@router.get("/status")
async def get_status(console: MigrationConsole = Depends(get_console)):
    """Login and activity state of the console"""
    return console.status()


@router.post("/reset")
async def reset(console: MigrationConsole = Depends(get_console)):
    """Forget both logins and the loaded documents"""
    try:
        console.reset()
    except MigrationToolError as e:
        raise to_http_error(e)
    return console.status()


# ==================== DOCUMENTS ====================

@router.get("/documents", response_model=List[DocumentResponse])
async def list_documents(console: MigrationConsole = Depends(get_console)):
    """Documents loaded by the last refresh"""
    return serialize_documents(console.context.documents)


@router.post("/documents/refresh", response_model=List[DocumentResponse])
async def refresh_documents(
    request: RefreshDocumentsRequest,
    console: MigrationConsole = Depends(get_console)
):
    """Reload every library document of the source account, optionally for one owner"""
    try:
        documents = await console.refresh_documents(request.owner)
    except MigrationToolError as e:
        raise to_http_error(e)
    return serialize_documents(documents)


@router.post("/migrate", status_code=202)
async def migrate_documents(
    request: DocumentSelectionRequest,
    background_tasks: BackgroundTasks,
    console: MigrationConsole = Depends(get_console)
):
    """
    Migrate the selected documents in the background.
    Progress is reported through the console log.
    """
    try:
        console.reserve_migration(request.document_ids)
    except MigrationToolError as e:
        raise to_http_error(e)

    background_tasks.add_task(run_migration, console)
    logger.info(f"Started migration of {len(request.document_ids)} documents", action="migration_started")
    return {"status": "started", "count": len(request.document_ids)}


@router.post("/delete", response_model=List[DocumentResponse])
async def delete_documents(
    request: DocumentSelectionRequest,
    console: MigrationConsole = Depends(get_console)
):
    """Remove the selected documents from the source account"""
    try:
        await console.delete_selected(request.document_ids)
    except MigrationToolError as e:
        raise to_http_error(e)
    return serialize_documents(console.context.documents)


@router.get("/log", response_model=ConsoleLogResponse)
async def get_log(offset: int = 0, console: MigrationConsole = Depends(get_console)):
    """Console log entries from an offset"""
    return ConsoleLogResponse(offset=offset, entries=console.context.console.since(offset))
