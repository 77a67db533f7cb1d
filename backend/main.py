"""
Template Migration Tool
Copies library documents between two e-signature accounts.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import time
from dotenv import load_dotenv

load_dotenv()

from core.config import settings
from core.logging import setup_logging, get_logger, log_request

setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT == "json"
)

logger = get_logger("migration_tool.main")

from api.console import router as console_router
from services.migration.console import MigrationConsole
from services.migration.importers.template_importer import TemplateImporter
from services.migration.oauth_service import OAuthService
from services.migration.orchestrator import MigrationOrchestrator
from services.migration.transport import HttpTransport


def build_console(transport: HttpTransport) -> MigrationConsole:
    """Wire the migration services around one shared transport"""
    oauth = OAuthService(transport)
    orchestrator = MigrationOrchestrator(oauth, TemplateImporter(transport))
    return MigrationConsole(oauth, orchestrator)


@asynccontextmanager
async def lifespan(app: FastAPI):
    transport = HttpTransport()
    app.state.console = build_console(transport)
    logger.info("Template Migration Tool starting...", action="app_startup")
    yield
    await transport.close()
    logger.info("Template Migration Tool shutting down...", action="app_shutdown")

app = FastAPI(
    title="Template Migration Tool",
    description="Migrate library documents between e-signature accounts",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    # The console log is polled; keep it out of the request log
    if request.url.path in ("/health", "/api/v1/console/log"):
        return await call_next(request)

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000

    if request.url.path.startswith("/api/"):
        await log_request(
            request=request,
            response_status=response.status_code,
            duration_ms=duration_ms
        )

    return response

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "service": "template-migration-tool",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    }

@app.get("/api/v1")
async def api_info():
    return {
        "version": "v1",
        "endpoints": {
            "console": "/api/v1/console"
        }
    }

app.include_router(console_router, prefix="/api/v1")
