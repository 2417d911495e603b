"""
JournalWatch Server - FastAPI application
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from journalwatch.config.settings_manager import settings
from journalwatch.errors import JournalWatchError
from journalwatch.server.api import activity_router, journal_router, source_router
from journalwatch.server.providers.source_registry import initialize_source_registry
from journalwatch.storage import jw_db_manager
from journalwatch.utils import get_logger

logger = get_logger(__name__)

API_PREFIX = "/api/v1"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle

    Opens the database (creating tables) and loads the source registry at
    startup; the connection pool is closed by DatabaseManager's atexit hook.
    """
    logger.info("Initializing JournalWatch database and source registry...")
    try:
        jw_db_manager.ensure_initialized()
        initialize_source_registry()
        logger.info("Startup complete")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield


app = FastAPI(
    lifespan=lifespan,
    title="JournalWatch API",
    version=VERSION,
    description="""
    ## JournalWatch activity query service

    Read side for tool activities (GitHub, Jira, Slack ...) linked to journal
    entries.

    - **Entry activities**: activities of one entry, from the store the entry names
    - **Activity stats**: counts by source or by temporal bucket
    - **Activities**: the caller's activity feed with story assignment
    - **Journal**: entry listing with batch activity meta

    The caller is identified by the `X-User-Id` header set by the auth gateway.
    """,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "Cache-Control"],
)


# ============================================================================
# Error handlers
# ============================================================================

@app.exception_handler(JournalWatchError)
async def journalwatch_error_handler(request: Request, exc: JournalWatchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ())[1:])}: {error.get('msg')}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {details}", "code": "INVALID_ARGUMENT"},
    )


# ============================================================================
# Routers
# ============================================================================

app.include_router(activity_router, prefix=API_PREFIX)
app.include_router(journal_router, prefix=API_PREFIX)
app.include_router(source_router, prefix=API_PREFIX)


@app.get("/", tags=["Root"])
async def root():
    """Service information and endpoint navigation"""
    return {
        "service": "JournalWatch API",
        "version": VERSION,
        "status": "running",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_spec": "/openapi.json"
        },
        "endpoints": {
            "entry_activities": f"{API_PREFIX}/journal-entries/{{id}}/activities",
            "activity_stats": f"{API_PREFIX}/activity-stats",
            "activities": f"{API_PREFIX}/activities",
            "journal": f"{API_PREFIX}/journal",
            "sources": f"{API_PREFIX}/sources"
        }
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe"""
    return {
        "status": "healthy",
        "service": "journalwatch-api",
        "version": VERSION
    }


if __name__ == "__main__":
    import os
    import uvicorn

    is_dev_mode = os.environ.get("JOURNALWATCH_DEV", "0") == "1"
    if is_dev_mode:
        uvicorn.run(
            "journalwatch.server.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            reload_dirs=["journalwatch"],
            log_level="info"
        )
    else:
        uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
