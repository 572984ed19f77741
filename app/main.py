"""
FastAPI main application for the Anchor Test Runner.

Provides REST API endpoints that build and test submitted Anchor
(Solana smart-contract) projects and return structured test results.
"""
import logging
import shutil
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import Settings, get_settings
from app.routers import projects
from app.services.workspace_service import Workspace

VERSION = "1.0.0"

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format=settings.LOG_FORMAT,
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the workspace and toolchain the service will run against."""
    settings = get_settings()
    workspace = Workspace(settings.WORKSPACE_PATH)
    logger.info(f"Starting Anchor Test Runner API (workspace={workspace.root}, cluster={settings.ANCHOR_CLUSTER})")

    if not workspace.exists():
        logger.warning(f"Workspace is not scaffolded (no Anchor.toml in {workspace.root})")
    if shutil.which(settings.ANCHOR_BINARY) is None:
        logger.warning(f"'{settings.ANCHOR_BINARY}' not found on PATH; builds will fail")

    yield

    logger.info("Shutting down Anchor Test Runner API")


app = FastAPI(
    title="Anchor Test Runner API",
    description="""
    REST API for compiling and testing Anchor smart-contract projects.

    Submit program, test and config files; the service writes them into a
    scaffolded Anchor workspace, assigns a fresh program id, runs
    `anchor build` and `anchor test`, and returns the parsed mocha results.
    """,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# The build and test routes carry their own limits; the limiter lives with them
app.state.limiter = projects.limiter
if settings.RATE_LIMIT_ENABLED:
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info(f"Rate limiting enabled: {projects.TOOLCHAIN_RATE_LIMIT} for build/test")
else:
    logger.info("Rate limiting disabled")

allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Unsafe file paths and other rejected input become 400s."""
    logger.warning(f"Rejected request to {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input", "detail": str(exc)}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": "An unexpected error occurred"}
    )


def _workspace_check(settings: Settings) -> dict:
    workspace = Workspace(settings.WORKSPACE_PATH)
    if workspace.exists():
        return {"status": "healthy", "message": f"Workspace ready at {workspace.root}"}
    return {"status": "unhealthy", "message": f"Anchor.toml not found in {workspace.root}"}


def _toolchain_check(settings: Settings) -> dict:
    binary = settings.ANCHOR_BINARY
    path = shutil.which(binary)
    if path:
        return {"status": "healthy", "message": f"Found {binary} at {path}"}
    return {"status": "unhealthy", "message": f"'{binary}' not found on PATH"}


@app.get("/health", tags=["System"])
async def health_check():
    """Process is up; does not touch the workspace or toolchain."""
    return {"status": "healthy", "version": VERSION}


@app.get("/health/detailed", tags=["System"])
async def detailed_health_check(settings: Settings = Depends(get_settings)):
    """
    Report workspace scaffolding and anchor binary availability.

    Overall status is unhealthy if any single check is.
    """
    checks = {
        "workspace": _workspace_check(settings),
        "toolchain": _toolchain_check(settings),
    }
    failing = [name for name, check in checks.items() if check["status"] != "healthy"]
    if failing:
        logger.error(f"Health checks failing: {', '.join(failing)}")

    return {
        "status": "unhealthy" if failing else "healthy",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


@app.get("/health/live", tags=["System"])
async def liveness_probe():
    return {"status": "alive"}


@app.get("/health/ready", tags=["System"])
async def readiness_probe(settings: Settings = Depends(get_settings)):
    """
    Readiness probe: 200 once a build could run, 503 otherwise.
    """
    for name, check in (("workspace", _workspace_check(settings)), ("toolchain", _toolchain_check(settings))):
        if check["status"] != "healthy":
            logger.error(f"Readiness probe failed: {check['message']}")
            return JSONResponse(
                status_code=503,
                content={"status": "not ready", "reason": f"{name} unavailable"}
            )
    return {"status": "ready"}


@app.get("/api/v1", tags=["System"])
async def api_root():
    """Service name, version and where to find docs and probes."""
    return {
        "message": "Anchor Test Runner API",
        "version": VERSION,
        "docs": "/docs",
        "health": {
            "basic": "/health",
            "detailed": "/health/detailed",
            "liveness": "/health/live",
            "readiness": "/health/ready"
        }
    }


app.include_router(projects.router, prefix="/api/v1/projects", tags=["Projects v1"])

# Unversioned alias and the bare POST /test older clients call
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"], include_in_schema=False)
app.include_router(projects.legacy_router, tags=["Projects"], include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
