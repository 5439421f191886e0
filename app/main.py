# app/main.py
# FreeTutor FastAPI application entry point
#
# Startup:  logging, optional migrations, DB connection check
# Shutdown: Clean connection pool disposal
# Routes:   /health, /api/v1/* (all endpoints via master router)
# Errors:   FreeTutorError → {"detail", "code"} with its status,
#           body validation → 400, anything else → logged 500

import logging
from contextlib import asynccontextmanager

from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.exceptions import FreeTutorError, Internal, InvalidInput
from app.core.logging_config import setup_logging
from app.db.session import check_db_connection, engine

logger = logging.getLogger("freetutor.app")


def run_startup_migrations() -> bool:
    """Run `alembic upgrade head` using the project alembic.ini."""
    try:
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations: OK")
        return True
    except Exception as exc:
        logger.warning(f"Database migrations failed -- {exc}")
        return False


# ── Lifespan ──────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup and shutdown logic.
    FastAPI's modern replacement for @app.on_event("startup").
    """
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} [{settings.app_env}]")

    if settings.auto_migrate_on_startup:
        run_startup_migrations()

    # Verify DB connection
    if check_db_connection():
        logger.info("Database connection: OK")
    else:
        logger.warning("Database connection failed -- check DATABASE_URL")

    yield  # App runs here

    # Shutdown
    logger.info("Shutting down -- disposing DB connection pool")
    engine.dispose()


# ── App Instance ──────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="FreeTutor -- free tutor matching for students with special educational needs.",
    docs_url="/api/docs",       # Swagger UI
    redoc_url="/api/redoc",     # ReDoc
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)


# ── CORS ──────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Exception Handlers ────────────────────────────────────────────────────────

@app.exception_handler(FreeTutorError)
async def freetutor_error_handler(request: Request, exc: FreeTutorError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg", ""))
    error = InvalidInput("; ".join(messages) or "Invalid request.")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = Internal()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ── Routes ────────────────────────────────────────────────────────────────────

# All API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


# ── Health Check ──────────────────────────────────────────────────────────────

@app.get("/health", tags=["Health"], include_in_schema=False)
def health_check():
    """
    Health check endpoint for Cloud Run and load balancers.
    Returns 200 OK if the app is running; DB status included for observability.
    """
    db_ok = check_db_connection()
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.app_env,
            "services": {
                "database": "ok" if db_ok else "unavailable",
            },
        },
    )


# ── Root ──────────────────────────────────────────────────────────────────────

@app.get("/", include_in_schema=False)
def root():
    return JSONResponse(
        content={
            "message": "FreeTutor API",
            "docs": "/api/docs",
            "health": "/health",
        }
    )
