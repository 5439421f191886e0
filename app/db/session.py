# app/db/session.py
# Database session management
#
# Connection modes:
#   Local dev  → TCP via psycopg2  (DATABASE_URL in .env)
#   Production → Unix socket via pg8000 (auto-detected by APP_ENV=production)
#   Tests      → SQLite (DATABASE_URL=sqlite://...)
#
# FastAPI endpoints get a session via: Depends(get_db)

import logging
import os
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger("freetutor.db")


def _build_database_url() -> str:
    """
    Build the correct DATABASE_URL for the current environment.

    - Development: reads DATABASE_URL directly from env (psycopg2 TCP)
    - Production:  constructs a pg8000 Unix socket URL from individual
                   DB_USER, DB_PASS, DB_NAME, DB_SOCKET_DIR env vars
    """
    app_env = os.getenv("APP_ENV", "development")

    if app_env == "production":
        db_user = os.environ["DB_USER"]
        db_pass = os.environ["DB_PASS"]
        db_name = os.environ["DB_NAME"]
        socket_dir = os.getenv("DB_SOCKET_DIR", "/var/run/postgresql")
        return (
            f"postgresql+pg8000://{db_user}:{db_pass}@/{db_name}"
            f"?unix_sock={socket_dir}/.s.PGSQL.5432"
        )

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError(
            "DATABASE_URL environment variable is not set. "
            "Copy .env.example to .env and fill in your local DB credentials."
        )
    return database_url


def _engine_options(url: str) -> Dict[str, Any]:
    # SQLite has no server-side pool; the thread check is relaxed for TestClient
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # pool_pre_ping → test connection before each use (handles idle disconnects)
    # keep the per-instance pool small, containers scale horizontally
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 1800,
    }


DATABASE_URL = _build_database_url()

# ── Engine ────────────────────────────────────────────────────────────────────
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# ── Session Factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Prevents lazy load errors after commit
)


# ── FastAPI Dependency ────────────────────────────────────────────────────────
def get_db() -> Generator[Session, None, None]:
    """
    Dependency injected into every FastAPI endpoint that needs DB access.

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            ...

    Guarantees the session is always closed, even on exceptions.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ── Health Check Helper ───────────────────────────────────────────────────────
def check_db_connection() -> bool:
    """
    Used by /health endpoint to verify DB connectivity.
    Returns True if connected, False otherwise.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning(f"Database ping failed: {exc}")
        return False
