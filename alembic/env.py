# alembic/env.py
# Alembic migration environment
#
# Key responsibilities:
#   1. Build database URL dynamically (shared with app/db/session.py)
#   2. Import all models via app/db/base.py so Alembic detects schema changes
#   3. Support both offline (SQL script) and online (live connection) modes

import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

# ── Make app importable from alembic/ directory ───────────────────────────────
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ── Load .env for local development ──────────────────────────────────────────
# In production, env vars come from the container environment and there is no .env
load_dotenv()

# ── Alembic Config ────────────────────────────────────────────────────────────
config = context.config

# Set up Python logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# ── Import all models so Alembic can detect them ─────────────────────────────
# app/db/base.py imports every model; this single import covers all tables
import app.db.base  # noqa: E402,F401
from app.db.base_class import Base  # noqa: E402
from app.db.session import _build_database_url  # noqa: E402

target_metadata = Base.metadata


# ── Offline Mode ──────────────────────────────────────────────────────────────
# Generates SQL migration script without connecting to DB
# Usage: alembic upgrade head --sql > migration.sql
def run_migrations_offline() -> None:
    context.configure(
        url=_build_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,          # Detect column type changes
        compare_server_default=True,
    )
    with context.begin_transaction():
        context.run_migrations()


# ── Online Mode ───────────────────────────────────────────────────────────────
# Connects to DB and runs migrations directly
# Usage: alembic upgrade head
def run_migrations_online() -> None:
    # Override the URL in config (alembic.ini has it blank)
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _build_database_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,    # No connection pooling for migrations
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
        )
        with context.begin_transaction():
            context.run_migrations()


# ── Entry Point ───────────────────────────────────────────────────────────────
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
