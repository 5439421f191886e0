# app/db/base.py
# Alembic model registry: imports Base + every model so Alembic detects all tables.
# Do NOT import this file from model files (use app.db.base_class instead).
# This file is only imported by:
#   - alembic/env.py        (schema detection)
#   - app/db/init_db.py     (seeding)
#   - endpoint modules      (so relationships resolve before the first query)

from app.db.base_class import Base  # noqa: F401

# ── Import all models here so Alembic can detect them ────────────────────────
# Order matters: parent tables before child tables (foreign key dependencies)

from app.models.user import User                                        # noqa: F401, E402
from app.models.profile import StudentProfile, TutorProfile             # noqa: F401, E402
from app.models.tutoring_request import (                               # noqa: F401, E402
    ConnectionRequest,
    TutorApplication,
    TutoringRequest,
)
