# app/db/types.py
# Column types that map to native PostgreSQL types in production
# and fall back to JSON on SQLite (used by the test suite).

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

# ["Mathematics", "Physics"]
StringList = ARRAY(String).with_variant(JSON(), "sqlite")

# Free-form structured data (availability, schedules, exam results)
JSONData = JSONB().with_variant(JSON(), "sqlite")
