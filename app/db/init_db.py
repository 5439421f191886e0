# app/db/init_db.py
# Seed initial data into the database
# Run once after migrations: python -m app.db.init_db
#
# Creates:
#   1. Admin user (ADMIN_EMAIL / ADMIN_PASSWORD)

import logging

from dotenv import load_dotenv

# Load .env for local dev before settings are read
load_dotenv()

import app.db.base  # noqa: E402,F401
from app.core.config import settings  # noqa: E402
from app.core.logging_config import setup_logging  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402

logger = logging.getLogger("freetutor.init_db")


def seed_admin(db) -> bool:
    """Create the admin user if it doesn't exist. Returns True when created."""
    admin_email = settings.admin_email.strip().lower()
    if not settings.admin_password:
        raise RuntimeError("ADMIN_PASSWORD must be set to seed the admin user.")

    existing = db.query(User).filter(User.email == admin_email).first()
    if existing:
        logger.info(f"Admin already exists: {admin_email}")
        return False

    admin = User(
        email=admin_email,
        hashed_password=hash_password(settings.admin_password),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.flush()
    logger.info(f"Admin created: {admin_email}")
    return True


def init_db() -> None:
    logger.info("Seeding database...")
    db = SessionLocal()
    try:
        seed_admin(db)
        db.commit()
        logger.info("Done. Database seeded successfully.")
    except Exception as e:
        db.rollback()
        logger.error(f"Seeding failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    init_db()
