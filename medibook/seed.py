"""Seed sample providers and requesters into an empty users table.

Usage:
    python -m medibook.seed
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from medibook.core import config
from medibook.database import Base, create_database_engine, create_session_factory
from medibook.models.user import User

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {"name": "Dr. Othmane", "email": "othmane@example.com", "role": "provider", "specialty": "Heart Specialist"},
    {"name": "Dr. Yousri Bouzok", "email": "yousri@example.com", "role": "provider", "specialty": "Heart Specialist"},
    {
        "name": "Dr. Soufiane Rahimi",
        "email": "soufiane@example.com",
        "role": "provider",
        "specialty": "General Medicine",
    },
    {"name": "Ziad El Baroudi", "email": "ziad@example.com", "role": "requester", "specialty": None},
    {"name": "Simo Kerroumi", "email": "simo@example.com", "role": "requester", "specialty": None},
]


def seed_users(engine: Engine) -> int:
    """Insert the sample users unless the table already has rows. Returns the number inserted."""
    Base.metadata.create_all(bind=engine, tables=[User.__table__])

    db = create_session_factory(engine)()
    try:
        existing = db.scalar(select(func.count()).select_from(User))
        if existing:
            logger.info("Users table already has %s rows. No seeding required.", existing)
            return 0

        db.add_all(User(**fields) for fields in SAMPLE_USERS)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    logger.info("Seeded %s sample users.", len(SAMPLE_USERS))
    return len(SAMPLE_USERS)


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    engine = create_database_engine(config.DATABASE_URL)
    try:
        seed_users(engine)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
