# clinic/db/init_db.py
import argparse
import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.core.config import settings
from clinic.core.security import hash_password
from clinic.db.base import Base
from clinic.db.session import engine
import clinic.models  # noqa: F401  registers every table on Base.metadata
from clinic.models.clinic import Clinic
from clinic.models.user import User, UserRole

logger = logging.getLogger(__name__)


def print_tables(conn) -> None:
    names = inspect(conn).get_table_names()
    logger.info("Tables (%d): %s", len(names), ", ".join(sorted(names)))


def seed_owner(db: Session) -> None:
    """First clinic plus its OWNER login; no-op when a clinic exists."""
    clinic = db.query(Clinic).order_by(Clinic.id.asc()).first()
    if clinic:
        logger.info("Clinic already present (%s), skipping seed", clinic.name)
        return

    clinic = Clinic(name=settings.DEFAULT_CLINIC_NAME)
    db.add(clinic)
    db.flush()

    email = settings.DEFAULT_OWNER_EMAIL.strip().lower()
    if not db.query(User.id).filter(User.email == email).first():
        db.add(
            User(
                clinic_id=clinic.id,
                name="Clinic Owner",
                email=email,
                password_hash=hash_password(settings.DEFAULT_OWNER_PASSWORD),
                role=UserRole.OWNER.value,
                is_active=True,
            ))
    logger.info("Seeded clinic %r with owner %s", clinic.name, email)


def run(fresh: bool = False) -> None:
    if fresh:
        logger.warning("Dropping ALL tables (dev only) ...")
        Base.metadata.drop_all(bind=engine)

    logger.info("Creating all missing tables ...")
    Base.metadata.create_all(bind=engine)

    with engine.connect() as conn:
        print_tables(conn)

    try:
        with Session(engine) as db:
            seed_owner(db)
            db.commit()
    except SQLAlchemyError:
        logger.exception("Seeding failed")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser(
        description="Initialize DB (create tables, seed clinic owner).")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (DEV ONLY).",
    )
    args = parser.parse_args()
    run(fresh=args.fresh)
