"""
Database session management.
"""
import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError
from tripsplit.core.config import settings
from tripsplit.core.exceptions import ConflictError
from tripsplit.db.base import Base

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    pool_recycle=3600
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a ledger mutation as one unit of work.

    Commits when the block exits cleanly. Any exception rolls back every
    record change and running-total delta made inside the block, so no
    caller ever observes a partially applied mutation. A version mismatch
    detected at flush time is re-raised as ConflictError.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification detected, transaction rolled back: {e}")
        raise ConflictError("The record was modified concurrently, please retry") from e
    except Exception:
        db.rollback()
        logger.warning("Ledger transaction rolled back", exc_info=True)
        raise


def init_db():
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
