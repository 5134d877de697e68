"""
Database engine, session factory and transactional helpers
"""
import logging
from typing import Callable, Generator, Optional, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from exam_engine.config import settings
from exam_engine.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Requests are served from a threadpool
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables"""
    import exam_engine.models  # noqa: F401  registers mappers on Base

    Base.metadata.create_all(bind=engine)


def check_database() -> bool:
    """Round-trip a trivial query; False when the database is unreachable"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database check failed: {str(e)}")
        return False


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    max_attempts: Optional[int] = None,
) -> T:
    """
    Run a read-modify-write operation and commit it, retrying on version conflicts

    The operation must re-read everything it mutates, since a rollback
    expires all loaded state. Rows mapped with a version column raise
    StaleDataError at flush time when another writer committed first.

    Args:
        db: Database session
        operation: Callable performing reads and mutations, returning the result
        max_attempts: Total tries before giving up (default from settings)

    Returns:
        Whatever the operation returned, once its changes are committed

    Raises:
        ConcurrencyConflictError: every try lost the race
    """
    max_attempts = max_attempts or settings.MAX_WRITE_RETRIES

    for attempt in range(1, max_attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.warning(f"Write conflict detected (try {attempt}/{max_attempts})")
        except Exception:
            db.rollback()
            raise

    raise ConcurrencyConflictError(
        "The test was modified concurrently. Please try again.",
        extra={"retry_after": 1},
    )
