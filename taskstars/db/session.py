import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..core.errors import TransactionFailed

logger = logging.getLogger(__name__)

# Required for SQLite (otherwise threading errors under the ASGI worker pool)
connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,             # set to True if you want SQL logs
    future=True,
    connect_args=connect_args
)
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True
)


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    One business operation, one transaction.

    Commits when the block exits normally. Any exception rolls back every
    write made inside the block; database failures are re-raised as
    ``TransactionFailed`` while domain errors propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {e}", exc_info=True)
        raise TransactionFailed() from e
    except Exception:
        db.rollback()
        raise
