from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .exceptions import handle_database_error
from .logging import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """
    All-or-nothing transaction scope: commit on success, roll back on any error.

    SQLAlchemy failures raised in the block or by the final commit surface as
    ``DatabaseError`` subclasses; other exceptions propagate unchanged.
    """

    def __init__(self, SessionLocal: sessionmaker):
        self.SessionLocal = SessionLocal

    @contextmanager
    def begin(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except SQLAlchemyError as e:
            s.rollback()
            logger.error("Unit of work rolled back after database error: %s", e)
            raise handle_database_error(e, "unit_of_work.commit") from e
        except Exception:
            logger.warning("Rolling back unit of work", exc_info=True)
            s.rollback()
            raise
        finally:
            s.close()
