# app/infrastructure/repositories_base.py
from __future__ import annotations

import builtins
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import AssessmentEngineError, handle_database_error
from .logging import get_logger

T = TypeVar("T")  # ORM model type


class BaseRepository(Generic[T]):
    """
    Lightweight generic repository with common CRUD + query helpers.

    Subclasses set ``model`` and may set ``not_found`` to the exception factory
    raised by ``get_by_id_required``.
    """

    model: type[T]
    not_found: Callable[[Any], AssessmentEngineError] | None = None

    def __init__(self, session: Session):
        if not hasattr(self, "model") or self.model is None:
            raise ValueError(f"{self.__class__.__name__}.model must be set to an ORM class.")
        self.s = session
        self.logger = get_logger(self.__class__.__name__)

    def _raise_db_error(self, exc: SQLAlchemyError, operation: str):
        self.logger.error("Database error in %s: %s", operation, str(exc))
        raise handle_database_error(exc, operation) from exc

    # ---------- Read ----------
    def get(self, id_: Any) -> T | None:
        return self.s.get(self.model, id_)

    def get_by_id_required(self, id_: Any) -> T:
        obj = self.get(id_)
        if obj is None:
            if self.not_found is not None:
                raise self.not_found(id_)
            raise ValueError(f"{self.model.__name__} with id {id_} not found")
        return obj

    def list(
        self,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
    ) -> builtins.list[T]:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        if order_by:
            for ob in order_by:
                q = q.order_by(ob)
        if limit:
            q = q.limit(limit)
        return list(q.all())

    # ---------- Write ----------
    def create(self, **fields: Any) -> T:
        obj = self.model(**fields)
        self.s.add(obj)
        try:
            self.s.flush()  # get PKs without committing
        except SQLAlchemyError as e:
            self._raise_db_error(e, f"create_{self.model.__tablename__}")
        return obj

    def delete(self, obj: T) -> None:
        self.s.delete(obj)
        try:
            self.s.flush()
        except SQLAlchemyError as e:
            self._raise_db_error(e, f"delete_{self.model.__tablename__}")
