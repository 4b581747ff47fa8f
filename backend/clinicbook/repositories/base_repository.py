# backend/clinicbook/repositories/base_repository.py
"""
Base repository for clinicbook.

Repositories own queries and never commit: the service layer opens the
transaction, so a booking, its slot claims and its audit rows land together
or not at all. SQLAlchemy failures are logged and re-raised as
RepositoryException, except where a subclass deliberately lets an
IntegrityError through for its service to translate.
"""

import logging
from typing import Any, Generic, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Data access for one model keyed by a string (ULID) `id`."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def _fail(self, action: str, error: SQLAlchemyError) -> NoReturn:
        self.logger.error(f"Failed to {action} {self.model.__name__}: {error}")
        raise RepositoryException(f"Failed to {action} {self.model.__name__}: {error}") from error

    def _by_id(self, id: str) -> Query:
        return self.db.query(self.model).filter(self.model.id == id)

    def get_by_id(self, id: str) -> Optional[T]:
        try:
            return self._by_id(id).first()
        except SQLAlchemyError as e:
            self._fail("load", e)

    def get_for_update(self, id: str) -> Optional[T]:
        """
        Load a row for modification, refreshing any copy already in the session.

        PostgreSQL takes a row lock (FOR UPDATE). SQLite ignores the clause;
        its single-writer lock serializes the transaction instead.
        """
        try:
            return self._by_id(id).with_for_update().populate_existing().first()
        except SQLAlchemyError as e:
            self._fail("lock", e)

    def create(self, **fields: Any) -> T:
        """Add a row and flush so its id and defaults are populated; no commit."""
        try:
            entity = self.model(**fields)
            self.db.add(entity)
            self.db.flush()
            return entity
        except SQLAlchemyError as e:
            self._fail("create", e)

    def find_one_by(self, **criteria: Any) -> Optional[T]:
        try:
            return self.db.query(self.model).filter_by(**criteria).first()
        except SQLAlchemyError as e:
            self._fail("find", e)

    def exists(self, **criteria: Any) -> bool:
        try:
            return self.db.query(self.model.id).filter_by(**criteria).first() is not None
        except SQLAlchemyError as e:
            self._fail("query", e)
