"""
catalog/repository.py -- Generic CRUD contract and its SQLAlchemy Core engine.

Pattern: Repository + Data Mapper. Repository[T] is the contract every entity
kind is accessed through. SqlRepository[T] implements it once over a
SQLAlchemy Table; subclasses only supply the table and the two mappers
(_to_values / _from_row).

Outcome conventions:
  find_by_id -> None          "no such record", not an error
  create/update/delete -> bool
      False for expected persistence failures (IntegrityError: unique or
      foreign-key violation, or the target row is gone). Callers turn False
      into a 404/409 response.
  Anything else (OperationalError, connectivity loss) propagates. Callers
  treat it as fatal for the request.

Each call touches exactly one row. There is no implicit upsert: update() on a
missing id changes nothing and returns False.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Optional, Protocol, TypeVar

from sqlalchemy import Table, exists, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger("bookstore.catalog.repository")

T = TypeVar("T")


class Repository(Protocol[T]):
    """The CRUD capability set shared by every entity kind."""

    def find_all(self) -> list[T]: ...

    def find_by_id(self, entity_id: int) -> Optional[T]: ...

    def exists(self, entity_id: int) -> bool: ...

    def create(self, entity: T) -> bool: ...

    def update(self, entity: T) -> bool: ...

    def delete(self, entity: T) -> bool: ...


class SqlRepository(Generic[T]):
    """Repository[T] over a single table with an integer ``id`` primary key.

    Entities are dataclasses with an ``id`` attribute. Subclasses set
    ``table`` and implement the mappers.
    """

    table: Table

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Mappers
    # ------------------------------------------------------------------

    def _to_values(self, entity: T) -> dict[str, Any]:
        """Return column values for INSERT/UPDATE, excluding id."""
        raise NotImplementedError

    def _from_row(self, row) -> T:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_all(self) -> list[T]:
        """Return every record ordered by id. Empty list when there are none."""
        with self.engine.connect() as conn:
            rows = conn.execute(self.table.select().order_by(self.table.c.id)).fetchall()
        return [self._from_row(r) for r in rows]

    def find_by_id(self, entity_id: int) -> Optional[T]:
        with self.engine.connect() as conn:
            row = conn.execute(self.table.select().where(self.table.c.id == entity_id)).fetchone()
        return self._from_row(row) if row is not None else None

    def exists(self, entity_id: int) -> bool:
        with self.engine.connect() as conn:
            return bool(conn.execute(select(exists().where(self.table.c.id == entity_id))).scalar())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, entity: T) -> bool:
        """Insert the entity and assign its id. False on a constraint violation."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(self.table.insert().values(**self._to_values(entity)))
                conn.commit()
        except IntegrityError as exc:
            logger.warning("%s insert rejected: %s", self.table.name, exc.orig)
            return False
        entity.id = result.inserted_primary_key[0]
        return True

    def update(self, entity: T) -> bool:
        """Overwrite the row with entity.id. False if it does not exist or a constraint fails."""
        if entity.id is None:
            return False
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    self.table.update().where(self.table.c.id == entity.id).values(**self._to_values(entity))
                )
                conn.commit()
        except IntegrityError as exc:
            logger.warning("%s update of id=%s rejected: %s", self.table.name, entity.id, exc.orig)
            return False
        return result.rowcount > 0

    def delete(self, entity: T) -> bool:
        """Delete the resolved entity. False if it is already gone or still referenced."""
        if entity.id is None:
            return False
        try:
            with self.engine.connect() as conn:
                result = conn.execute(self.table.delete().where(self.table.c.id == entity.id))
                conn.commit()
        except IntegrityError as exc:
            logger.warning("%s delete of id=%s rejected: %s", self.table.name, entity.id, exc.orig)
            return False
        return result.rowcount > 0
