"""
Record store interface and its SQLAlchemy implementation.

The store is the only shared resource of a run. Reads are paginated by id;
writes are partial merges that leave every column not named untouched.
"""

from typing import Any, Protocol

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from spot_pipeline.database import Spot, session_scope
from spot_pipeline.errors import StoreError
from spot_pipeline.records import WRITABLE_FIELDS, SpotRecord


class RecordStore(Protocol):
    """Paginated read and partial-field update against the backing store."""

    def read_page(self, offset: int, limit: int) -> list[SpotRecord]:
        ...

    def update_fields(self, record_id: int, fields: dict[str, Any]) -> bool:
        ...


class SqlRecordStore:
    """RecordStore backed by the `spots` table."""

    def __init__(self, factory: sessionmaker):
        self._factory = factory

    def read_page(self, offset: int, limit: int) -> list[SpotRecord]:
        """
        Read one page of records ordered by id.

        Raises:
            StoreError: the query failed
        """
        try:
            with session_scope(self._factory) as session:
                rows = session.scalars(
                    select(Spot).order_by(Spot.id).offset(offset).limit(limit)
                ).all()
                return [SpotRecord.from_row(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Reading rows {offset}-{offset + limit - 1} failed: {e}") from e

    def update_fields(self, record_id: int, fields: dict[str, Any]) -> bool:
        """
        Merge `fields` into one record.

        Returns:
            True if exactly one row was updated, False otherwise

        Raises:
            ValueError: if a field is not a writable column
        """
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not writable: {', '.join(sorted(unknown))}")
        if not fields:
            return True

        try:
            with session_scope(self._factory) as session:
                result = session.execute(
                    update(Spot).where(Spot.id == record_id).values(**fields)
                )
                updated = result.rowcount
        except SQLAlchemyError as e:
            logger.warning(f"Update failed for spot {record_id}: {e}")
            return False

        if updated != 1:
            logger.warning(f"Update for spot {record_id} matched {updated} rows")
            return False
        return True

    def count(self) -> int:
        with session_scope(self._factory) as session:
            return session.scalar(select(func.count()).select_from(Spot)) or 0
