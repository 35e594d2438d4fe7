"""
Persistence writer.

Writes only fields that were computed this pass for one of the record's
current gaps. Already-strong fields are never part of a write, so a fully
enriched record produces no write at all.
"""

from collections import Counter
from typing import Any

from loguru import logger

from spot_pipeline.gaps import gap_fields
from spot_pipeline.records import SpotRecord
from spot_pipeline.store import RecordStore


class PersistenceWriter:
    """Filters computed payloads down to gap fields and merges them into the store."""

    def __init__(self, store: RecordStore, dry_run: bool = False):
        self.store = store
        self.dry_run = dry_run

        self.writes = 0
        self.failures = 0
        self.fields_written: Counter[str] = Counter()

    def prepare(self, record: SpotRecord, gaps: set[str], payload: dict[str, Any]) -> dict[str, Any]:
        """Drop empty values, unchanged values and fields outside the record's gaps."""
        allowed = {field for gap in gaps for field in gap_fields(gap)}
        prepared = {}

        for field, value in payload.items():
            if field not in allowed:
                logger.warning(f"Refusing to write {field} for spot {record.id}: not a gap")
                continue
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            if getattr(record, field) == value:
                continue
            prepared[field] = value

        return prepared

    def write(self, record: SpotRecord, gaps: set[str], payload: dict[str, Any]) -> bool:
        """
        Write the newly computed fields of one record.

        Returns:
            True if something was written (or would be, in dry-run mode)
        """
        fields = self.prepare(record, gaps, payload)
        if not fields:
            return False

        if self.dry_run:
            logger.info(f"[dry-run] spot {record.id}: {fields}")
            self.fields_written.update(fields.keys())
            return True

        if not self.store.update_fields(record.id, fields):
            self.failures += 1
            logger.warning(f"Failed to save spot {record.id} ({', '.join(fields)})")
            return False

        self.writes += 1
        self.fields_written.update(fields.keys())
        logger.debug(f"Saved spot {record.id}: {', '.join(sorted(fields))}")
        return True
