"""
Full scan of the record store.

The store caps every request at `page_size` rows, so the scan walks pages
by offset until it sees a short or empty page. The result is materialised
before enrichment starts so that progress can be reported against a total.
"""

from loguru import logger

from spot_pipeline.errors import FatalConfigError
from spot_pipeline.records import SpotRecord
from spot_pipeline.store import RecordStore

DEFAULT_PAGE_SIZE = 1000


def scan_all(
    store: RecordStore,
    page_size: int = DEFAULT_PAGE_SIZE,
    limit: int | None = None,
) -> list[SpotRecord]:
    """
    Read every record in ascending id order.

    Rows inserted behind the scan position while it runs are picked up by the
    next run; the pipeline is re-runnable so that is not corrected here.
    A read that fails after the first page ends the scan early and the pages
    already loaded are returned.

    Args:
        store: Record store to read from
        page_size: Rows per request (the store-side cap)
        limit: Optional cap on the number of records returned

    Returns:
        List of all records, each exactly once

    Raises:
        FatalConfigError: if the first page cannot be read
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    records: list[SpotRecord] = []
    page = 0

    while True:
        try:
            rows = store.read_page(page * page_size, page_size)
        except Exception as e:
            if page == 0:
                raise FatalConfigError(f"Cannot read the record store: {e}") from e
            logger.error(
                f"Reading page {page + 1} failed, continuing with "
                f"{len(records):,} loaded records: {e}"
            )
            break

        if not rows:
            break

        records.extend(rows)
        page += 1
        logger.info(f"Loaded page {page}: {len(records):,} records so far")

        if limit is not None and len(records) >= limit:
            records = records[:limit]
            break

        # A short page is the last one
        if len(rows) < page_size:
            break

    logger.info(f"Scan complete: {len(records):,} records in {page} page(s)")
    return records
