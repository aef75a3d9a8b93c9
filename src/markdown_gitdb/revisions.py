"""Per-table revision markers for Markdown GitDB."""

import asyncio
import logging

from .storage import Storage

logger = logging.getLogger(__name__)


class RevisionTracker:
    """Records the last git revision each table was indexed at.

    Markers live in a reserved table of the index store. A table without a
    marker has never been indexed.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    async def get_last_revision(self, table: str) -> str | None:
        return await asyncio.to_thread(self.storage.get_revision, table)

    async def set_last_revision(self, table: str, revision: str) -> None:
        """Advance a table's marker. Only call once the table's delta is applied."""
        await asyncio.to_thread(self.storage.set_revision, table, revision)
        logger.debug("Table %s marked at revision %s", table, revision)

    async def clear(self, table: str) -> None:
        """Forget a table's marker so the next cycle fully re-indexes it."""
        await asyncio.to_thread(self.storage.delete_revision, table)
        logger.info("Cleared revision marker for table: %s", table)

    async def all_revisions(self) -> dict[str, str]:
        return await asyncio.to_thread(self.storage.list_revisions)
