"""Applies full and delta updates to the Markdown GitDB index."""

import asyncio
import hashlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .errors import IndexWriteError, StoreClosedError
from .scanner import TableScanner
from .storage import IndexedDocument, Storage

logger = logging.getLogger(__name__)


@dataclass
class UpdateStats:
    """Counts from applying one table's update."""

    upserted: int = 0
    deleted: int = 0
    unchanged: int = 0
    failed: list[str] = field(default_factory=list)


class IndexUpdater:
    """The only component that writes indexed documents.

    Every operation is an upsert or a delete keyed by (table, filename), so
    re-applying an update after an interrupted cycle converges to the same
    state.
    """

    def __init__(self, storage: Storage, scanner: TableScanner):
        self.storage = storage
        self.scanner = scanner

    async def apply_full(self, table: str, records: Iterable[str]) -> UpdateStats:
        """
        Index every record of a table and drop documents for files not in `records`.

        Raises:
            IndexWriteError: If the store rejected any write
        """
        records = list(records)
        stats = UpdateStats()
        existing = await asyncio.to_thread(self.storage.get_content_hashes, table)

        for filename in records:
            await self._upsert_record(table, filename, existing, stats)

        for filename in sorted(set(existing) - set(records)):
            await self._delete_record(table, filename, stats)

        self._raise_on_failures(table, stats)
        logger.info(
            "Indexed table %s: %d upserted, %d deleted, %d unchanged",
            table, stats.upserted, stats.deleted, stats.unchanged,
        )
        return stats

    async def apply_delta(self, table: str, changed_filenames: Iterable[str]) -> UpdateStats:
        """
        Re-index changed records: upsert the ones on disk, delete the rest.

        Raises:
            IndexWriteError: If the store rejected any write
        """
        stats = UpdateStats()
        existing = await asyncio.to_thread(self.storage.get_content_hashes, table)

        for filename in changed_filenames:
            path = self.scanner.record_path(table, filename)
            if path.is_file():
                await self._upsert_record(table, filename, existing, stats)
            elif filename in existing:
                await self._delete_record(table, filename, stats)

        self._raise_on_failures(table, stats)
        logger.info(
            "Updated table %s: %d upserted, %d deleted, %d unchanged",
            table, stats.upserted, stats.deleted, stats.unchanged,
        )
        return stats

    def load_document(self, table: str, filename: str) -> IndexedDocument:
        """Read a record from disk into a document."""
        path = self.scanner.record_path(table, filename)
        data = path.read_bytes()
        return IndexedDocument(
            id=IndexedDocument.make_id(table, filename),
            table_name=table,
            filename=filename,
            extension=path.suffix,
            content=data.decode("utf-8", errors="replace"),
            content_hash=hashlib.sha256(data).hexdigest(),
            size=len(data),
            indexed_at=datetime.now(UTC).isoformat(),
        )

    async def _upsert_record(
        self,
        table: str,
        filename: str,
        existing: dict[str, str],
        stats: UpdateStats,
    ) -> None:
        try:
            document = await asyncio.to_thread(self.load_document, table, filename)
        except FileNotFoundError:
            # Gone since the listing
            logger.debug("Record vanished before it was read: %s/%s", table, filename)
            if filename in existing:
                await self._delete_record(table, filename, stats)
            return

        if existing.get(filename) == document.content_hash:
            stats.unchanged += 1
            return

        if await self._write(table, filename, self.storage.upsert_documents, [document]):
            stats.upserted += 1
        else:
            stats.failed.append(filename)

    async def _delete_record(self, table: str, filename: str, stats: UpdateStats) -> None:
        if await self._write(table, filename, self.storage.delete_document, table, filename):
            stats.deleted += 1
        else:
            stats.failed.append(filename)

    async def _write(self, table: str, filename: str, operation: Callable, *args) -> bool:
        """Run a store write, reporting False if the store rejected it."""
        try:
            await asyncio.to_thread(operation, *args)
        except StoreClosedError:
            raise
        except Exception:
            logger.exception("Index store rejected write for %s/%s", table, filename)
            return False
        return True

    def _raise_on_failures(self, table: str, stats: UpdateStats) -> None:
        if stats.failed:
            raise IndexWriteError(table, stats.failed)
