"""Sync cycle orchestration for Markdown GitDB."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .changes import ChangeDetector
from .checkout import GitCheckout
from .config import GitDBConfig, get_lancedb_path, load_config, resolve_checkout_path
from .errors import DiffError, NotFoundError, StoreClosedError
from .manifest import TableSummary, create_empty_manifest, load_manifest, save_manifest
from .revisions import RevisionTracker
from .scanner import TableScanner
from .storage import Storage
from .updater import IndexUpdater, UpdateStats

logger = logging.getLogger(__name__)


class TableState(str, Enum):
    """Where a table is in its sync state machine."""

    UNINDEXED = "unindexed"
    FULL_INDEXING = "full_indexing"
    DIFFING = "diffing"
    READY = "ready"


class SyncMode(str, Enum):
    """What a sync cycle did to a table."""

    FULL = "full"
    DELTA = "delta"
    NOOP = "noop"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TableSyncResult:
    """Outcome of one table's sync cycle."""

    table: str
    mode: SyncMode
    revision: str | None = None  # Marker after the cycle
    files_considered: int = 0  # Records listed (full) or changed files (delta)
    stats: UpdateStats = field(default_factory=UpdateStats)
    error: str | None = None


@dataclass
class SyncReport:
    """Outcome of a sync cycle over all tables."""

    head: str
    results: list[TableSyncResult] = field(default_factory=list)

    @property
    def failed(self) -> list[TableSyncResult]:
        return [r for r in self.results if r.mode == SyncMode.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def result_for(self, table: str) -> TableSyncResult | None:
        for result in self.results:
            if result.table == table:
                return result
        return None


class SyncOrchestrator:
    """Runs the per-table sync state machine against an open index store.

    Tables are synced concurrently, at most `max_concurrency` at a time.
    Cycles on the same table are serialized by a per-table lock.
    """

    def __init__(self, checkout: GitCheckout, storage: Storage, max_concurrency: int = 4):
        if not storage.is_open:
            raise StoreClosedError("SyncOrchestrator requires a connected index store")

        self.checkout = checkout
        self.storage = storage
        self.scanner = TableScanner(checkout.database_path)
        self.detector = ChangeDetector(checkout)
        self.tracker = RevisionTracker(storage)
        self.updater = IndexUpdater(storage, self.scanner)
        self.states: dict[str, TableState] = {}

        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, table: str) -> asyncio.Lock:
        if table not in self._locks:
            self._locks[table] = asyncio.Lock()
        return self._locks[table]

    async def sync_all(self) -> SyncReport:
        """Run one sync cycle over every table at the current head."""
        head = await self.checkout.current_revision_id()
        tables = await asyncio.to_thread(self.scanner.list_tables)
        logger.info("Syncing %d table(s) at revision %s", len(tables), head[:12])

        results = await asyncio.gather(*(self.sync_table(table, head) for table in tables))
        return SyncReport(head=head, results=list(results))

    async def sync_table(self, table: str, head: str) -> TableSyncResult:
        """
        Bring one table's index up to `head`.

        Failures are contained: the result reports them and the table's
        revision marker is left where it was.
        """
        async with self._lock_for(table), self._semaphore:
            try:
                return await self._run_table(table, head)
            except NotFoundError as e:
                logger.warning("Skipping table %s: %s", table, e)
                return TableSyncResult(table=table, mode=SyncMode.SKIPPED, error=str(e))
            except Exception as e:
                logger.exception("Failed to sync table: %s", table)
                return TableSyncResult(table=table, mode=SyncMode.FAILED, error=str(e))

    async def reset_tables(self, tables: Iterable[str]) -> None:
        """Forget the markers of `tables` so the next cycle fully re-indexes them."""
        for table in tables:
            async with self._lock_for(table):
                await self.tracker.clear(table)
                self.states[table] = TableState.UNINDEXED

    async def _run_table(self, table: str, head: str) -> TableSyncResult:
        last_revision = await self.tracker.get_last_revision(table)
        settled = TableState.UNINDEXED if last_revision is None else TableState.READY
        self.states[table] = settled

        try:
            if last_revision is None:
                return await self._full_index(table, head)

            if last_revision == head:
                logger.info("Table %s is up to date", table)
                return TableSyncResult(table=table, mode=SyncMode.NOOP, revision=head)

            self.states[table] = TableState.DIFFING
            try:
                changed = await self.detector.changed_files(table, last_revision, head)
            except DiffError as e:
                logger.warning("%s; falling back to a full re-index", e)
                return await self._full_index(table, head)

            stats = await self.updater.apply_delta(table, changed)
            await self.tracker.set_last_revision(table, head)
            self.states[table] = TableState.READY
            return TableSyncResult(
                table=table,
                mode=SyncMode.DELTA,
                revision=head,
                files_considered=len(changed),
                stats=stats,
            )
        except BaseException:
            self.states[table] = settled
            raise

    async def _full_index(self, table: str, head: str) -> TableSyncResult:
        self.states[table] = TableState.FULL_INDEXING
        records = await asyncio.to_thread(self.scanner.list_records, table)
        stats = await self.updater.apply_full(table, records)
        await self.tracker.set_last_revision(table, head)
        self.states[table] = TableState.READY
        return TableSyncResult(
            table=table,
            mode=SyncMode.FULL,
            revision=head,
            files_considered=len(records),
            stats=stats,
        )


def make_checkout(config: GitDBConfig, project_root: Path) -> GitCheckout:
    """Build the checkout described by a project's config."""
    return GitCheckout(
        resolve_checkout_path(config, project_root),
        repo_url=config.repo_url,
        branch=config.branch,
        database_subdir=config.database_subdir,
    )


async def sync_project(
    project_root: Path,
    config: GitDBConfig | None = None,
    pull: bool = True,
    reindex: Iterable[str] = (),
) -> SyncReport:
    """
    Run a complete sync cycle for a project.

    Updates the checkout first (unless `pull` is False), then opens the
    index store for the duration of the cycle.

    Args:
        project_root: Path to the project root
        config: Config to use (defaults to the project's config file)
        pull: If True, fetch the latest remote revision before syncing
        reindex: Tables whose markers are cleared before the cycle
    """
    config = config or load_config(project_root)
    checkout = make_checkout(config, project_root)

    if pull:
        await checkout.ensure_latest()

    storage = Storage(get_lancedb_path(project_root))
    storage.connect()
    try:
        orchestrator = SyncOrchestrator(checkout, storage, config.max_concurrency)
        await orchestrator.reset_tables(reindex)
        report = await orchestrator.sync_all()
        revisions = await orchestrator.tracker.all_revisions()
        await asyncio.to_thread(_update_manifest, project_root, report, revisions, storage)
        return report
    finally:
        storage.close()


def run_sync(
    project_root: Path,
    config: GitDBConfig | None = None,
    pull: bool = True,
    reindex: Iterable[str] = (),
) -> SyncReport:
    """
    Run a sync cycle from synchronous code.

    This is the main entry point called by the CLI.
    """
    return asyncio.run(sync_project(project_root, config=config, pull=pull, reindex=reindex))


def _update_manifest(
    project_root: Path,
    report: SyncReport,
    revisions: dict[str, str],
    storage: Storage,
) -> None:
    """Save the manifest with the cycle's per-table outcomes."""
    manifest = load_manifest(project_root) or create_empty_manifest()
    manifest.head = report.head
    manifest.tables = {
        result.table: TableSummary(
            mode=result.mode.value,
            revision=revisions.get(result.table),
            documents=storage.count_documents(result.table),
            error=result.error,
        )
        for result in report.results
    }
    save_manifest(manifest, project_root)
