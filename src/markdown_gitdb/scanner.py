"""Table and record enumeration for Markdown GitDB."""

import logging
from pathlib import Path

from . import HIDDEN_PREFIX
from .errors import NotFoundError

logger = logging.getLogger(__name__)


def is_hidden(name: str) -> bool:
    """Check if a directory entry is hidden (dot-prefixed)."""
    return name.startswith(HIDDEN_PREFIX)


class TableScanner:
    """Lists tables (top-level directories) and their record files.

    Records are the non-hidden files directly inside a table directory.
    Nested directories are never records and are not recursed into.
    """

    def __init__(self, database_path: Path):
        self.database_path = database_path

    def table_path(self, table: str) -> Path:
        return self.database_path / table

    def record_path(self, table: str, filename: str) -> Path:
        return self.database_path / table / filename

    def list_tables(self) -> list[str]:
        """List all tables in the database, in filesystem order."""
        if not self.database_path.is_dir():
            raise NotFoundError(self.database_path)

        tables = []
        for entry in self.database_path.iterdir():
            if is_hidden(entry.name):
                continue
            if not entry.is_dir():
                logger.debug("Ignoring file at database root: %s", entry.name)
                continue
            tables.append(entry.name)
        return tables

    def list_records(self, table: str) -> list[str]:
        """List the record filenames of a table, in filesystem order."""
        logger.debug("Getting files in table: %s", table)
        table_path = self.table_path(table)
        if not table_path.is_dir():
            raise NotFoundError(table_path)

        try:
            entries = list(table_path.iterdir())
        except FileNotFoundError as e:
            # Removed between the check and the listing
            raise NotFoundError(table_path) from e

        records = []
        for entry in entries:
            if is_hidden(entry.name):
                continue
            if entry.is_dir():
                logger.debug("Ignoring nested directory: %s/%s", table, entry.name)
                continue
            if not entry.is_file():
                logger.debug("Ignoring non-regular entry: %s/%s", table, entry.name)
                continue
            records.append(entry.name)
        return records
