"""LanceDB storage wrapper for Markdown GitDB."""

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import lancedb
import pyarrow as pa

from .errors import StoreClosedError


@dataclass
class IndexedDocument:
    """A record ready for storage."""

    id: str  # Unique ID: "{table}/{filename}"
    table_name: str  # Owning table (top-level directory)
    filename: str  # Record filename inside the table
    extension: str  # File extension (e.g., ".md")
    content: str  # Raw file content
    content_hash: str  # SHA256 of the file bytes
    size: int  # File size in bytes
    indexed_at: str  # ISO timestamp

    @staticmethod
    def make_id(table: str, filename: str) -> str:
        return f"{table}/{filename}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for LanceDB insertion."""
        return {
            "id": self.id,
            "table_name": self.table_name,
            "filename": self.filename,
            "extension": self.extension,
            "content": self.content,
            "content_hash": self.content_hash,
            "size": self.size,
            "indexed_at": self.indexed_at,
        }


def _quote(value: str) -> str:
    """Quote a string literal for a LanceDB filter expression."""
    return "'" + value.replace("'", "''") + "'"


class Storage:
    """LanceDB wrapper for indexed documents and revision markers.

    The connection is opened with connect() and released with close();
    using the store outside that window raises StoreClosedError.
    """

    DOCUMENTS_TABLE = "documents"
    REVISIONS_TABLE = "revision_markers"

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: lancedb.DBConnection | None = None
        self._write_lock = threading.Lock()

    def connect(self) -> None:
        """Open the database connection."""
        self.db_path.mkdir(parents=True, exist_ok=True)
        self._db = lancedb.connect(str(self.db_path))

    def close(self) -> None:
        """Close database connection."""
        self._db = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    @property
    def db(self) -> lancedb.DBConnection:
        if self._db is None:
            raise StoreClosedError(f"Index store at {self.db_path} is not connected")
        return self._db

    def __enter__(self) -> "Storage":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _open_or_create(self, name: str, schema: pa.Schema) -> lancedb.table.Table:
        if name in self.db.list_tables().tables:
            return self.db.open_table(name)
        return self.db.create_table(name, schema=schema, exist_ok=True)

    def _get_documents_table(self) -> lancedb.table.Table:
        """Get or create the documents table."""
        schema = pa.schema([
            pa.field("id", pa.string()),
            pa.field("table_name", pa.string()),
            pa.field("filename", pa.string()),
            pa.field("extension", pa.string()),
            pa.field("content", pa.string()),
            pa.field("content_hash", pa.string()),
            pa.field("size", pa.int64()),
            pa.field("indexed_at", pa.string()),
        ])
        return self._open_or_create(self.DOCUMENTS_TABLE, schema)

    def _get_revisions_table(self) -> lancedb.table.Table:
        """Get or create the revision_markers table."""
        schema = pa.schema([
            pa.field("table_name", pa.string()),
            pa.field("revision", pa.string()),
            pa.field("updated_at", pa.string()),
        ])
        return self._open_or_create(self.REVISIONS_TABLE, schema)

    # Document operations

    def upsert_documents(self, documents: list[IndexedDocument]) -> None:
        """Insert or replace documents by ID."""
        if not documents:
            return

        with self._write_lock:
            table = self._get_documents_table()
            id_list = ", ".join(_quote(doc.id) for doc in documents)
            table.delete(f"id IN ({id_list})")
            table.add([doc.to_dict() for doc in documents])

    def delete_document(self, table_name: str, filename: str) -> int:
        """Delete a single document. Returns count deleted."""
        doc_id = IndexedDocument.make_id(table_name, filename)
        with self._write_lock:
            table = self._get_documents_table()
            before_count = table.count_rows()
            table.delete(f"id = {_quote(doc_id)}")
            return before_count - table.count_rows()

    def _query(self, table: Any, where: str, columns: list[str] | None = None) -> pa.Table:
        """Run a filtered scan, reading only `columns` of the matching rows."""
        query = table.search().where(where, prefilter=True)
        if columns is not None:
            query = query.select(columns)
        # Plain scans default to 10 rows
        return query.limit(None).to_arrow()

    def get_document(self, table_name: str, filename: str) -> dict[str, Any] | None:
        """Get a document by its (table, filename) key."""
        doc_id = IndexedDocument.make_id(table_name, filename)
        rows = self._query(self._get_documents_table(), f"id = {_quote(doc_id)}").to_pylist()
        return rows[0] if rows else None

    def get_content_hashes(self, table_name: str) -> dict[str, str]:
        """Map filename -> content hash for every document in a table."""
        rows = self._query(
            self._get_documents_table(),
            f"table_name = {_quote(table_name)}",
            ["filename", "content_hash"],
        )
        return dict(zip(
            rows.column("filename").to_pylist(),
            rows.column("content_hash").to_pylist(),
        ))

    def list_filenames(self, table_name: str) -> set[str]:
        """Get all filenames indexed for a table."""
        rows = self._query(
            self._get_documents_table(), f"table_name = {_quote(table_name)}", ["filename"]
        )
        return set(rows.column("filename").to_pylist())

    def count_documents(self, table_name: str | None = None) -> int:
        """Count documents, optionally restricted to one table."""
        table = self._get_documents_table()
        if table_name is None:
            return table.count_rows()
        return table.count_rows(f"table_name = {_quote(table_name)}")

    # Revision marker operations

    def get_revision(self, table_name: str) -> str | None:
        """Get the revision marker for a table."""
        rows = self._query(
            self._get_revisions_table(), f"table_name = {_quote(table_name)}", ["revision"]
        )
        if rows.num_rows == 0:
            return None
        return rows.column("revision")[0].as_py()

    def set_revision(self, table_name: str, revision: str) -> None:
        """Insert or replace the revision marker for a table."""
        with self._write_lock:
            table = self._get_revisions_table()
            table.delete(f"table_name = {_quote(table_name)}")
            table.add([{
                "table_name": table_name,
                "revision": revision,
                "updated_at": datetime.now(UTC).isoformat(),
            }])

    def delete_revision(self, table_name: str) -> None:
        """Remove the revision marker for a table."""
        with self._write_lock:
            table = self._get_revisions_table()
            table.delete(f"table_name = {_quote(table_name)}")

    def list_revisions(self) -> dict[str, str]:
        """Map table name -> revision for every marker."""
        arrow_table = self._get_revisions_table().to_arrow()
        return dict(zip(
            arrow_table.column("table_name").to_pylist(),
            arrow_table.column("revision").to_pylist(),
        ))
