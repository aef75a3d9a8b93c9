"""Sync manifest management for Markdown GitDB."""

import json
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from . import GITDB_DIR, MANIFEST_FILE


class TableSummary(BaseModel):
    """Outcome of the last sync cycle for one table."""

    mode: str
    revision: str | None = None
    documents: int = 0
    error: str | None = None


class Manifest(BaseModel):
    """Summary of the last sync cycle.

    Informational only; revision markers in the index store are authoritative.
    """

    version: int = 1
    created_at: datetime
    updated_at: datetime
    head: str | None = None  # Checkout head of the last cycle (None initially)
    tables: dict[str, TableSummary] = Field(default_factory=dict)


def get_manifest_path(project_root: Path) -> Path:
    """Get the manifest file path."""
    return project_root / GITDB_DIR / MANIFEST_FILE


def load_manifest(project_root: Path) -> Manifest | None:
    """Load manifest from the project's manifest file.

    Returns None if file doesn't exist.
    """
    manifest_path = get_manifest_path(project_root)

    if not manifest_path.exists():
        return None

    with open(manifest_path) as f:
        data = json.load(f)

    return Manifest.model_validate(data)


def save_manifest(manifest: Manifest, project_root: Path) -> None:
    """Save manifest to the project's manifest file."""
    manifest_path = get_manifest_path(project_root)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)

    manifest.updated_at = datetime.now(UTC)

    with open(manifest_path, "w") as f:
        json.dump(manifest.model_dump(mode="json"), f, indent=2, default=str)


def create_empty_manifest() -> Manifest:
    """Create a new empty manifest."""
    now = datetime.now(UTC)
    return Manifest(created_at=now, updated_at=now)
