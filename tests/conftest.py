"""Shared test fixtures for markdown-gitdb."""

from pathlib import Path

import pytest
from click.testing import CliRunner
from git import Repo

from markdown_gitdb.config import GitDBConfig, get_gitdb_dir, get_lancedb_path, save_config
from markdown_gitdb.manifest import create_empty_manifest, save_manifest
from markdown_gitdb.storage import Storage

INITIAL_FILES = {
    "README.md": "# Test database\n",
    ".github/settings.yml": "hidden: true\n",
    "posts/.gitkeep": "",
    "posts/a.md": "# A\n\nFirst post.\n",
    "posts/b.md": "# B\n\nSecond post.\n",
    "posts/drafts/x.md": "# Draft\n",
    "authors/alice.md": "# Alice\n",
}


class DatabaseRepo:
    """A git repository laid out as a markdown database."""

    def __init__(self, path: Path):
        self.path = path
        path.mkdir(parents=True, exist_ok=True)
        self.repo = Repo.init(path)
        with self.repo.config_writer() as writer:
            writer.set_value("user", "name", "Test User")
            writer.set_value("user", "email", "test@example.com")
            writer.set_value("commit", "gpgsign", "false")

    def write(self, relpath: str, content: str) -> None:
        file_path = self.path / relpath
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)

    def remove(self, relpath: str) -> None:
        (self.path / relpath).unlink()

    def rename(self, old: str, new: str) -> None:
        self.repo.git.mv(old, new)

    def commit(self, message: str = "Update database") -> str:
        """Commit every change in the work tree and return the new HEAD."""
        self.repo.git.add("-A")
        self.repo.git.commit("-m", message, "--allow-empty")
        self.repo.git.branch("-M", "main")
        return self.repo.head.commit.hexsha

    @property
    def head(self) -> str:
        return self.repo.head.commit.hexsha


class RejectingStorage(Storage):
    """A store that refuses writes for selected filenames."""

    def __init__(self, db_path: Path, rejected: set[str]):
        super().__init__(db_path)
        self.rejected = rejected

    def upsert_documents(self, documents):
        if any(doc.filename in self.rejected for doc in documents):
            raise OSError("write rejected")
        super().upsert_documents(documents)

    def delete_document(self, table_name, filename):
        if filename in self.rejected:
            raise OSError("delete rejected")
        return super().delete_document(table_name, filename)


def setup_gitdb_project(project_root: Path, config: GitDBConfig | None = None) -> GitDBConfig:
    """Initialize an mgdb project at the given path.

    This replaces CLI-based initialization for testing.
    """
    if config is None:
        config = GitDBConfig(checkout_path="database")

    get_gitdb_dir(project_root).mkdir(parents=True, exist_ok=True)
    save_config(config, project_root)
    save_manifest(create_empty_manifest(), project_root)

    return config


def documents_of(storage: Storage, table: str) -> dict[str, str]:
    """Map filename -> indexed content for one table."""
    return {
        filename: storage.get_document(table, filename)["content"]
        for filename in storage.list_filenames(table)
    }


def files_of(database_path: Path, table: str) -> dict[str, str]:
    """Map filename -> content for the records on disk."""
    return {
        entry.name: entry.read_text()
        for entry in (database_path / table).iterdir()
        if entry.is_file() and not entry.name.startswith(".")
    }


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MGDB_* variables from the environment out of the tests."""
    for name in (
        "MGDB_REPO_URL",
        "MGDB_BRANCH",
        "MGDB_CHECKOUT_PATH",
        "MGDB_DATABASE_SUBDIR",
        "MGDB_MAX_CONCURRENCY",
        "MGDB_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    return tmp_path / "project"


@pytest.fixture
def database(project_root: Path) -> DatabaseRepo:
    """A committed database checkout at <project>/database."""
    db = DatabaseRepo(project_root / "database")
    for relpath, content in INITIAL_FILES.items():
        db.write(relpath, content)
    db.commit("Initial database")
    return db


@pytest.fixture
def initialized_project(project_root: Path, database: DatabaseRepo) -> Path:
    """A project with mgdb initialized against a local checkout (no sync yet)."""
    setup_gitdb_project(project_root)
    return project_root


@pytest.fixture
def storage(project_root: Path):
    """A connected index store for the project."""
    store = Storage(get_lancedb_path(project_root))
    store.connect()
    yield store
    store.close()
