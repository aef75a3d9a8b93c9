"""Integration tests for git-based change detection."""

import pytest

from markdown_gitdb.changes import ChangeDetector
from markdown_gitdb.checkout import GitCheckout
from markdown_gitdb.errors import DiffError
from tests.conftest import DatabaseRepo


@pytest.fixture
def detector(database: DatabaseRepo) -> ChangeDetector:
    return ChangeDetector(GitCheckout(database.path))


class TestChangedFiles:
    @pytest.mark.asyncio
    async def test_add_and_delete(self, database: DatabaseRepo, detector: ChangeDetector):
        """Removed and added files are both reported, relative to the table."""
        since = database.head
        database.remove("posts/a.md")
        database.write("posts/c.md", "# C\n")
        head = database.commit("Replace a with c")

        changed = await detector.changed_files("posts", since, head)
        assert sorted(changed) == ["a.md", "c.md"]

    @pytest.mark.asyncio
    async def test_modification(self, database: DatabaseRepo, detector: ChangeDetector):
        since = database.head
        database.write("posts/b.md", "# B\n\nEdited.\n")
        database.commit("Edit b")

        assert await detector.changed_files("posts", since) == ["b.md"]

    @pytest.mark.asyncio
    async def test_no_changes(self, database: DatabaseRepo, detector: ChangeDetector):
        since = database.head
        assert await detector.changed_files("posts", since) == []

    @pytest.mark.asyncio
    async def test_changes_scoped_to_table(self, database: DatabaseRepo, detector: ChangeDetector):
        since = database.head
        database.write("authors/bob.md", "# Bob\n")
        database.commit("Add bob")

        assert await detector.changed_files("posts", since) == []
        assert await detector.changed_files("authors", since) == ["bob.md"]

    @pytest.mark.asyncio
    async def test_nested_and_hidden_changes_ignored(
        self, database: DatabaseRepo, detector: ChangeDetector
    ):
        since = database.head
        database.write("posts/drafts/y.md", "# Y\n")
        database.write("posts/.hidden.md", "secret\n")
        database.commit("Nested and hidden")

        assert await detector.changed_files("posts", since) == []

    @pytest.mark.asyncio
    async def test_rename_reports_old_and_new(
        self, database: DatabaseRepo, detector: ChangeDetector
    ):
        since = database.head
        database.rename("posts/a.md", "posts/renamed.md")
        database.commit("Rename a")

        assert sorted(await detector.changed_files("posts", since)) == ["a.md", "renamed.md"]

    @pytest.mark.asyncio
    async def test_unknown_revision_raises(self, detector: ChangeDetector):
        with pytest.raises(DiffError) as exc_info:
            await detector.changed_files("posts", "0" * 40)
        assert exc_info.value.table == "posts"

    @pytest.mark.asyncio
    async def test_database_subdir(self, tmp_path):
        db = DatabaseRepo(tmp_path / "repo")
        db.write("data/posts/a.md", "# A\n")
        db.write("docs/posts/a.md", "# Unrelated\n")
        since = db.commit("Initial")
        db.write("data/posts/a.md", "# A v2\n")
        db.write("docs/posts/a.md", "# Unrelated v2\n")
        db.write("data/posts/b.md", "# B\n")
        db.commit("Update")

        detector = ChangeDetector(GitCheckout(db.path, database_subdir="data"))
        assert sorted(await detector.changed_files("posts", since)) == ["a.md", "b.md"]
