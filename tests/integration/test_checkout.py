"""Integration tests for the git checkout provider."""

from pathlib import Path

import pytest
from git import Repo

from markdown_gitdb.checkout import GitCheckout
from markdown_gitdb.errors import CheckoutError
from tests.conftest import DatabaseRepo


@pytest.fixture
def remote(tmp_path: Path) -> DatabaseRepo:
    db = DatabaseRepo(tmp_path / "remote")
    db.write("posts/a.md", "# A\n")
    db.commit("Initial")
    return db


class TestEnsureLatest:
    @pytest.mark.asyncio
    async def test_clones_missing_checkout(self, remote: DatabaseRepo, tmp_path: Path):
        checkout = GitCheckout(tmp_path / "clone", repo_url=str(remote.path), branch="main")
        await checkout.ensure_latest()

        assert (tmp_path / "clone" / "posts" / "a.md").read_text() == "# A\n"
        assert await checkout.current_revision_id() == remote.head

    @pytest.mark.asyncio
    async def test_pulls_new_commits(self, remote: DatabaseRepo, tmp_path: Path):
        checkout = GitCheckout(tmp_path / "clone", repo_url=str(remote.path), branch="main")
        await checkout.ensure_latest()

        remote.write("posts/b.md", "# B\n")
        head = remote.commit("Add b")
        await checkout.ensure_latest()

        assert await checkout.current_revision_id() == head
        assert (tmp_path / "clone" / "posts" / "b.md").exists()

    @pytest.mark.asyncio
    async def test_local_checkout_without_remote(self, remote: DatabaseRepo):
        checkout = GitCheckout(remote.path)
        await checkout.ensure_latest()
        assert await checkout.current_revision_id() == remote.head

    @pytest.mark.asyncio
    async def test_not_a_git_checkout(self, tmp_path: Path):
        checkout = GitCheckout(tmp_path)
        with pytest.raises(CheckoutError):
            await checkout.ensure_latest()

    @pytest.mark.asyncio
    async def test_bad_remote(self, tmp_path: Path):
        checkout = GitCheckout(tmp_path / "clone", repo_url=str(tmp_path / "nowhere"))
        with pytest.raises(CheckoutError):
            await checkout.ensure_latest()


class TestRevisions:
    @pytest.mark.asyncio
    async def test_repository_without_commits(self, tmp_path: Path):
        Repo.init(tmp_path / "empty")
        checkout = GitCheckout(tmp_path / "empty")
        with pytest.raises(CheckoutError):
            await checkout.current_revision_id()


class TestPaths:
    def test_database_path_defaults_to_checkout(self, tmp_path: Path):
        checkout = GitCheckout(tmp_path)
        assert checkout.database_path == tmp_path
        assert checkout.table_prefix("posts") == "posts"

    def test_database_subdir(self, tmp_path: Path):
        checkout = GitCheckout(tmp_path, database_subdir="/data/")
        assert checkout.database_path == tmp_path / "data"
        assert checkout.table_prefix("posts") == "data/posts"
