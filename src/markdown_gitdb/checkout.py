"""Git checkout management for Markdown GitDB.

GitPython is synchronous; the public methods are async and run the
blocking calls through asyncio.to_thread().
"""

import asyncio
import logging
from pathlib import Path, PurePosixPath

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .errors import CheckoutError

logger = logging.getLogger(__name__)


class GitCheckout:
    """The local working copy holding the markdown database."""

    def __init__(
        self,
        checkout_path: Path,
        repo_url: str | None = None,
        branch: str = "main",
        database_subdir: str = "",
    ):
        self.checkout_path = checkout_path
        self.repo_url = repo_url
        self.branch = branch
        self.database_subdir = database_subdir.strip("/")
        self._repo: Repo | None = None

    @property
    def database_path(self) -> Path:
        """Directory whose top-level directories are the tables."""
        if self.database_subdir:
            return self.checkout_path / self.database_subdir
        return self.checkout_path

    def table_prefix(self, table: str) -> str:
        """Path of a table relative to the work tree, with forward slashes."""
        if self.database_subdir:
            return str(PurePosixPath(self.database_subdir) / table)
        return table

    @property
    def repo(self) -> Repo:
        if self._repo is None:
            try:
                self._repo = Repo(self.checkout_path)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise CheckoutError(f"Not a git checkout: {self.checkout_path}") from e
        return self._repo

    async def ensure_latest(self) -> None:
        """Make the working copy reflect the remote branch head.

        Clones on first use. Without a repo_url the checkout is only
        validated.
        """
        await asyncio.to_thread(self._ensure_latest_sync)

    async def current_revision_id(self) -> str:
        """Get the commit hash of HEAD."""
        return await asyncio.to_thread(self._current_revision_id_sync)

    def _ensure_latest_sync(self) -> None:
        if self.repo_url is None:
            _ = self.repo
            logger.debug("No repo_url configured, using %s as is", self.checkout_path)
            return

        try:
            if not (self.checkout_path / ".git").exists():
                logger.info("Cloning %s to %s", self.repo_url, self.checkout_path)
                self.checkout_path.parent.mkdir(parents=True, exist_ok=True)
                self._repo = Repo.clone_from(
                    self.repo_url, self.checkout_path, branch=self.branch
                )
                return

            logger.info("Fetching updates for %s", self.checkout_path)
            self.repo.remotes.origin.fetch()
            self.repo.git.checkout(self.branch)
            self.repo.git.reset("--hard", f"origin/{self.branch}")
        except GitCommandError as e:
            raise CheckoutError(f"Failed to update checkout: {e}") from e

    def _current_revision_id_sync(self) -> str:
        try:
            return self.repo.head.commit.hexsha
        except ValueError as e:
            # Raised by GitPython when HEAD has no commits yet
            raise CheckoutError(f"Checkout has no commits: {self.checkout_path}") from e
