"""Git-based change detection for Markdown GitDB tables."""

import asyncio
import logging

from git.exc import GitCommandError

from .checkout import GitCheckout
from .errors import DiffError
from .scanner import is_hidden

logger = logging.getLogger(__name__)


def normalize_diff_paths(raw: str, prefix: str) -> list[str]:
    """
    Turn raw `git diff --name-only` output into record filenames.

    Entries are expected relative to the table root already; a leftover
    `prefix/` is stripped. Absolute paths and `..` segments are rejected,
    nested-directory and hidden entries are dropped.

    Args:
        raw: NUL-separated diff output (`-z`)
        prefix: Table path relative to the work tree (e.g. "posts")

    Returns:
        Filenames in output order, without duplicates
    """
    table_prefix = prefix.strip("/") + "/"
    filenames: list[str] = []
    seen: set[str] = set()

    for entry in raw.split("\0"):
        path = entry
        if not path:
            continue

        if path.startswith(table_prefix):
            path = path[len(table_prefix):]

        if path.startswith("/") or ".." in path.split("/"):
            logger.warning("Ignoring unexpected path in diff output: %r", entry)
            continue
        if "/" in path:
            logger.debug("Ignoring nested path in diff output: %s", path)
            continue
        if is_hidden(path):
            continue

        if path not in seen:
            seen.add(path)
            filenames.append(path)

    return filenames


class ChangeDetector:
    """Computes the record files of a table changed between two revisions."""

    def __init__(self, checkout: GitCheckout):
        self.checkout = checkout

    async def changed_files(
        self, table: str, since_revision: str, head: str = "HEAD"
    ) -> list[str]:
        """
        Get the filenames added, modified or deleted in a table since a revision.

        Args:
            table: Table name
            since_revision: Revision the table was last indexed at
            head: Revision to diff against (default: HEAD)

        Returns:
            Filenames relative to the table root (empty if nothing changed)

        Raises:
            DiffError: If a revision can't be resolved or git fails
        """
        logger.debug("Checking for changes in table: %s", table)
        return await asyncio.to_thread(self._changed_files_sync, table, since_revision, head)

    def _changed_files_sync(self, table: str, since_revision: str, head: str) -> list[str]:
        git = self.checkout.repo.git
        prefix = self.checkout.table_prefix(table)

        try:
            # Both ends must resolve to commits (history may have been rewritten)
            for revision in (since_revision, head):
                git.rev_parse("--verify", "--quiet", f"{revision}^{{commit}}")
            diff = git.diff(
                "--name-only",
                "-z",
                "--no-renames",
                f"--relative={prefix}/",
                f"{since_revision}..{head}",
                "--",
                prefix,
            )
        except GitCommandError as e:
            logger.error("Failed to get changes in table: %s", table)
            raise DiffError(table, since_revision, head, str(e).strip()) from e

        if not diff.strip("\0"):
            logger.info("No changes in table: %s", table)
            return []

        return normalize_diff_paths(diff, prefix)
