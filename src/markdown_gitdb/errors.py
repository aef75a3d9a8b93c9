"""Error types for Markdown GitDB."""


class GitDBError(Exception):
    """Base class for all Markdown GitDB errors."""


class ConfigError(GitDBError):
    """The configuration file could not be read or validated."""


class CheckoutError(GitDBError):
    """Cloning, fetching or inspecting the database checkout failed."""


class StoreClosedError(GitDBError):
    """The index store was used before connect() or after close()."""


class NotFoundError(GitDBError):
    """A database or table directory does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Directory not found: {path}")


class DiffError(GitDBError):
    """Computing the changed files of a table failed."""

    def __init__(self, table: str, since: str, head: str, reason: str):
        self.table = table
        self.since = since
        self.head = head
        super().__init__(f"Failed to diff table '{table}' ({since}..{head}): {reason}")


class IndexWriteError(GitDBError):
    """The index store rejected one or more writes for a table."""

    def __init__(self, table: str, filenames: list[str]):
        self.table = table
        self.filenames = filenames
        super().__init__(
            f"Index store rejected {len(filenames)} write(s) in table '{table}': "
            + ", ".join(filenames)
        )
