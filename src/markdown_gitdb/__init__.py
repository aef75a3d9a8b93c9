"""Markdown GitDB - Incremental index of a git-versioned markdown database."""

__version__ = "0.1.0"

# Directory and file constants
GITDB_DIR = ".markdown-gitdb"
CONFIG_FILE = "config.json"
MANIFEST_FILE = "manifest.json"
LANCEDB_DIR = "lancedb"
HIDDEN_PREFIX = "."
