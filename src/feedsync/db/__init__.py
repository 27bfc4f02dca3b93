"""feedsync database layer."""

from feedsync.db.connection import Database
from feedsync.db.migrations import MIGRATIONS, run_migrations
from feedsync.db.queue import QueueMessage, SqliteQueue
from feedsync.db.repository import UnifiedStore
from feedsync.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "QueueMessage",
    "SqliteQueue",
    "UnifiedStore",
]
