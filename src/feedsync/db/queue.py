"""Durable message queue on SQLite with receive/delete visibility semantics.

A received message is hidden for ``visibility_timeout`` seconds under a fresh
receipt handle. Deleting needs that handle; if the timeout lapses the message
becomes visible again and any older handle stops working. Claiming a message is
a single conditional UPDATE, so overlapping consumers receive disjoint messages.
"""

from __future__ import annotations

import json
import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Protocol


@dataclass(frozen=True)
class QueueMessage:
    message_id: str
    receipt_handle: str
    body: str
    attributes: dict[str, str] = field(default_factory=dict)
    receive_count: int = 1


class MessageQueue(Protocol):
    """The queue contract the dead-letter and redrive layers rely on."""

    def publish(self, body: str, attributes: dict[str, str] | None = None) -> str: ...

    def receive(
        self, max_messages: int = 10, visibility_timeout: int = 30
    ) -> list[QueueMessage]: ...

    def delete(self, receipt_handle: str) -> bool: ...


class SqliteQueue:
    """Named queue stored in the ``queue_messages`` table.

    Args:
        conn: Open connection with the schema initialised.
        name: Queue name; several queues can share one table.
        clock: Seconds-since-epoch source (injectable for tests).
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        name: str = "enrichment-dlq",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._conn = conn
        self.name = name
        self._clock = clock

    def publish(self, body: str, attributes: dict[str, str] | None = None) -> str:
        """Append a message and return its id. It is visible immediately."""
        message_id = str(uuid.uuid4())
        now = self._clock()
        self._conn.execute(
            """
            INSERT INTO queue_messages
                (message_id, queue_name, body, attributes, enqueued_at, visible_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (message_id, self.name, body, json.dumps(attributes or {}), now, now),
        )
        self._conn.commit()
        return message_id

    def receive(
        self, max_messages: int = 10, visibility_timeout: int = 30
    ) -> list[QueueMessage]:
        """Claim up to *max_messages* visible messages, oldest first."""
        now = self._clock()
        candidates = self._conn.execute(
            """
            SELECT message_id FROM queue_messages
            WHERE queue_name = ? AND visible_at <= ?
            ORDER BY enqueued_at, rowid
            LIMIT ?
            """,
            (self.name, now, max_messages),
        ).fetchall()

        claimed: list[QueueMessage] = []
        for candidate in candidates:
            handle = str(uuid.uuid4())
            cur = self._conn.execute(
                """
                UPDATE queue_messages
                SET receipt_handle = ?, visible_at = ?, receive_count = receive_count + 1
                WHERE message_id = ? AND visible_at <= ?
                """,
                (handle, now + visibility_timeout, candidate["message_id"], now),
            )
            self._conn.commit()
            if cur.rowcount != 1:
                continue  # claimed by a concurrent consumer
            row = self._conn.execute(
                "SELECT message_id, body, attributes, receive_count FROM queue_messages "
                "WHERE message_id = ?",
                (candidate["message_id"],),
            ).fetchone()
            claimed.append(
                QueueMessage(
                    message_id=row["message_id"],
                    receipt_handle=handle,
                    body=row["body"],
                    attributes=json.loads(row["attributes"]),
                    receive_count=row["receive_count"],
                )
            )
        return claimed

    def delete(self, receipt_handle: str) -> bool:
        """Delete the message currently held under *receipt_handle*."""
        cur = self._conn.execute(
            "DELETE FROM queue_messages WHERE queue_name = ? AND receipt_handle = ?",
            (self.name, receipt_handle),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def depth(self) -> int:
        """Total messages in the queue, visible or in flight."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM queue_messages WHERE queue_name = ?", (self.name,)
        ).fetchone()[0]
