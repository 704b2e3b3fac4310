"""SQLite storage for scan results."""
from __future__ import annotations

import sqlite3
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import List, Union

from dnsSweep.errors import PersistenceError
from dnsSweep.logging_config import get_logger
from dnsSweep.scanner.models import QueryRecord

logger = get_logger("db")


# SQL statements
SQL_CREATE_QUERIES = """
CREATE TABLE IF NOT EXISTS dns_queries (
    timestamp TIMESTAMP,
    ip TEXT,
    domain TEXT,
    query TEXT,
    answer TEXT
)
"""


SQL_INSERT_QUERY = """
INSERT INTO dns_queries (timestamp, ip, domain, query, answer)
VALUES (?, ?, ?, ?, ?)
"""


SQL_COUNT_QUERIES = "SELECT COUNT(*) FROM dns_queries"


SQL_RECENT_QUERIES = """
SELECT timestamp, ip, domain, query, answer
FROM dns_queries
ORDER BY timestamp DESC
LIMIT ?
"""


class SQLiteResultSink:
    """Append-only SQLite sink shared by all worker threads.

    One connection is opened with check_same_thread disabled and every
    statement runs under a lock, so concurrent inserts are serialised.
    """

    def __init__(self, path: Union[str, Path], timeout: float = 30.0) -> None:
        self.path = str(path)
        self._lock = threading.Lock()
        self._closed = False

        logger.info(
            "Opening SQLite result store",
            extra={"db_path": self.path, "action": "db_open"},
        )
        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, timeout=timeout, check_same_thread=False)
            self._conn.execute(SQL_CREATE_QUERIES)
            self._conn.commit()
        except (sqlite3.Error, OSError) as exc:
            logger.error(
                f"Failed to open SQLite store: {exc}",
                exc_info=True,
                extra={"db_path": self.path, "outcome": "error", "error_type": type(exc).__name__},
            )
            raise PersistenceError(f"Cannot open result store {self.path}: {exc}") from exc

    def insert(self, record: QueryRecord) -> None:
        """Persist a single record; raises PersistenceError on failure."""
        start_time = time.time()
        row = (
            record.timestamp.isoformat(),
            record.ip,
            record.domain,
            record.query,
            record.answer,
        )
        with self._lock:
            self._check_open()
            try:
                self._conn.execute(SQL_INSERT_QUERY, row)
                self._conn.commit()
            except sqlite3.Error as exc:
                logger.error(
                    f"Failed to insert DNS query record: {exc}",
                    extra={
                        "ip": record.ip,
                        "domain": record.domain,
                        "duration": round((time.time() - start_time) * 1000, 2),
                        "outcome": "error",
                        "error_type": type(exc).__name__,
                    },
                )
                raise PersistenceError(f"Insert failed for {record.ip}/{record.domain}: {exc}") from exc

        logger.debug(
            "DNS query record inserted",
            extra={
                "ip": record.ip,
                "domain": record.domain,
                "rows_affected": 1,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )

    def count(self) -> int:
        with self._lock:
            self._check_open()
            return int(self._conn.execute(SQL_COUNT_QUERIES).fetchone()[0])

    def fetch_records(self, limit: int = 100) -> List[QueryRecord]:
        """Return the most recent records, newest first."""
        with self._lock:
            self._check_open()
            rows = self._conn.execute(SQL_RECENT_QUERIES, (limit,)).fetchall()
        return [
            QueryRecord(
                timestamp=datetime.fromisoformat(ts),
                ip=ip,
                domain=domain,
                query=query,
                answer=answer or "",
            )
            for ts, ip, domain, query, answer in rows
        ]

    def _check_open(self) -> None:
        if self._closed:
            raise PersistenceError(f"Result store {self.path} is closed")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._conn.close()
        logger.info("SQLite result store closed", extra={"db_path": self.path, "state": "stopped"})

    def __enter__(self) -> "SQLiteResultSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
