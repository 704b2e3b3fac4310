"""Result sink interface and an in-memory implementation."""
from __future__ import annotations

import threading
from typing import List, Protocol

from dnsSweep.scanner.models import QueryRecord


class ResultSink(Protocol):
    """Append-only store of query records.

    Implementations must accept concurrent insert() calls from many worker
    threads and raise PersistenceError when a record cannot be stored.
    """

    def insert(self, record: QueryRecord) -> None:
        ...


class MemoryResultSink:
    """Thread-safe list of records, used for dry runs and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[QueryRecord] = []

    def insert(self, record: QueryRecord) -> None:
        with self._lock:
            self._records.append(record)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def records(self) -> List[QueryRecord]:
        with self._lock:
            return list(self._records)

    def close(self) -> None:
        pass
