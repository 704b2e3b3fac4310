"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import tempfile
import threading
from typing import Dict, List, Optional, Tuple

# Keep JSONL output out of the working tree; must run before dnsSweep imports
os.environ.setdefault(
    "DNSSWEEP_LOG_FILE", os.path.join(tempfile.mkdtemp(prefix="dnssweep-logs-"), "test.jsonl")
)
os.environ.setdefault("DNSSWEEP_LOG_LEVEL", "DEBUG")

import pytest

from dnsSweep.db.sink import MemoryResultSink
from dnsSweep.errors import PersistenceError
from dnsSweep.scanner.config import ScanConfiguration
from dnsSweep.scanner.encoder import DictionaryEncoder
from dnsSweep.scanner.models import QueryRecord, QueryResult


class FakeExecutor:
    """Stands in for DNSQueryExecutor; answers every name with the resolver IP.

    `failures` maps a target name (or a (target name, resolver) pair) to the
    exception that exchange should raise.
    """

    def __init__(self, failures: Optional[Dict[object, Exception]] = None) -> None:
        self.failures = failures or {}
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def execute(self, target_name: str, resolver_address) -> QueryResult:
        resolver = str(resolver_address)
        with self._lock:
            self.calls.append((target_name, resolver))
        exc = self.failures.get((target_name, resolver)) or self.failures.get(target_name)
        if exc is not None:
            raise exc
        return QueryResult(
            query=f"{target_name}. A",
            answer=f"{target_name}.\t60\tIN\tA\t{resolver}\n",
        )


class FlakySink(MemoryResultSink):
    """Memory sink that refuses records for the given domains."""

    def __init__(self, reject_domains=()) -> None:
        super().__init__()
        self.reject_domains = set(reject_domains)

    def insert(self, record: QueryRecord) -> None:
        if record.domain in self.reject_domains:
            raise PersistenceError(f"disk full while writing {record.domain}")
        super().insert(record)


@pytest.fixture
def encoder() -> DictionaryEncoder:
    return DictionaryEncoder.default()


@pytest.fixture
def sink() -> MemoryResultSink:
    return MemoryResultSink()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def config() -> ScanConfiguration:
    return ScanConfiguration(
        primary_domain="example.com",
        network="192.0.2.0/30",
        additional_domains=["extra.org"],
        timeout_seconds=1,
        concurrency_limit=4,
    )
