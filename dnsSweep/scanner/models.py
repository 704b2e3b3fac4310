"""Data models for scan results."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryResult(BaseModel):
    """Text rendering of one question/response exchange."""
    query: str
    answer: str = ""

    model_config = ConfigDict(frozen=True)


class QueryRecord(BaseModel):
    """One stored (timestamp, ip, domain, query, answer) row."""
    timestamp: datetime = Field(default_factory=utcnow)
    ip: str
    domain: str
    query: str
    answer: str = ""

    model_config = ConfigDict(frozen=True)


class DomainResult(BaseModel):
    """Outcome of querying one domain against one host."""
    ip: str
    domain: str
    ok: bool
    record: Optional[QueryRecord] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def success(cls, record: QueryRecord) -> "DomainResult":
        return cls(ip=record.ip, domain=record.domain, ok=True, record=record)

    @classmethod
    def failure(cls, ip: str, domain: str, exc: BaseException) -> "DomainResult":
        return cls(
            ip=ip,
            domain=domain,
            ok=False,
            error=str(exc),
            error_type=type(exc).__name__,
        )


class HostReport(BaseModel):
    """Every per-domain result for a single scanned host, in query order."""
    ip: str
    fqdn: str
    results: List[DomainResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)
