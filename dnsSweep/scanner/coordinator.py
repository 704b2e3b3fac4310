"""Per-host scan orchestration: primary domain first, then the additional ones."""
from __future__ import annotations

import ipaddress
import logging
import time
from datetime import datetime
from typing import Callable, Union

from dnsSweep.db.sink import ResultSink
from dnsSweep.errors import PersistenceError, QueryError
from dnsSweep.logging_config import get_logger
from dnsSweep.scanner.config import ScanConfiguration
from dnsSweep.scanner.encoder import QueryTargetEncoder, make_fqdn
from dnsSweep.scanner.executor import DNSQueryExecutor
from dnsSweep.scanner.models import DomainResult, HostReport, QueryRecord, utcnow


class ScanCoordinator:
    """Queries one host for every configured domain and stores the answers.

    The scanned host itself is used as the resolver: each candidate address
    is asked for the encoded name as though it were a DNS server, so only
    hosts that answer (or forward) DNS produce records.
    """

    def __init__(
        self,
        config: ScanConfiguration,
        executor: DNSQueryExecutor,
        encoder: QueryTargetEncoder,
        sink: ResultSink,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.executor = executor
        self.encoder = encoder
        self.sink = sink
        self.clock = clock

    def scan_host(self, address: Union[str, ipaddress.IPv4Address]) -> HostReport:
        ip = str(address)
        log = get_logger("scanner", context={"ip": ip})
        fqdn = make_fqdn(self.encoder.encode(address), self.config.primary_domain)
        report = HostReport(ip=ip, fqdn=fqdn)
        start_time = time.time()

        report.results.append(self._query_domain(log, ip, self.config.primary_domain, fqdn))

        # Additional domains are queried by their raw name, in the order given
        for domain in self.config.additional_domains:
            report.results.append(self._query_domain(log, ip, domain, domain))

        log.debug(
            "Host scan finished",
            extra={
                "fqdn": fqdn,
                "records": report.succeeded,
                "failures": report.failed,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success" if not report.failed else "partial",
            },
        )
        return report

    def _query_domain(self, log: logging.LoggerAdapter, ip: str, domain: str, target_name: str) -> DomainResult:
        try:
            result = self.executor.execute(target_name, ip)
        except QueryError as exc:
            log.info(
                f"Query failed: {exc}",
                extra={
                    "domain": domain,
                    "fqdn": target_name,
                    "outcome": "error",
                    "error_type": type(exc).__name__,
                },
            )
            return DomainResult.failure(ip, domain, exc)
        except Exception as exc:
            log.error(
                f"Unexpected error querying {target_name} via {ip}: {exc}",
                exc_info=True,
                extra={"domain": domain, "outcome": "error", "error_type": type(exc).__name__},
            )
            return DomainResult.failure(ip, domain, exc)

        record = QueryRecord(
            timestamp=self.clock(),
            ip=ip,
            domain=domain,
            query=result.query,
            answer=result.answer,
        )
        try:
            self.sink.insert(record)
        except PersistenceError as exc:
            log.error(
                f"Failed to store result: {exc}",
                extra={
                    "domain": domain,
                    "query": record.query,
                    "outcome": "error",
                    "error_type": type(exc).__name__,
                },
            )
            return DomainResult.failure(ip, domain, exc)
        except Exception as exc:
            log.error(
                f"Unexpected error storing result for {domain}: {exc}",
                exc_info=True,
                extra={
                    "domain": domain,
                    "query": record.query,
                    "outcome": "error",
                    "error_type": type(exc).__name__,
                },
            )
            return DomainResult.failure(ip, domain, exc)

        log.info(
            "DNS response recorded",
            extra={"domain": domain, "query": record.query, "outcome": "success"},
        )
        return DomainResult.success(record)
