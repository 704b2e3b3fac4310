"""Network DNS sweep: query every host of a CIDR block and store the answers."""
from __future__ import annotations

import argparse
import os
import sys
import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from dnsSweep.db.sink import ResultSink
from dnsSweep.db.sqlite import SQLiteResultSink
from dnsSweep.errors import InvalidRangeError, PersistenceError
from dnsSweep.logging_config import get_logger, reset_scan_id, sanitize_log_data, set_level, set_scan_id
from dnsSweep.scanner.config import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT_SECONDS, ScanConfiguration
from dnsSweep.scanner.coordinator import ScanCoordinator
from dnsSweep.scanner.encoder import DictionaryEncoder, QueryTargetEncoder
from dnsSweep.scanner.enumerator import enumerate_addresses, parse_network
from dnsSweep.scanner.executor import DNSQueryExecutor
from dnsSweep.scanner.models import HostReport
from dnsSweep.scanner.pool import PoolStats, WorkerPool

install_rich_traceback()
console = Console()
logger = get_logger("cli")


@dataclass
class ScanSummary:
    scan_id: str
    network: str
    hosts: int = 0
    queries: int = 0
    records: int = 0
    failures: Dict[str, int] = field(default_factory=dict)
    pool: PoolStats = field(default_factory=PoolStats)
    duration: float = 0.0

    @property
    def failed_queries(self) -> int:
        return sum(self.failures.values())


def build_encoder(config: ScanConfiguration) -> QueryTargetEncoder:
    if config.dictionary_path:
        return DictionaryEncoder.from_file(config.dictionary_path)
    return DictionaryEncoder.default()


def run_scan(
    config: ScanConfiguration,
    sink: ResultSink,
    executor: Optional[DNSQueryExecutor] = None,
    encoder: Optional[QueryTargetEncoder] = None,
) -> ScanSummary:
    """Scan every address of config.network; returns once all hosts are done.

    An invalid range raises InvalidRangeError before anything is dispatched.
    Query and storage failures are counted in the summary, never raised.
    """
    network = parse_network(config.network)
    addresses = enumerate_addresses(config.network)

    encoder = encoder or build_encoder(config)
    executor = executor or DNSQueryExecutor(
        config.timeout_seconds,
        port=config.resolver_port,
        rdtype=config.qtype,
    )
    coordinator = ScanCoordinator(config, executor, encoder, sink)

    scan_id = str(uuid.uuid4())
    token = set_scan_id(scan_id)
    summary = ScanSummary(scan_id=scan_id, network=str(network))
    failures: Counter = Counter()
    lock = threading.Lock()

    def _scan(address) -> HostReport:
        report = coordinator.scan_host(address)
        with lock:
            summary.hosts += 1
            summary.queries += len(report.results)
            summary.records += report.succeeded
            failures.update(r.error_type for r in report.results if not r.ok)
        return report

    logger.info(
        "Network scan starting",
        extra={
            "network": str(network),
            "batch_size": network.num_addresses,
            "domain": config.primary_domain,
            "concurrency_limit": config.concurrency_limit,
            "action": "scan_start",
        },
    )
    start_time = time.time()
    try:
        summary.pool = WorkerPool(config.concurrency_limit).run(addresses, _scan)
    finally:
        reset_scan_id(token)

    summary.duration = time.time() - start_time
    summary.failures = dict(failures)
    logger.info(
        "Network scan completed",
        extra={
            "scan_id": scan_id,
            "network": str(network),
            "dispatched": summary.pool.dispatched,
            "records": summary.records,
            "failures": summary.failed_queries,
            "duration": round(summary.duration * 1000, 2),
            "outcome": "success",
        },
    )
    return summary


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Query every host of an IPv4 network as a DNS resolver and log the answers",
    )
    parser.add_argument("--domain", help="Domain appended to each host's encoded label")
    parser.add_argument("--network", help="Network range to scan, e.g. 192.0.2.0/24")
    parser.add_argument(
        "--timeout",
        type=int,
        help=f"Timeout for DNS queries in seconds (default {DEFAULT_TIMEOUT_SECONDS})",
    )
    parser.add_argument("--domains", help="Comma-separated list of additional domains to query")
    parser.add_argument(
        "--db",
        default=os.getenv("DNSSWEEP_DB"),
        help="SQLite database file (default dns.db)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help=f"Number of hosts scanned simultaneously (default {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument("--dictionary", help="Word list used to encode addresses (256+ words)")
    parser.add_argument("--qtype", help="Record type to query (default A)")
    parser.add_argument(
        "--config",
        default=os.getenv("DNSSWEEP_CONFIG"),
        help="Path to a YAML scan config; command-line flags take precedence",
    )
    parser.add_argument("--log-level", help="Override DNSSWEEP_LOG_LEVEL")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> ScanConfiguration:
    values = {
        "primary_domain": args.domain,
        "network": args.network,
        "timeout_seconds": args.timeout,
        "additional_domains": args.domains,
        "concurrency_limit": args.workers,
        "db_path": args.db,
        "dictionary_path": args.dictionary,
        "qtype": args.qtype,
    }
    if args.config:
        return ScanConfiguration.load(args.config, overrides=values)
    return ScanConfiguration.build(**values)


def render_summary(summary: ScanSummary, config: ScanConfiguration) -> Table:
    table = Table(title=f"DNS sweep of {summary.network}", show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("scan id", summary.scan_id)
    table.add_row("domains", ", ".join(config.domains))
    table.add_row("hosts scanned", str(summary.hosts))
    table.add_row("queries sent", str(summary.queries))
    table.add_row("records stored", f"[green]{summary.records}[/green]")
    for error_type, count in sorted(summary.failures.items()):
        table.add_row(f"failed ({error_type})", f"[red]{count}[/red]")
    table.add_row("peak concurrency", str(summary.pool.peak_in_flight))
    table.add_row("duration", f"{summary.duration:.2f}s")
    return table


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    try:
        config = load_config(args)
        # Fail on a bad range or word list before opening the database
        parse_network(config.network)
        encoder = build_encoder(config)
    except (ValueError, FileNotFoundError) as exc:
        logger.error(f"Invalid configuration: {exc}", extra={"outcome": "error", "error_type": type(exc).__name__})
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        return 2

    logger.info(
        "Scan configuration loaded",
        extra={"extra_fields": sanitize_log_data({"config": config.model_dump()})},
    )

    try:
        sink = SQLiteResultSink(config.db_path)
    except PersistenceError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1

    try:
        with sink:
            summary = run_scan(config, sink, encoder=encoder)
    except InvalidRangeError as exc:
        console.print(f"[red]{exc}[/red]")
        return 2
    except KeyboardInterrupt:
        logger.info("Scan interrupted by user", extra={"state": "interrupted"})
        console.print("[yellow]Scan interrupted.")
        return 130

    console.print(render_summary(summary, config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
