"""Single DNS request/response exchange against an arbitrary resolver."""
from __future__ import annotations

import ipaddress
import time
from typing import Union

import dns.exception
import dns.message
import dns.query
import dns.rdatatype

from dnsSweep.errors import QueryTimeoutError, TransportError
from dnsSweep.logging_config import get_logger
from dnsSweep.scanner.models import QueryResult

logger = get_logger("executor")

DNS_PORT = 53


def describe_question(message: dns.message.Message) -> str:
    """Render the first question as "<name> <TYPE>", e.g. "a.example.com. A"."""
    question = message.question[0]
    return f"{question.name.to_text()} {dns.rdatatype.to_text(question.rdtype)}"


def describe_answer(message: dns.message.Message) -> str:
    """Render each answer RR on its own newline-terminated line."""
    lines = []
    for rrset in message.answer:
        for line in rrset.to_text().splitlines():
            lines.append(line + "\n")
    return "".join(lines)


class DNSQueryExecutor:
    """Sends one question over UDP and returns its text rendering.

    Holds only immutable settings, so a single instance is shared by every
    worker thread.
    """

    def __init__(
        self,
        timeout: float,
        port: int = DNS_PORT,
        rdtype: Union[str, int] = "A",
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = float(timeout)
        self.port = port
        self.rdtype = dns.rdatatype.RdataType.make(rdtype)

    def execute(self, target_name: str, resolver_address: Union[str, ipaddress.IPv4Address]) -> QueryResult:
        resolver = str(resolver_address)
        start_time = time.time()
        try:
            request = dns.message.make_query(target_name, self.rdtype)
            response = dns.query.udp(
                request,
                resolver,
                timeout=self.timeout,
                port=self.port,
            )
        except dns.exception.Timeout as exc:
            raise QueryTimeoutError(target_name, resolver, f"no response within {self.timeout:g}s") from exc
        except (dns.exception.DNSException, OSError, ValueError) as exc:
            raise TransportError(target_name, resolver, str(exc) or type(exc).__name__) from exc

        result = QueryResult(query=describe_question(request), answer=describe_answer(response))
        logger.debug(
            "DNS exchange completed",
            extra={
                "ip": resolver,
                "query": result.query,
                "records": len(response.answer),
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )
        return result
