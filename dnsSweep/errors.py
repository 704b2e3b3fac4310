"""Exception hierarchy shared by the scanner and the result sinks."""
from __future__ import annotations


class ScanError(Exception):
    """Base class for every error raised by dnsSweep."""


class InvalidRangeError(ScanError, ValueError):
    """The target network is not a valid IPv4 CIDR block."""

    def __init__(self, network: str, reason: str = "") -> None:
        self.network = network
        self.reason = reason
        message = f"Invalid IPv4 network range: {network!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class QueryError(ScanError):
    """A single DNS exchange failed."""

    def __init__(self, target_name: str, resolver: str, reason: str = "") -> None:
        self.target_name = target_name
        self.resolver = resolver
        self.reason = reason
        message = f"{self.describe()} for {target_name} via {resolver}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def describe(self) -> str:
        return "query failed"


class QueryTimeoutError(QueryError):
    """No response arrived before the configured timeout."""

    def describe(self) -> str:
        return "query timed out"


class TransportError(QueryError):
    """Lower-level network or protocol failure (refused, malformed reply, ...)."""

    def describe(self) -> str:
        return "transport error"


class PersistenceError(ScanError):
    """A record could not be written to the result sink."""
