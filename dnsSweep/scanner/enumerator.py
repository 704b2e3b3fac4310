"""IPv4 CIDR enumeration."""
from __future__ import annotations

import ipaddress
from typing import Iterator

from dnsSweep.errors import InvalidRangeError
from dnsSweep.logging_config import get_logger

logger = get_logger("scanner")


def parse_network(cidr: str) -> ipaddress.IPv4Network:
    """Parse an IPv4 CIDR string, masking off any host bits.

    Raises InvalidRangeError for IPv6 input or anything that does not parse.
    """
    if not isinstance(cidr, str) or not cidr.strip():
        raise InvalidRangeError(str(cidr), "empty network")
    try:
        return ipaddress.IPv4Network(cidr.strip(), strict=False)
    except (ValueError, ipaddress.AddressValueError, ipaddress.NetmaskValueError) as exc:
        logger.error(
            f"Invalid network range {cidr!r}: {exc}",
            extra={"network": cidr, "outcome": "error", "error_type": type(exc).__name__},
        )
        raise InvalidRangeError(cidr, str(exc)) from exc


def address_count(cidr: str) -> int:
    return parse_network(cidr).num_addresses


def enumerate_addresses(cidr: str) -> Iterator[ipaddress.IPv4Address]:
    """Yield every address of the block in ascending order.

    Network and broadcast addresses are included, so a /32 yields exactly
    one address and a /30 yields four. The range is validated eagerly; only
    the iteration itself is lazy.
    """
    network = parse_network(cidr)
    return _walk(network)


def _walk(network: ipaddress.IPv4Network) -> Iterator[ipaddress.IPv4Address]:
    # Integer walk bounded by the last address, never past 255.255.255.255
    first = int(network.network_address)
    last = int(network.broadcast_address)
    for value in range(first, last + 1):
        yield ipaddress.IPv4Address(value)
