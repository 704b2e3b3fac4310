import ipaddress

import pytest

from dnsSweep.errors import InvalidRangeError
from dnsSweep.scanner.enumerator import address_count, enumerate_addresses, parse_network


@pytest.mark.parametrize("cidr", ["10.0.0.0/24", "10.1.2.128/25", "172.16.0.0/20", "192.0.2.8/29", "198.51.100.7/31"])
def test_yields_every_address_ascending(cidr):
    addresses = list(enumerate_addresses(cidr))
    network = ipaddress.ip_network(cidr, strict=False)

    assert len(addresses) == network.num_addresses
    assert addresses[0] == network.network_address
    assert addresses[-1] == network.broadcast_address
    values = [int(a) for a in addresses]
    # strictly ascending with no gaps implies no duplicates either
    assert values == list(range(values[0], values[0] + len(values)))


def test_single_host_network():
    assert list(enumerate_addresses("203.0.113.9/32")) == [ipaddress.IPv4Address("203.0.113.9")]


def test_slash_30_includes_network_and_broadcast():
    assert [str(a) for a in enumerate_addresses("192.0.2.0/30")] == [
        "192.0.2.0",
        "192.0.2.1",
        "192.0.2.2",
        "192.0.2.3",
    ]


def test_host_bits_are_masked_off():
    addresses = list(enumerate_addresses("192.0.2.77/30"))
    assert str(addresses[0]) == "192.0.2.76"
    assert str(addresses[-1]) == "192.0.2.79"


def test_top_of_address_space_does_not_wrap():
    addresses = list(enumerate_addresses("255.255.255.252/30"))
    assert [str(a) for a in addresses][-1] == "255.255.255.255"
    assert len(addresses) == 4


def test_enumeration_is_lazy():
    addresses = enumerate_addresses("0.0.0.0/0")
    assert str(next(addresses)) == "0.0.0.0"
    assert str(next(addresses)) == "0.0.0.1"


def test_address_count():
    assert address_count("10.0.0.0/16") == 65536
    assert address_count("10.0.0.1/32") == 1


@pytest.mark.parametrize("cidr", ["", "not-a-network", "10.0.0.0/33", "300.1.1.1/24", "2001:db8::/64", "10.0.0/24x"])
def test_invalid_ranges_raise(cidr):
    with pytest.raises(InvalidRangeError):
        enumerate_addresses(cidr)


def test_invalid_range_is_a_value_error():
    with pytest.raises(ValueError):
        parse_network("10.0.0.0/99")
