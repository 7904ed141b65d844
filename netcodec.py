"""
Address codec - IPv4 address <-> unsigned 32-bit integer, CIDR parsing
"""

import ipaddress

from errors import InvalidRange, InvalidSubnetText


def ip_to_uint32(ip) -> int:
    return int(ipaddress.IPv4Address(ip))


def uint32_to_ip(value: int) -> ipaddress.IPv4Address:
    return ipaddress.IPv4Address(value & 0xFFFFFFFF)


def _parse(text: str) -> ipaddress.IPv4Network:
    # "a.b.c.d/len" only; host bits are masked off like a router would
    if not isinstance(text, str) or "/" not in text:
        raise ValueError("expected address/prefix")
    return ipaddress.IPv4Network(text.strip(), strict=False)


def parse_range(text: str) -> ipaddress.IPv4Network:
    """Parse a parent range, raising InvalidRange"""
    try:
        return _parse(text)
    except ValueError:
        raise InvalidRange(text) from None


def parse_subnet(text: str) -> ipaddress.IPv4Network:
    """Parse a subnet, raising InvalidSubnetText"""
    try:
        return _parse(text)
    except ValueError as e:
        raise InvalidSubnetText(text, str(e)) from None


def as_network(subnet) -> ipaddress.IPv4Network:
    """Accept either a parsed network or its text form"""
    if isinstance(subnet, ipaddress.IPv4Network):
        return subnet
    return parse_subnet(subnet)
