"""Lookups of the host's addresses against subnets."""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Iterator, Optional, Union

import psutil

logger = logging.getLogger(__name__)

_IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
_IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
_IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_BROADCAST = ipaddress.IPv4Address("255.255.255.255")


def _normalise(ip: _IPAddress) -> _IPAddress:
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _parse_ip(text: str) -> Optional[_IPAddress]:
    if "%" in text or "/" in text:
        return None
    try:
        return _normalise(ipaddress.ip_address(text))
    except ValueError:
        return None


def _parse_cidr(text: str) -> _IPNetwork:
    address, sep, prefix = text.partition("/")
    if not sep or not prefix.isdigit() or "%" in address:
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError as err:
        raise ValueError(f"invalid CIDR address: {text}") from err


def _is_global_unicast(ip: _IPAddress) -> bool:
    return not (
        ip.is_unspecified
        or ip.is_loopback
        or ip.is_multicast
        or ip.is_link_local
        or ip == _BROADCAST
    )


def _prefix_length(netmask: Optional[str], max_length: int) -> int:
    if not netmask:
        return max_length
    try:
        mask = ipaddress.ip_address(netmask.split("/")[0])
    except ValueError:
        return max_length
    return bin(int(mask)).count("1")


def _host_interfaces() -> Iterator[_IPInterface]:
    """Yield every IP address configured on the host, with its prefix."""
    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                ip = ipaddress.ip_address(addr.address.split("%")[0])
                prefix = _prefix_length(addr.netmask, ip.max_prefixlen)
                yield ipaddress.ip_interface(f"{ip}/{prefix}")
            except ValueError as err:
                logger.warning("error reading address on interface %s: %s", name, err)


def _global_unicast_interfaces() -> Iterator[_IPInterface]:
    return (iface for iface in _host_interfaces() if _is_global_unicast(iface.ip))


def find_ip_on_subnet(subnet: str) -> str:
    """Return the first global unicast host address that lies on ``subnet``."""
    network = _parse_cidr(subnet)
    for iface in _global_unicast_interfaces():
        if iface.ip in network:
            return str(iface.ip)
    raise LookupError(f"no IP belongs to provided subnet {subnet}")


def find_network_address(address: str) -> str:
    """Return the host's address/prefix entry that carries ``address``."""
    target = _parse_ip(address)
    if target is None:
        raise ValueError(f"provided address {address} is invalid")

    candidates = []
    for iface in _global_unicast_interfaces():
        candidates.append(str(iface))
        if _normalise(iface.ip) == target:
            return str(iface)

    raise LookupError(
        f"provided mon-ip ({target}) does not belong to any suitable network: "
        f"[{' '.join(candidates)}]"
    )


def is_ip_on_subnet(address: str, subnet: str) -> bool:
    """Tell whether ``address`` lies on ``subnet``; invalid input gives False."""
    ip = _parse_ip(address)
    if ip is None:
        return False
    try:
        network = _parse_cidr(subnet)
    except ValueError:
        return False
    return ip in network