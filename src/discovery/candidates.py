"""
Candidate address generation for router discovery
"""

import re
import ipaddress
import logging
from typing import Callable, Iterable, Iterator, Optional, Set, Tuple

from .models import Candidate, DiscoveryScope, CURATED, EXPANDED_SWEEP

logger = logging.getLogger(__name__)

# Common router gateway addresses ordered by popularity
COMMON_ROUTER_IPS: Tuple[str, ...] = (
    "192.168.1.1",    # Linksys, Netgear, D-Link
    "192.168.0.1",    # D-Link, Netgear, many ISPs
    "10.0.0.1",       # Apple AirPort, Xfinity
    "192.168.2.1",    # Some Linksys and Belkin models
    "192.168.1.254",  # ISP gateways using .254
    "192.168.0.254",
    "192.168.10.1",
    "192.168.100.1",  # Cable modems
    "172.16.1.1",
    "192.168.3.1",
    "192.168.11.1",   # Buffalo
    "10.0.1.1",       # Apple variations
    "10.1.1.1",
    "192.168.8.1",    # Huawei mobile hotspots
    "192.168.4.1",    # TP-Link access points
)

# Less common defaults tried only in extended scope
EXTENDED_ROUTER_IPS: Tuple[str, ...] = (
    "192.168.1.2", "192.168.1.10", "192.168.1.100",
    "192.168.0.2", "192.168.0.10", "192.168.0.100",
    "10.0.0.2", "10.0.0.10", "10.0.0.100",
    "172.16.0.1", "172.16.0.10",
    "192.168.5.1", "192.168.6.1", "192.168.7.1",
    "192.168.9.1", "192.168.20.1", "192.168.50.1",
)

_LIKELY_ROUTER_PATTERNS = (
    re.compile(r"^192\.168\.[0-9]{1,3}\.1$"),
    re.compile(r"^192\.168\.[0-9]{1,3}\.254$"),
    re.compile(r"^10\.0\.[0-9]{1,3}\.1$"),
    re.compile(r"^172\.16\.[0-9]{1,3}\.1$"),
)


def is_likely_router_ip(address: str) -> bool:
    """Check if an address follows a common gateway convention"""
    return any(pattern.match(address) for pattern in _LIKELY_ROUTER_PATTERNS)


def sweep(ip_range: str) -> Iterator[str]:
    """
    Yield the host addresses of a subnet.
    Accepts 'a.b.c.d-w.x.y.z' ranges, CIDR notation or a single address.
    """
    if '-' in ip_range:
        start_ip, end_ip = ip_range.split('-', 1)
        start = ipaddress.IPv4Address(start_ip.strip())
        end = ipaddress.IPv4Address(end_ip.strip())
        current = start
        while current <= end:
            yield str(current)
            current += 1
    else:
        network = ipaddress.IPv4Network(ip_range.strip(), strict=False)
        if network.num_addresses == 1:
            yield str(network.network_address)
        else:
            for ip in network.hosts():
                yield str(ip)


class CandidateSequence:
    """Lazy, finite candidate sequence; every iteration starts over"""

    def __init__(self, factory: Callable[[], Iterator[Candidate]]):
        self._factory = factory

    def __iter__(self) -> Iterator[Candidate]:
        return self._factory()

    def by_source(self, source: str) -> "CandidateSequence":
        return CandidateSequence(lambda: (c for c in self._factory() if c.source == source))


class CandidateGenerator:
    """Produces ordered candidate addresses from immutable address tables"""

    def __init__(
        self,
        curated: Iterable[str] = COMMON_ROUTER_IPS,
        extended: Iterable[str] = EXTENDED_ROUTER_IPS,
        subnets: Iterable[str] = ()
    ):
        self.curated = tuple(curated)
        self.extended = tuple(extended)
        self.subnets = tuple(subnets)

    def candidates(self, scope: Optional[DiscoveryScope] = None) -> CandidateSequence:
        """Curated addresses first; extended scope appends alternatives and subnet sweeps"""
        scope = scope or DiscoveryScope()
        return CandidateSequence(lambda: self._generate(scope))

    def _generate(self, scope: DiscoveryScope) -> Iterator[Candidate]:
        seen: Set[str] = set()
        index = 0

        for address in self.curated:
            if address in seen:
                continue
            seen.add(address)
            yield Candidate(address=address, source=CURATED, index=index)
            index += 1

        if not scope.extended:
            return

        for address in self._sweep_addresses(scope):
            if address in seen:
                continue
            seen.add(address)
            yield Candidate(address=address, source=EXPANDED_SWEEP, index=index)
            index += 1

    def _sweep_addresses(self, scope: DiscoveryScope) -> Iterator[str]:
        yield from self.extended
        for ip_range in scope.subnets or self.subnets:
            try:
                yield from sweep(ip_range)
            except ValueError:
                logger.warning(f"Invalid IP range format: {ip_range}")
