"""
Discovery data structures and models
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

CURATED = "curated"
EXPANDED_SWEEP = "expanded-sweep"

HTTP = "http"
HTTPS = "https"
PROTOCOLS = (HTTP, HTTPS)


class CertificateAnomaly(str, Enum):
    """Certificate validation failure observed on an HTTPS probe"""
    SELF_SIGNED = "self-signed"
    EXPIRED = "expired"
    HOSTNAME_MISMATCH = "hostname-mismatch"
    UNTRUSTED = "untrusted"

    @property
    def implies_router(self) -> bool:
        # Consumer routers ship self-signed certs and rarely renew them
        return self in (CertificateAnomaly.SELF_SIGNED, CertificateAnomaly.EXPIRED)


@dataclass(frozen=True)
class Candidate:
    """An address considered during discovery, not yet confirmed reachable"""
    address: str
    source: str  # CURATED or EXPANDED_SWEEP
    index: int


@dataclass(frozen=True)
class DiscoveryScope:
    """What the candidate generator should yield"""
    extended: bool = False
    subnets: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of testing one address on one protocol"""
    address: str
    protocol: str
    reachable: bool
    elapsed: float
    http_status: Optional[int] = None
    content_signals: FrozenSet[str] = frozenset()
    certificate_anomaly: Optional[CertificateAnomaly] = None
    detected_brand: Optional[str] = None
    auth_required: bool = False
    error: Optional[str] = None

    @property
    def has_router_evidence(self) -> bool:
        """True when the outcome carries more than a bare sub-500 status"""
        return bool(
            self.content_signals
            or self.detected_brand
            or self.auth_required
            or self.certificate_anomaly is not None
        )


@dataclass(frozen=True)
class DiscoveredRouter:
    """Represents a confirmed router administrative endpoint"""
    address: str
    is_accessible: bool
    auth_required: bool
    protocols_used: FrozenSet[str]
    detected_brand: Optional[str] = None
    response_time: Optional[float] = None
    source: str = CURATED

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ProbeOutcome], source: str = CURATED) -> "DiscoveredRouter":
        """Merge the reachable outcomes of one address into a router"""
        reachable = [o for o in outcomes if o.reachable]
        if not reachable:
            raise ValueError("DiscoveredRouter requires at least one reachable probe outcome")

        addresses = {o.address for o in reachable}
        if len(addresses) != 1:
            raise ValueError(f"Probe outcomes span several addresses: {sorted(addresses)}")

        # http is listed first in PROTOCOLS, so its brand wins when both report one
        ordered = sorted(reachable, key=lambda o: PROTOCOLS.index(o.protocol) if o.protocol in PROTOCOLS else len(PROTOCOLS))
        brand = next((o.detected_brand for o in ordered if o.detected_brand), None)

        return cls(
            address=ordered[0].address,
            is_accessible=True,
            auth_required=any(o.auth_required for o in ordered),
            protocols_used=frozenset(o.protocol for o in ordered),
            detected_brand=brand,
            response_time=min(o.elapsed for o in ordered),
            source=source
        )

    def to_dict(self) -> Dict:
        return {
            "ipAddress": self.address,
            "isAccessible": self.is_accessible,
            "authRequired": self.auth_required,
            "protocolsUsed": sorted(self.protocols_used),
            "detectedBrand": self.detected_brand,
            "responseTime": round(self.response_time, 3) if self.response_time is not None else None,
            "source": self.source
        }


@dataclass(frozen=True)
class DiscoveryResult:
    """Results from a discovery run; router is None when nothing answered"""
    router: Optional[DiscoveredRouter]
    scope: DiscoveryScope
    candidates_tested: int
    duration_seconds: float
    outcomes: Tuple[ProbeOutcome, ...] = ()
    cancelled: bool = False

    @property
    def found(self) -> bool:
        return self.router is not None


@dataclass
class BulkScanResult:
    """Results from scanning an explicit address list"""
    total: int
    accessible: List[DiscoveredRouter] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
