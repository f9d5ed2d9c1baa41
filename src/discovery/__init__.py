"""
Discovery module for router gateway discovery
"""

from .manager import RouterDiscovery
from .models import (
    Candidate, CertificateAnomaly, DiscoveredRouter, DiscoveryResult,
    DiscoveryScope, ProbeOutcome, BulkScanResult
)
from .prober import EndpointProber
from .candidates import CandidateGenerator
from .content import ContentClassifier

__all__ = [
    'RouterDiscovery', 'EndpointProber', 'CandidateGenerator', 'ContentClassifier',
    'Candidate', 'CertificateAnomaly', 'DiscoveredRouter', 'DiscoveryResult',
    'DiscoveryScope', 'ProbeOutcome', 'BulkScanResult'
]
