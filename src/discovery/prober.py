"""
Endpoint probing: one address, one protocol, one verdict
"""

import ssl
import time
import asyncio
import logging
from typing import Callable, Dict, Optional

import aiohttp

from cancellation import run_with_deadline, DONE
from http_helper import create_router_session
from .content import ContentClassifier, AUTH_CHALLENGE
from .models import CertificateAnomaly, ProbeOutcome

logger = logging.getLogger(__name__)

# OpenSSL X509_V_ERR_* codes
_SELF_SIGNED_CODES = {18, 19}
_EXPIRED_CODES = {10}
_HOSTNAME_CODES = {62}

# Statuses whose body is worth reading for content signals
_CONTENT_STATUSES = {200, 405}


def classify_certificate_error(exc: BaseException) -> CertificateAnomaly:
    """Map a certificate verification failure to an anomaly kind"""
    cert_error = getattr(exc, 'certificate_error', None) or exc
    code = getattr(cert_error, 'verify_code', None)
    message = (getattr(cert_error, 'verify_message', None) or str(cert_error)).lower()

    if code in _SELF_SIGNED_CODES or 'self signed' in message or 'self-signed' in message:
        return CertificateAnomaly.SELF_SIGNED
    if code in _EXPIRED_CODES or 'expired' in message:
        return CertificateAnomaly.EXPIRED
    if code in _HOSTNAME_CODES or 'hostname' in message or "doesn't match" in message:
        return CertificateAnomaly.HOSTNAME_MISMATCH
    return CertificateAnomaly.UNTRUSTED


class EndpointProber:
    """Tests a single address over HTTP or HTTPS for a router admin interface"""

    def __init__(
        self,
        config: dict,
        session_factory: Callable[..., aiohttp.ClientSession] = create_router_session,
        classifier: Optional[ContentClassifier] = None
    ):
        self.config = config
        self.session_factory = session_factory
        self.classifier = classifier or ContentClassifier()
        self.request_timeout = config.get('request_timeout', 3)
        self.scheduling_slack = config.get('scheduling_slack_seconds', 0.5)
        self.max_body_chars = config.get('max_body_chars', 65536)
        self.headers: Dict[str, str] = {
            'User-Agent': config.get('user_agent', 'RouterApp/1.0'),
            'Accept': '*/*',
        }

    async def probe(
        self,
        address: str,
        protocol: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ProbeOutcome:
        """
        Probe address over protocol. Never raises for network faults and never
        outlives timeout + scheduling slack; a set cancel_event ends it as unreachable.
        """
        timeout = timeout or self.request_timeout
        start = time.monotonic()

        state, outcome = await run_with_deadline(
            self._request(address, protocol, timeout, start),
            timeout + self.scheduling_slack,
            cancel_event
        )
        if state == DONE:
            return outcome

        logger.debug(f"Probe {protocol}://{address} ended: {state}")
        return self._unreachable(address, protocol, start, state)

    async def _request(self, address: str, protocol: str, timeout: float, start: float) -> ProbeOutcome:
        url = f"{protocol}://{address}"
        try:
            async with self.session_factory(timeout, verify_ssl=True) as session:
                async with session.head(url, headers=self.headers, allow_redirects=False) as response:
                    status = response.status
                    headers = response.headers

                if status >= 500:
                    logger.debug(f"HTTP {status} for {url}")
                    return ProbeOutcome(
                        address=address,
                        protocol=protocol,
                        reachable=False,
                        elapsed=time.monotonic() - start,
                        http_status=status,
                        error=f"HTTP {status}"
                    )

                server = headers.get('Server', '') or ''
                brand = self.classifier.detect_brand(server)
                auth_required = status == 401 or 'WWW-Authenticate' in headers
                signals = set(self.classifier.signals(server))
                if auth_required:
                    signals.add(AUTH_CHALLENGE)

                # A 401 is enough evidence on its own; only read bodies that can add signal
                if brand is None and status in _CONTENT_STATUSES:
                    remaining = timeout - (time.monotonic() - start)
                    body = await self._fetch_body(session, url, remaining) if remaining > 0 else None
                    if body:
                        signals |= self.classifier.signals(body)
                        brand = self.classifier.detect_brand(body)

                return ProbeOutcome(
                    address=address,
                    protocol=protocol,
                    reachable=True,
                    elapsed=time.monotonic() - start,
                    http_status=status,
                    content_signals=frozenset(signals),
                    detected_brand=brand,
                    auth_required=auth_required
                )

        except (aiohttp.ClientConnectorCertificateError, ssl.SSLCertVerificationError) as e:
            anomaly = classify_certificate_error(e)
            logger.debug(f"Certificate anomaly on {url}: {anomaly.value}")
            return ProbeOutcome(
                address=address,
                protocol=protocol,
                reachable=anomaly.implies_router,
                elapsed=time.monotonic() - start,
                certificate_anomaly=anomaly,
                error=None if anomaly.implies_router else f"certificate {anomaly.value}"
            )
        except asyncio.TimeoutError:
            logger.debug(f"{url} timed out")
            return self._unreachable(address, protocol, start, "timeout")
        except aiohttp.ClientConnectorError as e:
            logger.debug(f"{url} connection failed: {e.os_error}")
            return self._unreachable(address, protocol, start, f"connection failed: {e.os_error}")
        except (aiohttp.ClientError, OSError) as e:
            logger.debug(f"{url} error: {e}")
            return self._unreachable(address, protocol, start, f"{type(e).__name__}: {e}")

    async def _fetch_body(self, session: aiohttp.ClientSession, url: str, timeout: float) -> Optional[str]:
        """GET the page for content inspection; errors only cost the signals"""
        try:
            async with session.get(
                url,
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                text = await response.text(errors='replace')
                return text[:self.max_body_chars]
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            logger.debug(f"Content fetch failed for {url}: {e}")
            return None

    @staticmethod
    def _unreachable(address: str, protocol: str, start: float, error: str) -> ProbeOutcome:
        return ProbeOutcome(
            address=address,
            protocol=protocol,
            reachable=False,
            elapsed=time.monotonic() - start,
            error=error
        )
