"""Single endpoint probes: reachability, evidence and deadlines."""

import ssl
import time
import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from discovery.content import AUTH_CHALLENGE
from discovery.models import CertificateAnomaly
from discovery.prober import EndpointProber, classify_certificate_error


def make_prober(sessions, **config):
    config.setdefault("request_timeout", 1)
    config.setdefault("scheduling_slack_seconds", 0.1)
    return EndpointProber(config, session_factory=sessions)


def certificate_error(message: str) -> aiohttp.ClientConnectorCertificateError:
    return aiohttp.ClientConnectorCertificateError(
        MagicMock(), ssl.SSLCertVerificationError(1, f"certificate verify failed: {message}")
    )


@pytest.mark.asyncio
async def test_head_200_reads_body_for_brand(sessions):
    sessions.add("http://198.51.100.9", method="HEAD", status=200)
    sessions.add("http://198.51.100.9", method="GET", status=200, body="<title>Linksys Smart Wi-Fi</title>")

    outcome = await make_prober(sessions).probe("198.51.100.9", "http")

    assert outcome.reachable
    assert outcome.http_status == 200
    assert outcome.detected_brand == "Linksys"
    assert "brand:linksys" in outcome.content_signals
    assert not outcome.auth_required


@pytest.mark.asyncio
async def test_brand_from_server_header_skips_body(sessions):
    sessions.add("http://192.168.1.1", status=200, headers={"Server": "NETGEAR httpd"})

    outcome = await make_prober(sessions).probe("192.168.1.1", "http")

    assert outcome.detected_brand == "Netgear"
    assert sessions.calls_for("GET") == []


@pytest.mark.asyncio
async def test_401_challenge_is_reachable_and_auth_required(sessions):
    sessions.add("http://192.168.0.1", status=401, headers={"WWW-Authenticate": 'Basic realm="TP-LINK"'})

    outcome = await make_prober(sessions).probe("192.168.0.1", "http")

    assert outcome.reachable
    assert outcome.auth_required
    assert AUTH_CHALLENGE in outcome.content_signals
    assert outcome.has_router_evidence


@pytest.mark.asyncio
async def test_bare_redirect_is_reachable_without_evidence(sessions):
    sessions.add("http://10.0.0.1", status=302, headers={"Location": "/login"})

    outcome = await make_prober(sessions).probe("10.0.0.1", "http")

    assert outcome.reachable
    assert not outcome.has_router_evidence


@pytest.mark.asyncio
async def test_server_error_is_unreachable(sessions):
    sessions.add("http://192.168.1.1", status=503)

    outcome = await make_prober(sessions).probe("192.168.1.1", "http")

    assert not outcome.reachable
    assert outcome.http_status == 503
    assert outcome.error == "HTTP 503"


@pytest.mark.asyncio
async def test_self_signed_certificate_is_reachable(sessions):
    sessions.add("https://192.168.1.1", exc=certificate_error("self-signed certificate"))

    outcome = await make_prober(sessions).probe("192.168.1.1", "https")

    assert outcome.reachable
    assert outcome.certificate_anomaly is CertificateAnomaly.SELF_SIGNED
    assert outcome.certificate_anomaly.value == "self-signed"


@pytest.mark.asyncio
async def test_hostname_mismatch_is_not_router_evidence(sessions):
    sessions.add("https://192.168.1.1", exc=certificate_error("Hostname mismatch, certificate is not valid for '192.168.1.1'"))

    outcome = await make_prober(sessions).probe("192.168.1.1", "https")

    assert not outcome.reachable
    assert outcome.certificate_anomaly is CertificateAnomaly.HOSTNAME_MISMATCH


@pytest.mark.asyncio
async def test_connection_refused_is_unreachable(sessions):
    outcome = await make_prober(sessions).probe("203.0.113.5", "http")

    assert not outcome.reachable
    assert outcome.error


@pytest.mark.asyncio
async def test_slow_endpoint_is_cut_off_at_deadline(sessions):
    sessions.add("http://192.168.1.1", status=200, delay=5)
    prober = make_prober(sessions, request_timeout=0.2, scheduling_slack_seconds=0.1)

    start = time.monotonic()
    outcome = await prober.probe("192.168.1.1", "http")

    assert time.monotonic() - start < 1.0
    assert not outcome.reachable
    assert outcome.error == "timeout"


@pytest.mark.asyncio
async def test_cancel_event_ends_probe_as_unreachable(sessions):
    sessions.add("http://192.168.1.1", status=200, delay=5)
    cancel_event = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel_event.set)

    start = time.monotonic()
    outcome = await make_prober(sessions, request_timeout=3).probe("192.168.1.1", "http", cancel_event=cancel_event)

    assert time.monotonic() - start < 1.0
    assert not outcome.reachable
    assert outcome.error == "cancelled"


@pytest.mark.asyncio
async def test_body_fetch_failure_keeps_head_verdict(sessions):
    sessions.add("http://192.168.1.1", method="HEAD", status=200)
    sessions.add("http://192.168.1.1", method="GET", exc=aiohttp.ServerDisconnectedError())

    outcome = await make_prober(sessions).probe("192.168.1.1", "http")

    assert outcome.reachable
    assert outcome.detected_brand is None


def test_classify_certificate_error_by_message():
    assert classify_certificate_error(certificate_error("certificate has expired")) is CertificateAnomaly.EXPIRED
    assert classify_certificate_error(certificate_error("self signed certificate in certificate chain")) is CertificateAnomaly.SELF_SIGNED
    assert classify_certificate_error(certificate_error("unable to get local issuer certificate")) is CertificateAnomaly.UNTRUSTED
