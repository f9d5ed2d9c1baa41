# HTTP Helper for Router Connections
# SSL-aware session configuration for local router probes and collaborator services

import aiohttp
import ssl
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

def create_router_session(timeout_seconds: float = 5, verify_ssl: bool = True) -> aiohttp.ClientSession:
    """
    Create aiohttp session for a single local router request sequence.
    verify_ssl=True keeps certificate validation on so probes can observe
    self-signed or expired certificates; credential and landing page requests
    pass verify_ssl=False because the router is already known to be there.
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # Max 2 connections per router IP
        ssl=None if verify_ssl else False,
        force_close=True            # No keep-alive between probes
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )

def create_service_session(
    timeout_seconds: float = 30,
    ssl_enabled: bool = True,
    ssl_verify: bool = True,
    ca_cert_path: str = None
) -> aiohttp.ClientSession:
    """
    Create aiohttp session for collaborator services (credential suggestions,
    automation actions). Supports both HTTP and HTTPS based on configuration
    """

    if ssl_enabled:
        logger.debug(f"Creating SSL-enabled service session (verify={ssl_verify})")

        ssl_context = ssl.create_default_context()

        if not ssl_verify:
            # Development services with self-signed certs
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
            logger.warning("SSL verification disabled for service session")
        elif ca_cert_path:
            ca_path = Path(ca_cert_path)
            if ca_path.exists():
                ssl_context.load_verify_locations(ca_path)
                logger.info(f"Loaded custom CA certificate: {ca_path}")
            else:
                logger.warning(f"CA certificate not found: {ca_path}")

        connector = aiohttp.TCPConnector(
            ssl=ssl_context,
            limit=20,                   # Total connection pool limit
            limit_per_host=5,           # Max connections per host
            force_close=False           # Keep connections alive for efficiency
        )
    else:
        logger.debug("Creating HTTP-only service session")
        connector = aiohttp.TCPConnector(
            ssl=False,
            limit=20,
            limit_per_host=5,
            force_close=False
        )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
