"""
Credential testing against a router admin interface
"""

import time
import asyncio
import logging
from typing import Callable, Dict, Optional, Tuple

import aiohttp

from cancellation import run_with_deadline, DONE
from http_helper import create_router_session
from discovery.content import ContentClassifier
from .models import CredentialGuess, CredentialTestResult, SOURCE_SUPPLIED

logger = logging.getLogger(__name__)


def basic_auth_header(username: str, password: str) -> str:
    """Authorization header value for a Basic-auth credential pair"""
    encode = getattr(aiohttp, 'encode_basic_auth', None)
    if encode is not None:
        return encode(username, password)
    return aiohttp.BasicAuth(username, password).encode()


def classify_login_response(status: int, body: Optional[str], classifier: ContentClassifier) -> Tuple[bool, str]:
    """
    401/403 is a definite failure. A 200 only counts when the page shows an
    admin-interface token: many devices serve a public landing page with 200
    whatever the credentials.
    """
    if status in (401, 403):
        return False, f"HTTP {status} - credentials rejected"
    if status == 200:
        token = classifier.admin_indicator(body)
        if token:
            return True, f"Login successful - found admin interface ('{token}')"
        return False, "HTTP 200 without admin interface indicators - inconclusive"
    return False, f"HTTP {status} - credentials rejected"


class CredentialTester:
    """Performs one Basic-auth request per credential pair"""

    def __init__(
        self,
        config: Dict,
        session_factory: Callable[..., aiohttp.ClientSession] = create_router_session,
        classifier: Optional[ContentClassifier] = None
    ):
        self.config = config
        self.session_factory = session_factory
        self.classifier = classifier or ContentClassifier()
        self.request_timeout = config.get('request_timeout', 5)
        self.scheduling_slack = config.get('scheduling_slack_seconds', 0.5)
        self.user_agent = config.get('user_agent', 'RouterApp/1.0')

    async def try_credentials(
        self,
        address: str,
        username: str,
        password: str,
        timeout: Optional[float] = None,
        protocol: str = "http",
        cancel_event: Optional[asyncio.Event] = None
    ) -> CredentialTestResult:
        """Try a caller-supplied credential pair"""
        guess = CredentialGuess(username=username, password=password, rationale=SOURCE_SUPPLIED, rank=1)
        return await self.try_guess(address, guess, timeout, protocol, cancel_event)

    async def try_guess(
        self,
        address: str,
        guess: CredentialGuess,
        timeout: Optional[float] = None,
        protocol: str = "http",
        cancel_event: Optional[asyncio.Event] = None
    ) -> CredentialTestResult:
        """Try one guess; transport errors come back as a failed result"""
        timeout = timeout or self.request_timeout
        start = time.monotonic()

        state, result = await run_with_deadline(
            self._request(address, guess, timeout, protocol, start),
            timeout + self.scheduling_slack,
            cancel_event
        )
        if state == DONE:
            return result

        return CredentialTestResult(
            guess=guess,
            succeeded=False,
            evidence=f"Connection failed: {state}",
            elapsed=time.monotonic() - start
        )

    async def _request(
        self,
        address: str,
        guess: CredentialGuess,
        timeout: float,
        protocol: str,
        start: float
    ) -> CredentialTestResult:
        url = f"{protocol}://{address}"
        try:
            headers = {
                'User-Agent': self.user_agent,
                'Authorization': basic_auth_header(guess.username, guess.password)
            }
            async with self.session_factory(timeout, verify_ssl=False) as session:
                async with session.get(url, headers=headers) as response:
                    status = response.status
                    body = await response.text(errors='replace') if status == 200 else None

            succeeded, evidence = classify_login_response(status, body, self.classifier)
            return CredentialTestResult(
                guess=guess,
                succeeded=succeeded,
                evidence=evidence,
                elapsed=time.monotonic() - start,
                http_status=status
            )

        except asyncio.TimeoutError:
            evidence = "Connection failed: timeout"
        except (aiohttp.ClientError, OSError, ValueError) as e:
            # ValueError: usernames containing ':' cannot be encoded
            evidence = f"Connection failed: {type(e).__name__}: {e}"

        logger.debug(f"Credential test against {url} failed: {evidence}")
        return CredentialTestResult(
            guess=guess,
            succeeded=False,
            evidence=evidence,
            elapsed=time.monotonic() - start
        )
