"""
Smart login: ranked credential suggestions tried one at a time
"""

import time
import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

import aiohttp

from cancellation import run_with_deadline, DONE
from errors import LandingPageUnavailable
from http_helper import create_router_session
from discovery.content import ContentClassifier
from .models import (
    CredentialAnalysis,
    CredentialTestResult,
    SmartLoginResult,
    SOURCE_COLLABORATOR,
    SOURCE_FALLBACK,
)
from .suggestions import FALLBACK_GUESSES, MalformedSuggestions, parse_suggestions
from .tester import CredentialTester

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class SmartLogin:
    """
    Finds working credentials for a reachable router.

    Guesses are tried strictly in rank order and never in parallel: each one
    is a live login attempt and consumer routers lock out after repeated
    failures. Nothing is tried after the first success.
    """

    def __init__(
        self,
        config: Dict,
        tester: CredentialTester,
        suggester=None,
        session_factory: Callable[..., aiohttp.ClientSession] = create_router_session,
        classifier: Optional[ContentClassifier] = None
    ):
        self.config = config
        self.tester = tester
        self.suggester = suggester
        self.session_factory = session_factory
        self.classifier = classifier or ContentClassifier()
        self.landing_page_timeout = config.get('landing_page_timeout', 8)
        self.max_guesses = config.get('max_guesses', 5)

    async def fetch_landing_page(
        self,
        address: str,
        protocol: str = "http",
        cancel_event: Optional[asyncio.Event] = None
    ) -> Tuple[str, Dict[str, str], int]:
        """GET the router landing page; raises LandingPageUnavailable on any transport failure"""
        url = f"{protocol}://{address}"

        async def fetch():
            async with self.session_factory(self.landing_page_timeout, verify_ssl=False) as session:
                async with session.get(url, headers={'User-Agent': BROWSER_USER_AGENT}) as response:
                    html = await response.text(errors='replace')
                    return html, dict(response.headers), response.status

        try:
            state, page = await run_with_deadline(fetch(), self.landing_page_timeout + 1, cancel_event)
        except asyncio.TimeoutError:
            raise LandingPageUnavailable(address, "timeout")
        except (aiohttp.ClientError, OSError) as e:
            raise LandingPageUnavailable(address, f"{type(e).__name__}: {e}")

        if state != DONE:
            raise LandingPageUnavailable(address, state)
        return page

    async def analyze(
        self,
        address: str,
        protocol: str = "http",
        cancel_event: Optional[asyncio.Event] = None
    ) -> CredentialAnalysis:
        """Fetch the landing page and turn it into ranked guesses"""
        html, headers, status = await self.fetch_landing_page(address, protocol, cancel_event)
        logger.info(f"[LOGIN] Landing page at {address}: HTTP {status}, {len(html)} chars")

        local_brand = (
            self.classifier.detect_brand(headers.get('Server') or headers.get('server'))
            or self.classifier.detect_brand(html)
        )

        ai_cost = None
        if self.suggester is None:
            parsed = MalformedSuggestions(reason="no suggestion collaborator configured")
        else:
            ai_cost = getattr(self.suggester, 'cost_per_request', None)
            try:
                raw = await self.suggester.suggest_credentials(html, headers)
                parsed = parse_suggestions(raw, self.max_guesses)
            except Exception as e:
                logger.warning(f"[LOGIN] Suggestion collaborator failed: {e}")
                parsed = MalformedSuggestions(reason=f"collaborator error: {e}")

        if isinstance(parsed, MalformedSuggestions):
            logger.info(f"[LOGIN] Using fallback credentials ({parsed.reason})")
            return CredentialAnalysis(
                address=address,
                guesses=FALLBACK_GUESSES,
                suggestion_source=SOURCE_FALLBACK,
                brand=local_brand,
                malformed_reason=parsed.reason,
                ai_cost=ai_cost
            )

        logger.info(f"[LOGIN] Collaborator suggested {len(parsed.guesses)} credentials "
                    f"(brand={parsed.brand}, confidence={parsed.confidence})")
        return CredentialAnalysis(
            address=address,
            guesses=parsed.guesses,
            suggestion_source=SOURCE_COLLABORATOR,
            brand=parsed.brand or local_brand,
            confidence=parsed.confidence,
            ai_cost=ai_cost
        )

    async def smart_login(
        self,
        address: str,
        protocol: str = "http",
        cancel_event: Optional[asyncio.Event] = None
    ) -> SmartLoginResult:
        """
        Analyze address and try each guess in rank order until one works.
        Running out of guesses is a normal, unsuccessful result.
        """
        start_time = time.time()
        analysis = await self.analyze(address, protocol, cancel_event)

        attempts: List[CredentialTestResult] = []
        working = None
        cancelled = False

        logger.info(f"[LOGIN] Testing {len(analysis.guesses)} credentials against {address}...")
        for guess in sorted(analysis.guesses, key=lambda g: g.rank):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            logger.info(f"[LOGIN] Trying #{guess.rank}: {guess.username}:{guess.masked_password} - {guess.rationale}")
            result = await self.tester.try_guess(address, guess, protocol=protocol, cancel_event=cancel_event)
            attempts.append(result)

            if result.succeeded:
                working = guess
                logger.info(f"[LOGIN] Success with guess #{guess.rank} for {address}")
                break
            logger.info(f"[LOGIN] Failed: {result.evidence}")

        if working is None and not cancelled:
            logger.info(f"[LOGIN] No working credentials for {address} after {len(attempts)} attempts")

        return SmartLoginResult(
            address=address,
            guesses=analysis.guesses,
            attempts=tuple(attempts),
            suggestion_source=analysis.suggestion_source,
            duration_seconds=time.time() - start_time,
            brand=analysis.brand,
            working_guess=working,
            ai_cost=analysis.ai_cost,
            cancelled=cancelled
        )
