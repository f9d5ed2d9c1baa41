"""
Main discovery manager: concurrent probing with deterministic selection
"""

import asyncio
import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .candidates import CandidateGenerator, COMMON_ROUTER_IPS, EXTENDED_ROUTER_IPS
from .models import (
    BulkScanResult,
    Candidate,
    DiscoveredRouter,
    DiscoveryResult,
    DiscoveryScope,
    ProbeOutcome,
    CURATED,
    EXPANDED_SWEEP,
    PROTOCOLS,
)
from .prober import EndpointProber

logger = logging.getLogger(__name__)


class RouterDiscovery:
    """Locates the router admin interface among candidate gateway addresses"""

    def __init__(
        self,
        config: Dict,
        prober: Optional[EndpointProber] = None,
        generator: Optional[CandidateGenerator] = None
    ):
        self.config = config
        self.prober = prober or EndpointProber(config)
        self.generator = generator or CandidateGenerator(
            curated=config.get('curated_ips') or COMMON_ROUTER_IPS,
            extended=config.get('extended_ips') or EXTENDED_ROUTER_IPS,
            subnets=config.get('subnets', ())
        )
        self.request_timeout = config.get('request_timeout', 3)
        self.max_concurrent = config.get('max_concurrent_probes', 32)
        self.include_extended = config.get('include_extended', False)
        self.require_router_signals = config.get('require_router_signals', False)

    # ================== FULL DISCOVERY ==================

    async def discover(
        self,
        scope: Optional[DiscoveryScope] = None,
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> DiscoveryResult:
        """
        Probe every candidate on http and https and pick the reachable one
        that comes first in curated order. router is None when nothing answered.
        """
        scope = scope or DiscoveryScope(extended=self.include_extended)
        concurrency = concurrency or self.max_concurrent
        timeout = timeout or self.request_timeout

        logger.info("[DISCOVERY] Scanning for routers...")
        start_time = time.time()
        sequence = self.generator.candidates(scope)

        passes = [sequence.by_source(CURATED)]
        if scope.extended:
            passes.append(sequence.by_source(EXPANDED_SWEEP))

        all_outcomes: List[ProbeOutcome] = []
        tested = 0
        cancelled = False
        router = None

        for pass_number, candidates in enumerate(passes, start=1):
            if pass_number > 1:
                logger.info("[DISCOVERY] Curated addresses exhausted - sweeping extended scope")

            router, outcomes, cancelled, pulled = await self._scan(candidates, concurrency, timeout, cancel_event)
            all_outcomes.extend(outcomes)
            tested += pulled

            if router or cancelled:
                break

        duration = time.time() - start_time
        if cancelled:
            logger.info(f"[DISCOVERY] Cancelled after {duration:.1f}s")
            router = None
        elif router:
            logger.info(f"[DISCOVERY] Found router at {router.address} "
                        f"(brand={router.detected_brand}, protocols={sorted(router.protocols_used)}) in {duration:.1f}s")
        else:
            logger.info(f"[DISCOVERY] No router found after {duration:.1f}s ({tested} candidates)")

        return DiscoveryResult(
            router=router,
            scope=scope,
            candidates_tested=tested,
            duration_seconds=duration,
            outcomes=tuple(all_outcomes),
            cancelled=cancelled
        )

    async def _scan(
        self,
        candidates: Iterable[Candidate],
        concurrency: int,
        timeout: float,
        cancel_event: Optional[asyncio.Event]
    ) -> Tuple[Optional[DiscoveredRouter], List[ProbeOutcome], bool, int]:
        """
        Probe one pass of candidates, pulling them lazily so that at most
        `concurrency` probes are scheduled at a time. No new candidate is pulled
        once a reachable one is known, and the pass ends when that candidate and
        every candidate ahead of it have reported on all protocols.
        """
        semaphore = asyncio.Semaphore(concurrency)
        source = iter(candidates)
        pulled: List[Candidate] = []
        results: Dict[int, Dict[str, ProbeOutcome]] = {}
        pending: Dict[asyncio.Task, Tuple[Candidate, str]] = {}
        exhausted = False

        async def probe_one(candidate: Candidate, protocol: str) -> ProbeOutcome:
            async with semaphore:
                return await self.prober.probe(candidate.address, protocol, timeout, cancel_event)

        cancel_waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
        cancelled = False
        best: Optional[Candidate] = None

        try:
            while True:
                # Candidates are scheduled whole so every pulled one reports on all protocols
                while best is None and not exhausted and len(pending) < concurrency:
                    candidate = next(source, None)
                    if candidate is None:
                        exhausted = True
                        break
                    pulled.append(candidate)
                    results[candidate.index] = {}
                    for protocol in PROTOCOLS:
                        task = asyncio.ensure_future(probe_one(candidate, protocol))
                        pending[task] = (candidate, protocol)

                if not pending:
                    break

                waiters = set(pending)
                if cancel_waiter is not None:
                    waiters.add(cancel_waiter)
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

                if cancel_waiter is not None and cancel_waiter in done:
                    cancelled = True
                    break

                for task in done:
                    candidate, protocol = pending.pop(task)
                    outcome = self._task_outcome(task, candidate, protocol)
                    results[candidate.index][protocol] = outcome
                    if self._selectable(outcome) and (best is None or candidate.index < best.index):
                        best = candidate

                if best is not None and self._settled_through(
                    [c for c in pulled if c.index <= best.index], results
                ):
                    break
        finally:
            leftovers = [t for t in pending if not t.done()]
            if cancel_waiter is not None and not cancel_waiter.done():
                leftovers.append(cancel_waiter)
            for task in leftovers:
                task.cancel()
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)

        outcomes = [o for c in pulled for o in results[c.index].values()]
        if cancelled or best is None:
            return None, outcomes, cancelled, len(pulled)

        router = DiscoveredRouter.from_outcomes(list(results[best.index].values()), source=best.source)
        return router, outcomes, False, len(pulled)

    def _task_outcome(self, task: asyncio.Task, candidate: Candidate, protocol: str) -> ProbeOutcome:
        """Unwrap a probe task; an unexpected failure counts as unreachable"""
        try:
            return task.result()
        except Exception as e:
            logger.warning(f"Probe {protocol}://{candidate.address} failed unexpectedly: {e}")
            return ProbeOutcome(
                address=candidate.address,
                protocol=protocol,
                reachable=False,
                elapsed=0.0,
                error=f"{type(e).__name__}: {e}"
            )

    def _selectable(self, outcome: ProbeOutcome) -> bool:
        if not outcome.reachable:
            return False
        if self.require_router_signals:
            return outcome.has_router_evidence
        return True

    @staticmethod
    def _settled_through(
        candidates: Sequence[Candidate],
        results: Dict[int, Dict[str, ProbeOutcome]]
    ) -> bool:
        return all(len(results[c.index]) == len(PROTOCOLS) for c in candidates)

    # ================== SINGLE ADDRESS CHECKS ==================

    async def probe_address(
        self,
        address: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> List[ProbeOutcome]:
        """Probe one address on every protocol concurrently"""
        timeout = timeout or self.request_timeout
        return list(await asyncio.gather(*[
            self.prober.probe(address, protocol, timeout, cancel_event)
            for protocol in PROTOCOLS
        ]))

    async def test_connection(
        self,
        address: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> bool:
        """True iff address answers like a router on http or https"""
        outcomes = await self.probe_address(address, timeout, cancel_event)
        reachable = any(o.reachable for o in outcomes)
        logger.info(f"[TEST] {address} {'is' if reachable else 'is not'} accessible")
        return reachable

    async def inspect_address(
        self,
        address: str,
        timeout: Optional[float] = None
    ) -> Optional[DiscoveredRouter]:
        """Detailed single address check; None when unreachable"""
        outcomes = await self.probe_address(address, timeout)
        if not any(o.reachable for o in outcomes):
            return None
        return DiscoveredRouter.from_outcomes(outcomes, source=CURATED)

    # ================== BULK SCAN ==================

    async def bulk_scan(
        self,
        addresses: Sequence[str],
        timeout: Optional[float] = None,
        concurrency: Optional[int] = None
    ) -> BulkScanResult:
        """Probe an explicit address list and report every accessible one"""
        start_time = time.time()
        timeout = timeout or self.request_timeout
        semaphore = asyncio.Semaphore(concurrency or self.max_concurrent)

        logger.info(f"[BULK] Scanning {len(addresses)} addresses...")

        async def scan_single_ip(address: str) -> Optional[DiscoveredRouter]:
            async with semaphore:
                outcomes = await self.probe_address(address, timeout)
            if any(o.reachable for o in outcomes):
                return DiscoveredRouter.from_outcomes(outcomes)
            return None

        routers = await asyncio.gather(*[scan_single_ip(a) for a in addresses], return_exceptions=True)

        result = BulkScanResult(total=len(addresses))
        for address, router in zip(addresses, routers):
            if isinstance(router, DiscoveredRouter):
                result.accessible.append(router)
            else:
                if isinstance(router, Exception):
                    logger.warning(f"Bulk scan of {address} failed: {router}")
                result.failed.append(address)

        result.duration_seconds = time.time() - start_time
        logger.info(f"[BULK] Complete: {len(result.accessible)}/{result.total} accessible "
                    f"({result.duration_seconds:.1f}s)")
        return result
