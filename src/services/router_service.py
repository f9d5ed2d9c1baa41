"""
Router service - the operations behind the management API.

Every operation returns a ServiceResponse carrying the HTTP status and the
envelope {success, data, message, meta}; expected empty outcomes (no router
found, no working credentials) are normal responses, not exceptions.
"""

import time
import asyncio
import logging
import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from actions import RemoteActionExecutor, REBOOT, SPEED_TEST, DEVICES
from credentials import CredentialTester, SmartLogin, create_suggestion_client
from database.models import RouterRecord
from discovery import RouterDiscovery, DiscoveryScope, EndpointProber
from discovery.candidates import is_likely_router_ip
from errors import LandingPageUnavailable

logger = logging.getLogger(__name__)

NO_ROUTER_MESSAGE = "Please connect a router first"


@dataclass
class ServiceResponse:
    status_code: int
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def envelope(self) -> Dict[str, Any]:
        body = {"success": self.success, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        if self.meta:
            body["meta"] = self.meta
        return body


def _meta(start_time: float, ai_cost: Optional[float] = None, **extra) -> Dict[str, Any]:
    meta = {"duration": int((time.time() - start_time) * 1000)}
    if ai_cost is not None:
        meta["aiCost"] = ai_cost
    meta.update(extra)
    return meta


def is_valid_address(address: Optional[str]) -> bool:
    """IPv4 literal check; IPv6 and hostnames are not probed"""
    if not address:
        return False
    try:
        return isinstance(ipaddress.ip_address(address), ipaddress.IPv4Address)
    except ValueError:
        return False


class RouterService:
    """Coordinates discovery, smart login, persistence and remote actions"""

    def __init__(
        self,
        config: Dict,
        db,
        discovery: RouterDiscovery,
        tester: CredentialTester,
        smart_login: SmartLogin,
        actions: RemoteActionExecutor
    ):
        self.config = config
        self.db = db
        self.discovery = discovery
        self.tester = tester
        self.smart_login_service = smart_login
        self.actions = actions
        self.discovery_timeout = config.get('network', {}).get('discovery_timeout', 10)

    # ================== DISCOVERY ==================

    async def discover_router(self, extended: Optional[bool] = None) -> ServiceResponse:
        """Find the router admin interface on the local network"""
        start_time = time.time()
        scope = None
        if extended is not None:
            scope = DiscoveryScope(extended=extended)

        # Overall deadline: the cancel event fires if the whole run takes too long
        cancel_event = asyncio.Event()
        deadline = asyncio.get_running_loop().call_later(self.discovery_timeout, cancel_event.set)
        try:
            result = await self.discovery.discover(scope=scope, cancel_event=cancel_event)
        except Exception as e:
            logger.error(f"Router discovery error: {e}")
            return ServiceResponse(500, False, "Router discovery failed", meta=_meta(start_time))
        finally:
            deadline.cancel()

        if not result.found:
            message = "Make sure you are connected to your home WiFi network"
            if result.cancelled:
                message = f"Router discovery timed out after {self.discovery_timeout}s. {message}"
            return ServiceResponse(
                404, False, message,
                data={"candidatesTested": result.candidates_tested},
                meta=_meta(start_time)
            )

        router = result.router
        return ServiceResponse(
            200, True, f"Router found at {router.address}",
            data={"router": router.to_dict(), "candidatesTested": result.candidates_tested},
            meta=_meta(start_time)
        )

    async def test_ip(self, address: str) -> ServiceResponse:
        """Check whether one address answers like a router"""
        start_time = time.time()
        if not is_valid_address(address):
            return ServiceResponse(400, False, f"Invalid IP address: {address}")

        logger.info(f"[TEST] Manually testing router at {address}...")
        try:
            accessible = await self.discovery.test_connection(address)
        except Exception as e:
            logger.error(f"Test specific IP error: {e}")
            return ServiceResponse(500, False, "Failed to test router IP", data={"details": str(e)})

        return ServiceResponse(
            200, True,
            f"Router at {address} is accessible" if accessible else f"Router at {address} is not accessible",
            data={"ip": address, "isAccessible": accessible, "likelyGateway": is_likely_router_ip(address), "tested": True},
            meta=_meta(start_time)
        )

    # ================== CREDENTIALS ==================

    async def smart_connect(self, user_id: Optional[str], address: Optional[str]) -> ServiceResponse:
        """Run smart login and persist the working credentials for the user"""
        start_time = time.time()
        if not address:
            return ServiceResponse(400, False, "Router IP address is required")
        if not is_valid_address(address):
            return ServiceResponse(400, False, f"Invalid IP address: {address}")

        logger.info(f"[LOGIN] Starting smart analysis for router at {address}")
        try:
            result = await self.smart_login_service.smart_login(address)
        except LandingPageUnavailable as e:
            logger.warning(f"[LOGIN] {e}")
            return ServiceResponse(
                502, False, str(e),
                data={"ipAddress": address, "evidence": e.evidence},
                meta=_meta(start_time, analysisType="smart_detection")
            )
        except Exception as e:
            logger.error(f"Smart connect error: {e}")
            return ServiceResponse(500, False, "Smart connection failed", data={"details": str(e)})

        data = result.to_dict()
        data["saved"] = False
        if result.succeeded and user_id:
            creds = result.working_credentials
            data["saved"] = await self.db.upsert_router(RouterRecord(
                user_id=user_id,
                ip_address=address,
                username=creds["username"],
                password=creds["password"],
                brand=result.brand
            ))
            if not data["saved"]:
                logger.warning("[LOGIN] Could not save to database, but login was successful")

        if result.succeeded:
            message = f"Logged in to {result.brand or 'router'} at {address} after {result.tried_count} attempt(s)"
        elif result.cancelled:
            message = "Smart login cancelled"
        else:
            message = f"No working credentials found after {result.tried_count} attempts"

        return ServiceResponse(
            200, result.succeeded, message,
            data=data,
            meta=_meta(start_time, result.ai_cost, analysisType="smart_detection")
        )

    async def analyze(self, address: Optional[str]) -> ServiceResponse:
        """Suggest credentials for a router without trying them"""
        start_time = time.time()
        if not address:
            return ServiceResponse(400, False, "Router IP address is required")
        if not is_valid_address(address):
            return ServiceResponse(400, False, f"Invalid IP address: {address}")

        try:
            analysis = await self.smart_login_service.analyze(address)
        except LandingPageUnavailable as e:
            logger.warning(f"[LOGIN] {e}")
            return ServiceResponse(
                502, False, str(e),
                data={"ipAddress": address, "evidence": e.evidence},
                meta=_meta(start_time, analysisType="interface_analysis_only")
            )
        except Exception as e:
            logger.error(f"Router analysis error: {e}")
            return ServiceResponse(500, False, "Router analysis failed", data={"details": str(e)})

        return ServiceResponse(
            200, True,
            f"Suggested {len(analysis.guesses)} credentials ({analysis.suggestion_source})",
            data=analysis.to_dict(),
            meta=_meta(start_time, analysis.ai_cost, analysisType="interface_analysis_only")
        )

    async def test_credentials(self, address: Optional[str], username: str = "admin", password: str = "admin") -> ServiceResponse:
        """Try one supplied credential pair"""
        start_time = time.time()
        if not address:
            return ServiceResponse(400, False, "Router IP address is required")
        if not is_valid_address(address):
            return ServiceResponse(400, False, f"Invalid IP address: {address}")

        logger.info(f"[TEST] Testing credentials for {address} with username: {username}")
        result = await self.tester.try_credentials(address, username, password)
        return ServiceResponse(
            200, result.succeeded, result.evidence,
            data={
                "ipAddress": address,
                "username": username,
                "succeeded": result.succeeded,
                "httpStatus": result.http_status,
                "evidence": result.evidence
            },
            meta=_meta(start_time)
        )

    # ================== SAVED ROUTER ==================

    async def connect_router(
        self,
        user_id: Optional[str],
        address: Optional[str],
        username: str = "admin",
        password: str = "admin"
    ) -> ServiceResponse:
        """Verify the address answers and save it for the user"""
        start_time = time.time()
        if not user_id:
            return ServiceResponse(401, False, "User identity required")
        if not address:
            return ServiceResponse(400, False, "Router IP address is required")
        if not is_valid_address(address):
            return ServiceResponse(400, False, f"Invalid IP address: {address}")

        router = await self.discovery.inspect_address(address)
        if router is None:
            return ServiceResponse(400, False, "Cannot reach router at this IP address. Please check the IP address and try again")

        saved = await self.db.upsert_router(RouterRecord(
            user_id=user_id,
            ip_address=address,
            username=username,
            password=password,
            brand=router.detected_brand
        ))
        if not saved:
            return ServiceResponse(500, False, "Failed to connect router")

        return ServiceResponse(
            200, True, "Router connected and saved successfully",
            data={"router": router.to_dict()},
            meta=_meta(start_time)
        )

    async def get_saved_router(self, user_id: Optional[str]) -> ServiceResponse:
        if not user_id:
            return ServiceResponse(401, False, "User identity required")

        record = await self.db.get_router_by_user(user_id)
        return ServiceResponse(
            200, True,
            "Router on file" if record else "No router on file",
            data={"router": record.to_dict() if record else None}
        )

    async def forget_router(self, user_id: Optional[str]) -> ServiceResponse:
        if not user_id:
            return ServiceResponse(401, False, "User identity required")

        if not await self.db.delete_router(user_id):
            return ServiceResponse(404, False, f"No router found. {NO_ROUTER_MESSAGE}")
        return ServiceResponse(200, True, "Router removed")

    # ================== REMOTE ACTIONS ==================

    async def reboot_router(self, user_id: Optional[str]) -> ServiceResponse:
        return await self._run_action(user_id, REBOOT)

    async def get_speed_test(self, user_id: Optional[str]) -> ServiceResponse:
        return await self._run_action(user_id, SPEED_TEST)

    async def get_connected_devices(self, user_id: Optional[str]) -> ServiceResponse:
        return await self._run_action(user_id, DEVICES)

    async def _run_action(self, user_id: Optional[str], action: str) -> ServiceResponse:
        """Run an automation action against the user's saved router"""
        start_time = time.time()
        if not user_id:
            return ServiceResponse(401, False, "User identity required")

        record = await self.db.get_router_by_user(user_id)
        if record is None:
            return ServiceResponse(404, False, f"No router found. {NO_ROUTER_MESSAGE}")

        logger.info(f"[ACTION] {action} requested for router {record.ip_address} (user {user_id})")
        try:
            result = await self.actions.perform_action(
                record.ip_address, record.username or "", record.password or "", action
            )
        except Exception as e:
            logger.error(f"[ACTION] {action} failed for user {user_id}: {e}")
            return ServiceResponse(500, False, f"Failed to run {action}", data={"details": str(e)})

        return ServiceResponse(
            200, result.success, result.message,
            data=result.data,
            meta=_meta(start_time, result.ai_cost)
        )


def create_router_service(config: Dict, db) -> RouterService:
    """Build the service and its components from the loaded configuration"""
    network_config = config.get('network', {})
    credentials_config = dict(config.get('credentials', {}))
    credentials_config.setdefault('user_agent', network_config.get('user_agent', 'RouterApp/1.0'))

    discovery = RouterDiscovery(network_config, prober=EndpointProber(network_config))
    tester = CredentialTester(credentials_config)
    smart_login = SmartLogin(
        credentials_config,
        tester,
        suggester=create_suggestion_client(config.get('suggestions', {}))
    )
    actions = RemoteActionExecutor(config.get('automation', {}))

    return RouterService(config, db, discovery, tester, smart_login, actions)
