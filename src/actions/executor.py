"""
Remote action executor.

Router admin pages differ per vendor, so actions such as a reboot are carried
out by a separate browser-automation service. This module only forwards the
validated endpoint and credentials and reports what came back.
"""

import time
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from http_helper import create_service_session

logger = logging.getLogger(__name__)

REBOOT = "reboot"
SPEED_TEST = "speed_test"
DEVICES = "connected_devices"
ACTIONS = (REBOOT, SPEED_TEST, DEVICES)


@dataclass(frozen=True)
class ActionResult:
    action: str
    success: bool
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0
    ai_cost: Optional[float] = None


class RemoteActionExecutor:
    """Posts action requests to the automation service"""

    def __init__(self, config: Dict):
        self.config = config
        self.enabled = config.get('enabled', False)
        self.base_url = (config.get('base_url') or '').rstrip('/')
        self.timeout_seconds = config.get('timeout_seconds', 120)
        self.ssl_verify = config.get('ssl_verify', True)

    async def perform_action(self, address: str, username: str, password: str, action: str) -> ActionResult:
        """Run one named action; failures come back as an unsuccessful ActionResult"""
        start_time = time.time()

        if action not in ACTIONS:
            return ActionResult(action=action, success=False, message=f"Unsupported action: {action}")

        if not self.enabled or not self.base_url:
            logger.warning(f"[ACTION] {action} requested for {address} but automation service is not configured")
            return ActionResult(action=action, success=False, message="Automation service not configured")

        url = f"{self.base_url}/actions/{action}"
        payload = {"ipAddress": address, "username": username, "password": password}
        ssl_enabled = self.base_url.startswith('https')

        logger.info(f"[ACTION] {action} on {address} via {self.base_url}")
        try:
            async with create_service_session(self.timeout_seconds, ssl_enabled, self.ssl_verify) as session:
                async with session.post(url, json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        return ActionResult(
                            action=action,
                            success=False,
                            message=f"Automation service error: HTTP {response.status} - {error_text[:200]}",
                            duration_seconds=time.time() - start_time
                        )
                    body = await response.json(content_type=None)

        except asyncio.TimeoutError:
            logger.error(f"[ACTION] {action} on {address} timed out after {self.timeout_seconds}s")
            return ActionResult(
                action=action,
                success=False,
                message=f"Automation service timed out after {self.timeout_seconds}s",
                duration_seconds=time.time() - start_time
            )
        except aiohttp.ClientError as e:
            logger.error(f"[ACTION] {action} on {address} failed: {e}")
            return ActionResult(
                action=action,
                success=False,
                message=f"Automation service unreachable: {e}",
                duration_seconds=time.time() - start_time
            )

        if not isinstance(body, dict):
            body = {"result": body}

        success = bool(body.get('success', True))
        result = ActionResult(
            action=action,
            success=success,
            message=body.get('message') or (f"{action} completed" if success else f"{action} failed"),
            data=body.get('data') or {},
            duration_seconds=time.time() - start_time,
            ai_cost=body.get('aiCost')
        )
        logger.info(f"[ACTION] {action} on {address}: {'ok' if success else 'failed'} - {result.message}")
        return result
