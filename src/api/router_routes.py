"""
Router management API routes
"""

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Request models
class AddressRequest(BaseModel):
    ipAddress: Optional[str] = None

class CredentialsRequest(BaseModel):
    ipAddress: Optional[str] = None
    username: str = "admin"
    password: str = "admin"


def _respond(result) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.envelope())


def create_router_routes(router_service):
    """Create router discovery, login and action routes"""
    router = APIRouter(prefix="/api/router", tags=["router"])

    @router.get("/discover")
    async def discover_router(extended: Optional[bool] = None):
        """Discover the router on the local network"""
        return _respond(await router_service.discover_router(extended))

    @router.get("/test-ip/{ip}")
    async def test_ip(ip: str):
        """Test whether a specific address answers like a router"""
        return _respond(await router_service.test_ip(ip))

    @router.post("/smart-connect")
    async def smart_connect(request: AddressRequest, x_user_id: Optional[str] = Header(None)):
        """Find working credentials and save them for the user"""
        return _respond(await router_service.smart_connect(x_user_id, request.ipAddress))

    @router.post("/analyze")
    async def analyze(request: AddressRequest):
        """Suggest credentials without trying them"""
        return _respond(await router_service.analyze(request.ipAddress))

    @router.post("/connect")
    async def connect_router(request: CredentialsRequest, x_user_id: Optional[str] = Header(None)):
        return _respond(await router_service.connect_router(
            x_user_id, request.ipAddress, request.username, request.password
        ))

    @router.post("/test")
    async def test_credentials(request: CredentialsRequest):
        return _respond(await router_service.test_credentials(
            request.ipAddress, request.username, request.password
        ))

    @router.get("/saved")
    async def get_saved_router(x_user_id: Optional[str] = Header(None)):
        return _respond(await router_service.get_saved_router(x_user_id))

    @router.delete("/saved")
    async def forget_router(x_user_id: Optional[str] = Header(None)):
        return _respond(await router_service.forget_router(x_user_id))

    @router.post("/reboot")
    async def reboot_router(x_user_id: Optional[str] = Header(None)):
        return _respond(await router_service.reboot_router(x_user_id))

    @router.post("/speed-test")
    async def speed_test(x_user_id: Optional[str] = Header(None)):
        return _respond(await router_service.get_speed_test(x_user_id))

    @router.get("/devices")
    async def connected_devices(x_user_id: Optional[str] = Header(None)):
        return _respond(await router_service.get_connected_devices(x_user_id))

    return router
