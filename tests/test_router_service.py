"""Router service envelopes, status codes and persistence."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from actions import ActionResult, REBOOT, DEVICES
from credentials.models import CredentialAnalysis, CredentialTestResult, SmartLoginResult, SOURCE_FALLBACK
from credentials.suggestions import FALLBACK_GUESSES
from database.models import RouterRecord
from discovery.models import DiscoveredRouter, DiscoveryResult, DiscoveryScope
from errors import LandingPageUnavailable
from services.router_service import RouterService, is_valid_address

USER = "user-42"


def make_router(address="192.168.1.1", brand="Linksys"):
    return DiscoveredRouter(
        address=address,
        is_accessible=True,
        auth_required=True,
        protocols_used=frozenset({"http"}),
        detected_brand=brand,
        response_time=0.05
    )


def make_service(store, discovery=None, tester=None, smart_login=None, actions=None, config=None):
    return RouterService(
        config or {"network": {"discovery_timeout": 5}},
        store,
        discovery or MagicMock(),
        tester or MagicMock(),
        smart_login or MagicMock(),
        actions or MagicMock()
    )


def login_result(address, working_index=None, tried=3, cancelled=False):
    guesses = FALLBACK_GUESSES
    working = guesses[working_index] if working_index is not None else None
    attempts = tuple(
        CredentialTestResult(guess=g, succeeded=(g is working), evidence="", elapsed=0.01)
        for g in guesses[:tried]
    )
    return SmartLoginResult(
        address=address,
        guesses=guesses,
        attempts=attempts,
        suggestion_source=SOURCE_FALLBACK,
        duration_seconds=0.1,
        brand="Netgear",
        working_guess=working,
        ai_cost=0.002,
        cancelled=cancelled
    )


def test_is_valid_address():
    assert is_valid_address("192.168.1.1")
    assert not is_valid_address("")
    assert not is_valid_address(None)
    assert not is_valid_address("router.local")
    assert not is_valid_address("fe80::1")
    assert not is_valid_address("192.168.1.300")


@pytest.mark.asyncio
async def test_discover_found(store):
    discovery = MagicMock()
    discovery.discover = AsyncMock(return_value=DiscoveryResult(
        router=make_router(), scope=DiscoveryScope(), candidates_tested=15, duration_seconds=0.4
    ))

    response = await make_service(store, discovery=discovery).discover_router()

    assert response.status_code == 200
    body = response.envelope()
    assert body["success"] is True
    assert body["data"]["router"]["ipAddress"] == "192.168.1.1"
    assert body["data"]["router"]["detectedBrand"] == "Linksys"
    assert "duration" in body["meta"]


@pytest.mark.asyncio
async def test_discover_not_found_is_404(store):
    discovery = MagicMock()
    discovery.discover = AsyncMock(return_value=DiscoveryResult(
        router=None, scope=DiscoveryScope(), candidates_tested=15, duration_seconds=3.0
    ))

    response = await make_service(store, discovery=discovery).discover_router()

    assert response.status_code == 404
    assert response.success is False
    assert "WiFi" in response.message


@pytest.mark.asyncio
async def test_discover_passes_extended_scope(store):
    discovery = MagicMock()
    discovery.discover = AsyncMock(return_value=DiscoveryResult(
        router=None, scope=DiscoveryScope(extended=True), candidates_tested=40, duration_seconds=3.0
    ))

    await make_service(store, discovery=discovery).discover_router(extended=True)

    assert discovery.discover.call_args.kwargs["scope"] == DiscoveryScope(extended=True)


@pytest.mark.asyncio
async def test_discover_unexpected_error_is_500(store):
    discovery = MagicMock()
    discovery.discover = AsyncMock(side_effect=RuntimeError("boom"))

    response = await make_service(store, discovery=discovery).discover_router()

    assert response.status_code == 500
    assert response.success is False


@pytest.mark.asyncio
async def test_test_ip_rejects_invalid_address(store):
    response = await make_service(store).test_ip("not-an-ip")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_test_ip_reports_accessibility(store):
    discovery = MagicMock()
    discovery.test_connection = AsyncMock(return_value=False)

    response = await make_service(store, discovery=discovery).test_ip("192.168.1.1")

    assert response.status_code == 200
    assert response.data == {"ip": "192.168.1.1", "isAccessible": False, "likelyGateway": True, "tested": True}


@pytest.mark.asyncio
async def test_smart_connect_persists_working_credentials(store):
    smart_login = MagicMock()
    smart_login.smart_login = AsyncMock(return_value=login_result("192.168.1.1", working_index=1, tried=2))

    response = await make_service(store, smart_login=smart_login).smart_connect(USER, "192.168.1.1")

    assert response.status_code == 200
    assert response.success is True
    assert response.data["workingCredentials"] == {"username": "admin", "password": "password"}
    assert response.data["triedCount"] == 2
    assert response.data["saved"] is True
    assert response.meta["aiCost"] == 0.002

    record = await store.get_router_by_user(USER)
    assert (record.ip_address, record.username, record.password, record.brand) == (
        "192.168.1.1", "admin", "password", "Netgear"
    )


@pytest.mark.asyncio
async def test_smart_connect_without_success_saves_nothing(store):
    smart_login = MagicMock()
    smart_login.smart_login = AsyncMock(return_value=login_result("192.168.1.1"))

    response = await make_service(store, smart_login=smart_login).smart_connect(USER, "192.168.1.1")

    assert response.status_code == 200
    assert response.success is False
    assert len(response.data["suggestedCredentials"]) == 3
    assert await store.get_router_by_user(USER) is None


@pytest.mark.asyncio
async def test_smart_connect_cancelled_run_is_unsuccessful(store):
    smart_login = MagicMock()
    smart_login.smart_login = AsyncMock(return_value=login_result("192.168.1.1", tried=1, cancelled=True))

    response = await make_service(store, smart_login=smart_login).smart_connect(USER, "192.168.1.1")

    assert response.status_code == 200
    assert response.success is False
    assert response.message == "Smart login cancelled"
    assert response.data["triedCount"] == 1
    assert response.data["saved"] is False
    assert await store.get_router_by_user(USER) is None


@pytest.mark.asyncio
async def test_smart_connect_requires_address(store):
    response = await make_service(store).smart_connect(USER, None)

    assert response.status_code == 400
    assert response.message == "Router IP address is required"


@pytest.mark.asyncio
async def test_smart_connect_unreachable_landing_page_is_502(store):
    smart_login = MagicMock()
    smart_login.smart_login = AsyncMock(side_effect=LandingPageUnavailable("192.168.1.1", "timeout"))

    response = await make_service(store, smart_login=smart_login).smart_connect(USER, "192.168.1.1")

    assert response.status_code == 502
    assert response.success is False
    assert response.data["evidence"] == "timeout"


@pytest.mark.asyncio
async def test_analyze_returns_suggestions(store):
    smart_login = MagicMock()
    smart_login.analyze = AsyncMock(return_value=CredentialAnalysis(
        address="192.168.1.1", guesses=FALLBACK_GUESSES, suggestion_source=SOURCE_FALLBACK
    ))

    response = await make_service(store, smart_login=smart_login).analyze("192.168.1.1")

    assert response.status_code == 200
    assert [c["password"] for c in response.data["suggestedCredentials"]] == ["admin", "password", ""]
    assert response.meta["analysisType"] == "interface_analysis_only"


@pytest.mark.asyncio
async def test_connect_router_saves_reachable_router(store):
    discovery = MagicMock()
    discovery.inspect_address = AsyncMock(return_value=make_router())

    response = await make_service(store, discovery=discovery).connect_router(USER, "192.168.1.1", "admin", "s3cret")

    assert response.status_code == 200
    record = await store.get_router_by_user(USER)
    assert (record.ip_address, record.username, record.password) == ("192.168.1.1", "admin", "s3cret")


@pytest.mark.asyncio
async def test_connect_router_unreachable_is_400(store):
    discovery = MagicMock()
    discovery.inspect_address = AsyncMock(return_value=None)

    response = await make_service(store, discovery=discovery).connect_router(USER, "192.168.1.1")

    assert response.status_code == 400
    assert await store.get_router_by_user(USER) is None


@pytest.mark.asyncio
async def test_user_scoped_operations_require_user(store):
    service = make_service(store)

    for response in (
        await service.connect_router(None, "192.168.1.1"),
        await service.get_saved_router(None),
        await service.forget_router(None),
        await service.reboot_router(None),
    ):
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_saved_router_round_trip(store):
    service = make_service(store)
    await store.upsert_router(RouterRecord(user_id=USER, ip_address="10.0.0.1", username="admin", password="pw"))

    saved = await service.get_saved_router(USER)
    assert saved.data["router"]["ipAddress"] == "10.0.0.1"
    assert "password" not in saved.data["router"]

    forgotten = await service.forget_router(USER)
    assert forgotten.status_code == 200
    assert (await service.get_saved_router(USER)).data["router"] is None
    assert (await service.forget_router(USER)).status_code == 404


@pytest.mark.asyncio
async def test_actions_need_router_on_file(store):
    actions = MagicMock()
    actions.perform_action = AsyncMock()

    response = await make_service(store, actions=actions).reboot_router(USER)

    assert response.status_code == 404
    actions.perform_action.assert_not_called()


@pytest.mark.asyncio
async def test_actions_use_saved_credentials(store):
    await store.upsert_router(RouterRecord(user_id=USER, ip_address="192.168.1.1", username="admin", password="pw"))
    actions = MagicMock()
    actions.perform_action = AsyncMock(return_value=ActionResult(
        action=DEVICES, success=True, message="Found 2 connected devices", data={"count": 2}, ai_cost=0.002
    ))

    response = await make_service(store, actions=actions).get_connected_devices(USER)

    actions.perform_action.assert_awaited_once_with("192.168.1.1", "admin", "pw", DEVICES)
    assert response.status_code == 200
    assert response.data == {"count": 2}
    assert response.meta["aiCost"] == 0.002


@pytest.mark.asyncio
async def test_failed_action_is_unsuccessful_envelope(store):
    await store.upsert_router(RouterRecord(user_id=USER, ip_address="192.168.1.1", username="admin", password="pw"))
    actions = MagicMock()
    actions.perform_action = AsyncMock(return_value=ActionResult(
        action=REBOOT, success=False, message="Automation service not configured"
    ))

    response = await make_service(store, actions=actions).reboot_router(USER)

    assert response.status_code == 200
    assert response.success is False
    assert response.message == "Automation service not configured"


@pytest.mark.asyncio
async def test_upsert_is_idempotent_per_user(store):
    discovery = MagicMock()
    discovery.inspect_address = AsyncMock(return_value=make_router())
    service = make_service(store, discovery=discovery)

    await service.connect_router(USER, "192.168.1.1", "admin", "pw")
    await service.connect_router(USER, "192.168.1.1", "admin", "pw")

    assert len(store.records) == 1
    record = await store.get_router_by_user(USER)
    assert (record.ip_address, record.username, record.password) == ("192.168.1.1", "admin", "pw")
