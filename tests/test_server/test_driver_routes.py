"""Tests for driver_identity.server.routes."""
from __future__ import annotations

import pytest

from driver_identity import __version__
from driver_identity.config import Settings
from driver_identity.errors import LedgerError
from driver_identity.identity.store import ActorRole
from driver_identity.server import routes
from driver_identity.service import DriverIdentityService


class _BrokenService:
    """Stands in for the service and fails every workflow step."""

    def __init__(self, error: Exception) -> None:
        self._error = error

    async def create_driver_did(self) -> str:
        raise self._error

    async def aclose(self) -> None:
        return None


@pytest.fixture(autouse=True)
def reset_server_state() -> None:
    """Reset module-level state before each test."""
    routes.reset_state()


@pytest.fixture()
def service(local_settings: Settings) -> DriverIdentityService:
    service = DriverIdentityService.from_settings(local_settings)
    routes.set_service(service)
    return service


class TestHandleHealth:
    @pytest.mark.asyncio
    async def test_health(self) -> None:
        status, data = await routes.handle_health()
        assert status == 200
        assert data == {"status": "ok", "service": "driver-identity", "version": __version__}


class TestWorkflowRoutes:
    @pytest.mark.asyncio
    async def test_full_flow(self, service: DriverIdentityService) -> None:
        status, created = await routes.handle_create_did()
        assert status == 200
        assert created["did"].startswith("did:iota:local:0x")

        status, issued = await routes.handle_issue_vc()
        assert status == 200
        assert issued["vc"].count(".") == 2

        status, presented = await routes.handle_create_vp()
        assert status == 200
        assert presented["vp"].count(".") == 2

        status, verified = await routes.handle_verify()
        assert status == 200
        assert verified == {"valid": True, "holder": created["did"], "credential_count": 1}

    @pytest.mark.asyncio
    async def test_create_did_twice_returns_same_did(self, service: DriverIdentityService) -> None:
        _, first = await routes.handle_create_did()
        _, second = await routes.handle_create_did()
        assert first == second

    def test_routes_table(self) -> None:
        assert set(routes.POST_ROUTES) == {
            "/driver/create-did",
            "/driver/issue-vc",
            "/driver/create-vp",
            "/driver/verify",
        }


class TestErrorResponses:
    @pytest.mark.asyncio
    async def test_issue_before_create_did_is_409(self, service: DriverIdentityService) -> None:
        status, data = await routes.handle_issue_vc()
        assert status == 409
        assert data["error"] == "IdentityNotFound"
        assert "create-did" in data["detail"]

    @pytest.mark.asyncio
    async def test_create_vp_before_issue_is_409(self, service: DriverIdentityService) -> None:
        await routes.handle_create_did()
        status, data = await routes.handle_create_vp()
        assert status == 409
        assert data["error"] == "CredentialNotFound"

    @pytest.mark.asyncio
    async def test_verify_before_create_vp_is_409(self, service: DriverIdentityService) -> None:
        status, data = await routes.handle_verify()
        assert status == 409
        assert data["error"] == "PresentationNotFound"

    @pytest.mark.asyncio
    async def test_invalid_presentation_is_422(self, service: DriverIdentityService) -> None:
        await routes.handle_create_did()
        await routes.handle_issue_vc()
        await routes.handle_create_vp()
        service.store.save_presentation(ActorRole.DRIVER, "not-a-token")

        status, data = await routes.handle_verify()

        assert status == 422
        assert data["error"] == "MalformedToken"

    @pytest.mark.asyncio
    async def test_ledger_failure_is_502(self) -> None:
        routes.set_service(_BrokenService(LedgerError("node unreachable")))  # type: ignore[arg-type]
        status, data = await routes.handle_create_did()
        assert status == 502
        assert data == {"error": "LedgerError", "detail": "node unreachable"}

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_500(self) -> None:
        routes.set_service(_BrokenService(RuntimeError("boom")))  # type: ignore[arg-type]
        status, data = await routes.handle_create_did()
        assert status == 500
        assert data["error"] == "InternalError"


class TestServiceFromEnvironment:
    @pytest.mark.asyncio
    async def test_missing_configuration_is_500(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("API_ENDPOINT", "IDENTITY_PACKAGE_ID", "VAULT_PASSWORD"):
            monkeypatch.delenv(name, raising=False)

        status, data = await routes.handle_create_did()

        assert status == 500
        assert data["error"] == "ConfigError"
        assert "API_ENDPOINT" in data["detail"]

    @pytest.mark.asyncio
    async def test_service_built_once_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, local_env: dict[str, str]
    ) -> None:
        for name, value in local_env.items():
            monkeypatch.setenv(name, value)

        first = await routes.get_service()
        second = await routes.get_service()

        assert first is second
        status, _ = await routes.handle_create_did()
        assert status == 200
        await routes.close_service()
