"""Route handler functions for the driver identity HTTP server.

Each function is a coroutine returning a tuple of (status_code,
response_dict). The HTTP handler in app.py runs them on the server's event
loop and serializes the results to JSON.

The service is built from the environment on the first request, so a
missing variable surfaces as a ``ConfigError`` response rather than a
start-up crash.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from driver_identity import __version__
from driver_identity.config import Settings
from driver_identity.errors import IdentityServiceError
from driver_identity.server.models import (
    DidResponse,
    ErrorResponse,
    HealthResponse,
    VcResponse,
    VerifyResponse,
    VpResponse,
)
from driver_identity.service import DriverIdentityService

logger = logging.getLogger(__name__)

# Module-level shared state
_service: DriverIdentityService | None = None
_service_lock = asyncio.Lock()


def set_service(service: DriverIdentityService | None) -> None:
    """Install *service* as the shared workflow instance (tests, embedding)."""
    global _service
    _service = service


def reset_state() -> None:
    """Drop the shared service so the next request rebuilds it from the environment."""
    global _service, _service_lock
    _service = None
    _service_lock = asyncio.Lock()


async def get_service() -> DriverIdentityService:
    """Return the shared service, building it from the environment on first use."""
    global _service
    if _service is not None:
        return _service
    async with _service_lock:
        if _service is None:
            _service = DriverIdentityService.from_settings(Settings.from_env())
        return _service


async def close_service() -> None:
    """Close the shared service's network clients, if one was built."""
    if _service is not None:
        await _service.aclose()


async def _respond(
    operation: Callable[[DriverIdentityService], Awaitable[BaseModel]],
) -> tuple[int, dict[str, object]]:
    try:
        service = await get_service()
        result = await operation(service)
    except IdentityServiceError as exc:
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc)
        return exc.status_code, ErrorResponse(
            error=type(exc).__name__, detail=str(exc)
        ).model_dump()
    except Exception as exc:
        logger.exception("Unhandled error while serving request")
        return 500, ErrorResponse(error="InternalError", detail=str(exc)).model_dump()
    return 200, result.model_dump()


async def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health."""
    return 200, HealthResponse(version=__version__).model_dump()


async def handle_create_did() -> tuple[int, dict[str, object]]:
    """Handle POST /driver/create-did."""

    async def _operation(service: DriverIdentityService) -> BaseModel:
        return DidResponse(did=await service.create_driver_did())

    return await _respond(_operation)


async def handle_issue_vc() -> tuple[int, dict[str, object]]:
    """Handle POST /driver/issue-vc."""

    async def _operation(service: DriverIdentityService) -> BaseModel:
        return VcResponse(vc=await service.issue_driver_vc())

    return await _respond(_operation)


async def handle_create_vp() -> tuple[int, dict[str, object]]:
    """Handle POST /driver/create-vp."""

    async def _operation(service: DriverIdentityService) -> BaseModel:
        return VpResponse(vp=await service.create_driver_vp())

    return await _respond(_operation)


async def handle_verify() -> tuple[int, dict[str, object]]:
    """Handle POST /driver/verify."""

    async def _operation(service: DriverIdentityService) -> BaseModel:
        outcome = await service.verify_driver_vp()
        return VerifyResponse(
            valid=outcome.valid,
            holder=outcome.holder,
            credential_count=outcome.credential_count,
        )

    return await _respond(_operation)


POST_ROUTES: dict[str, Callable[[], Awaitable[tuple[int, dict[str, object]]]]] = {
    "/driver/create-did": handle_create_did,
    "/driver/issue-vc": handle_issue_vc,
    "/driver/create-vp": handle_create_vp,
    "/driver/verify": handle_verify,
}
