"""HTTP server mode for driver-identity.

Provides a lightweight stdlib-based HTTP API over the driver credential
workflow without requiring any additional web framework dependencies.
"""
from __future__ import annotations

from driver_identity.server.app import (
    DriverIdentityHandler,
    DriverIdentityServer,
    create_server,
    run_server,
)

__all__ = ["DriverIdentityHandler", "DriverIdentityServer", "create_server", "run_server"]
