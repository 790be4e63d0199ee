#!/usr/bin/env python3
"""Example: Driver workflow

Runs the four driver steps end to end against a local ledger file in a
temporary directory: create the driver DID, issue the driver credential,
present it, and verify the presentation.

Usage:
    python examples/01_driver_workflow.py

Requirements:
    pip install driver-identity
"""
from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

import driver_identity
from driver_identity import DriverIdentityService, Settings


async def run(workdir: Path) -> None:
    settings = Settings.from_env(
        {
            "API_ENDPOINT": f"file://{workdir / 'ledger.ndjson'}",
            "IDENTITY_PACKAGE_ID": "0x" + "ab" * 32,
            "VAULT_PASSWORD": "example-only",
            "STATE_DIR": str(workdir / "state"),
        }
    )
    service = DriverIdentityService.from_settings(settings)
    try:
        # Step 1: Create the driver DID
        driver_did = await service.create_driver_did()
        print(f"Driver DID: {driver_did}")

        # Step 2: Issue the driver credential (creates the issuer DID too)
        vc = await service.issue_driver_vc()
        print(f"Credential: {vc[:40]}... ({len(vc)} chars)")

        # Step 3: Present it as the driver
        vp = await service.create_driver_vp()
        print(f"Presentation: {vp[:40]}... ({len(vp)} chars)")

        # Step 4: Verify
        outcome = await service.verify_driver_vp()
        print(f"Verification: {outcome.to_dict()}")
    finally:
        await service.aclose()


def main() -> None:
    print(f"driver-identity version: {driver_identity.__version__}")
    with tempfile.TemporaryDirectory() as workdir:
        asyncio.run(run(Path(workdir)))
    print("\nWorkflow complete.")


if __name__ == "__main__":
    main()
