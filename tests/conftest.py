"""Shared fixtures: an in-memory ledger, pre-published actors and local settings."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from driver_identity.config import Settings
from driver_identity.crypto.signing import LocalEd25519Signer
from driver_identity.did.document import DIDDocument
from driver_identity.identity.manager import ActorIdentity
from driver_identity.identity.store import ActorRole
from driver_identity.ledger.base import sender_address
from driver_identity.ledger.memory import InMemoryLedger

PublishActor = Callable[..., Awaitable[tuple[ActorIdentity, LocalEd25519Signer]]]


@pytest.fixture()
def ledger() -> InMemoryLedger:
    return InMemoryLedger(network="test")


@pytest.fixture()
def publish_actor(ledger: InMemoryLedger) -> PublishActor:
    """Return a coroutine that publishes a one-key DID document under a chosen DID.

    The returned signer holds the document's only verification method.
    """

    async def _publish(
        did: str, role: ActorRole = ActorRole.DRIVER
    ) -> tuple[ActorIdentity, LocalEd25519Signer]:
        signer = LocalEd25519Signer()
        document = DIDDocument.unpublished(signer.fragment, signer.public_jwk).with_id(did)
        sender = LocalEd25519Signer()
        await ledger.request_funds(sender_address(sender.public_jwk))
        published = await ledger.publish_did_document(document, sender=sender)
        return ActorIdentity(role=role, document=published, fragment=signer.fragment), signer

    return _publish


@pytest.fixture()
def local_env(tmp_path: Path) -> dict[str, str]:
    """Environment for a service backed by a local ledger file under *tmp_path*."""
    return {
        "API_ENDPOINT": f"file://{tmp_path / 'ledger.ndjson'}",
        "IDENTITY_PACKAGE_ID": "0x" + "ab" * 32,
        "VAULT_PASSWORD": "correct horse battery staple",
        "STATE_DIR": str(tmp_path / "state"),
    }


@pytest.fixture()
def local_settings(local_env: dict[str, str]) -> Settings:
    return Settings.from_env(local_env)
