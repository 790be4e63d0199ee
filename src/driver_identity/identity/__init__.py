"""driver_identity.identity — actor DID lifecycle and persisted artifacts."""
from __future__ import annotations

from driver_identity.identity.manager import ActorIdentity, ActorIdentityManager
from driver_identity.identity.store import (
    ActorRole,
    ActorStore,
    FilesystemActorStore,
    IdentityState,
)

__all__ = [
    "ActorIdentity",
    "ActorIdentityManager",
    "ActorRole",
    "ActorStore",
    "FilesystemActorStore",
    "IdentityState",
]
