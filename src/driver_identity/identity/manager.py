"""ActorIdentityManager — create-or-load the DID of each actor role.

Creating an identity
--------------------
1. Generate the actor's signing key in its vault; the key id doubles as the
   verification-method fragment.
2. Generate a sender key that pays for the ledger write, and fund its
   address from the faucet if it holds nothing.
3. Publish an unpublished DID document holding the signing key, charging
   the fixed gas budget.
4. Persist ``(document, fragment)``; only then is the role published.

If anything fails before step 4, the keys generated in steps 1 and 2 are
deleted from the vault. A crash between publish and persist still leaves
an orphaned on-ledger document with no local record.

Concurrent calls for the same role are serialized by a per-role
:class:`asyncio.Lock` and the publication state is re-checked under the
lock, so a role is published at most once per store.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from driver_identity.did.document import DIDDocument
from driver_identity.errors import LedgerError, StorageError, VaultError
from driver_identity.identity.store import ActorRole, ActorStore, IdentityState
from driver_identity.ledger.base import GAS_BUDGET, Faucet, Ledger, sender_address
from driver_identity.vault.key_vault import KeyVault, VaultSigner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorIdentity:
    """A published actor identity.

    Parameters
    ----------
    role:
        Which actor this identity belongs to.
    document:
        The published DID document.
    fragment:
        Fragment of the verification method that signs for this actor.
    """

    role: ActorRole
    document: DIDDocument
    fragment: str

    @property
    def did(self) -> str:
        return self.document.id

    @property
    def kid(self) -> str:
        """Full DID URL of the signing verification method."""
        return f"{self.document.id}#{self.fragment}"


class ActorIdentityManager:
    """Create or load actor identities.

    Parameters
    ----------
    store:
        Where identities are persisted.
    ledger:
        Where DID documents are published.
    faucet:
        Funds sender addresses with no balance.
    vault_factory:
        Returns the key vault of a role.
    gas_budget:
        Gas charged for each publish.
    publish_timeout:
        Upper bound in seconds for funding plus publishing; ``None`` leaves
        the bound to the ledger client's own timeouts.
    """

    def __init__(
        self,
        store: ActorStore,
        ledger: Ledger,
        faucet: Faucet,
        vault_factory: Callable[[ActorRole], KeyVault],
        *,
        gas_budget: int = GAS_BUDGET,
        publish_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._faucet = faucet
        self._vault_factory = vault_factory
        self._gas_budget = gas_budget
        self._publish_timeout = publish_timeout
        self._locks: dict[ActorRole, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ensure_identity(self, role: ActorRole) -> ActorIdentity:
        """Return the identity of *role*, creating and publishing it if absent.

        An existing identity is returned unchanged without touching the
        vault or the ledger.

        Raises
        ------
        VaultError
            If key generation fails.
        LedgerError
            If funding or publishing fails or times out.
        StorageError
            If persisted artifacts are corrupt.
        """
        if self._store.state(role) is IdentityState.PUBLISHED:
            return await self.load_identity(role)

        async with self._lock_for(role):
            if self._store.state(role) is IdentityState.PUBLISHED:
                return await self.load_identity(role)
            return await self._create_identity(role)

    async def load_identity(self, role: ActorRole) -> ActorIdentity:
        """Return the persisted identity of *role*.

        Raises
        ------
        IdentityNotFound
            If *role* has not created a DID yet.
        StorageError
            If persisted artifacts are corrupt.
        """
        document, fragment = self._store.load_identity(role)
        return ActorIdentity(role=role, document=document, fragment=fragment)

    def signer_for(self, identity: ActorIdentity) -> VaultSigner:
        """Return a signer for the verification method of *identity*."""
        method = identity.document.resolve_method(identity.fragment)
        if method is None:
            raise StorageError(
                f"fragment {identity.fragment!r} is not a method of {identity.did}"
            )
        vault = self._vault_factory(identity.role)
        return vault.signer(identity.fragment, dict(method.public_key_jwk))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _lock_for(self, role: ActorRole) -> asyncio.Lock:
        lock = self._locks.get(role)
        if lock is None:
            lock = self._locks[role] = asyncio.Lock()
        return lock

    async def _create_identity(self, role: ActorRole) -> ActorIdentity:
        vault = self._vault_factory(role)
        method_key = await vault.generate_key()
        try:
            sender_key = await vault.generate_key()
        except Exception:
            await self._discard_keys(vault, method_key.key_id)
            raise

        sender = vault.signer(sender_key.key_id, sender_key.public_jwk)
        unpublished = DIDDocument.unpublished(method_key.key_id, method_key.public_jwk)
        try:
            document = await self._with_timeout(self._fund_and_publish(unpublished, sender))
        except Exception:
            await self._discard_keys(vault, method_key.key_id, sender_key.key_id)
            raise

        if document.resolve_method(method_key.key_id) is None:
            raise LedgerError(
                f"published document {document.id} lacks verification method {method_key.key_id}"
            )

        self._store.save_identity(role, document, method_key.key_id)
        logger.info("Created %s identity %s", role.value, document.id)
        return ActorIdentity(role=role, document=document, fragment=method_key.key_id)

    @staticmethod
    async def _discard_keys(vault: KeyVault, *key_ids: str) -> None:
        """Delete *key_ids*, logging failures so the caller's error propagates."""
        for key_id in key_ids:
            try:
                await vault.delete_key(key_id)
            except VaultError:
                logger.exception("Could not delete key %s after failed creation", key_id)

    async def _fund_and_publish(self, unpublished: DIDDocument, sender: VaultSigner) -> DIDDocument:
        address = sender_address(sender.public_jwk)
        if await self._ledger.get_balance(address) <= 0:
            logger.info("Funding sender address %s before first publish", address)
            await self._faucet.request_funds(address)
        return await self._ledger.publish_did_document(
            unpublished, sender=sender, gas_budget=self._gas_budget
        )

    async def _with_timeout(self, operation: Awaitable[DIDDocument]) -> DIDDocument:
        if self._publish_timeout is None:
            return await operation
        try:
            return await asyncio.wait_for(operation, timeout=self._publish_timeout)
        except asyncio.TimeoutError as exc:
            raise LedgerError(
                f"publishing did not complete within {self._publish_timeout}s"
            ) from exc


__all__ = ["ActorIdentity", "ActorIdentityManager"]
