"""DriverIdentityService — the four-step driver credential workflow.

Wires the store, vaults, ledger, resolver, issuer, presentation builder and
verifier together behind the operations the HTTP surface and the CLI expose:

``create_driver_did``
    Create (or load) the driver's DID.
``issue_driver_vc``
    Issue the driver credential from the issuer, creating the issuer's DID
    on first use. The driver must already exist.
``create_driver_vp``
    Present the driver's current credential as the driver.
``verify_driver_vp``
    Verify the driver's current presentation.

Each issue or present overwrites the driver's current token; there is no
credential history.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from driver_identity.config import Settings
from driver_identity.credentials.credential import DRIVER_CREDENTIAL_TYPE, CredentialIssuer
from driver_identity.credentials.presentation import DEFAULT_VALIDITY, PresentationBuilder
from driver_identity.crypto.signing import SignatureVerifier
from driver_identity.did.resolver import Resolver
from driver_identity.identity.manager import ActorIdentity, ActorIdentityManager
from driver_identity.identity.store import ActorRole, FilesystemActorStore
from driver_identity.ledger.base import GAS_BUDGET, Faucet, Ledger
from driver_identity.ledger.http import HttpFaucet, HttpLedgerClient
from driver_identity.ledger.memory import InMemoryLedger
from driver_identity.vault.key_vault import EncryptedFileVault, KeyVault
from driver_identity.verification.verifier import (
    FailurePolicy,
    PresentationVerifier,
    VerificationOutcome,
)

logger = logging.getLogger(__name__)

CREDENTIAL_TYPE: str = DRIVER_CREDENTIAL_TYPE

DRIVER_CLAIMS: dict[str, Any] = {
    "name": "Joe Bloggs",
    "licenseNumber": "UK-TRK-2024-001",
    "vehicleClass": "HGV",
    "country": "GB",
}


class DriverIdentityService:
    """Facade over the driver credential workflow.

    Parameters
    ----------
    store:
        Persisted per-role artifacts.
    ledger:
        Where DID documents are published and resolved.
    faucet:
        Funds fresh sender addresses.
    vault_factory:
        Returns the key vault of a role; called once per role.
    gas_budget:
        Gas charged for each DID publish.
    publish_timeout:
        Upper bound in seconds for funding plus publishing.
    presentation_validity:
        Validity window of created presentations.
    failure_policy:
        Credential failure policy of the verifier.
    resolver_cache:
        Whether resolved documents are cached.
    claims:
        Claims issued to the driver.
    clock:
        Shared clock for issuance, presentation and verification.
    signature_verifier:
        Overrides the verifier's Ed25519 signature checks.
    """

    def __init__(
        self,
        store: FilesystemActorStore,
        ledger: Ledger,
        faucet: Faucet,
        vault_factory: Callable[[ActorRole], KeyVault],
        *,
        gas_budget: int = GAS_BUDGET,
        publish_timeout: float | None = None,
        presentation_validity: timedelta = DEFAULT_VALIDITY,
        failure_policy: FailurePolicy = FailurePolicy.FIRST_ERROR,
        resolver_cache: bool = True,
        claims: dict[str, Any] | None = None,
        clock: Callable[[], datetime] | None = None,
        signature_verifier: SignatureVerifier | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._faucet = faucet
        self._vault_factory = vault_factory
        self._vaults: dict[ActorRole, KeyVault] = {}
        self._claims = dict(claims if claims is not None else DRIVER_CLAIMS)
        self.manager = ActorIdentityManager(
            store,
            ledger,
            faucet,
            self._vault_for,
            gas_budget=gas_budget,
            publish_timeout=publish_timeout,
        )
        self.resolver = Resolver(ledger, cache=resolver_cache)
        self.issuer = CredentialIssuer(clock=clock)
        self.builder = PresentationBuilder(validity=presentation_validity, clock=clock)
        self.verifier = PresentationVerifier(
            self.resolver,
            signature_verifier,
            failure_policy=failure_policy,
            clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DriverIdentityService":
        """Build the service from validated :class:`~driver_identity.config.Settings`.

        A ``file://`` ``API_ENDPOINT`` selects the local NDJSON ledger, which
        also acts as the faucet; anything else talks JSON-RPC over HTTP.
        """
        store = FilesystemActorStore(settings.state_dir)
        ledger: Ledger
        faucet: Faucet
        if settings.uses_local_ledger:
            local = InMemoryLedger(path=settings.local_ledger_path)
            ledger, faucet = local, local
            logger.info("Using local ledger file %s", settings.local_ledger_path)
        else:
            ledger = HttpLedgerClient(
                settings.api_endpoint,
                settings.identity_package_id,
                timeout=settings.ledger_timeout_seconds,
            )
            faucet = HttpFaucet(settings.faucet_endpoint, timeout=settings.ledger_timeout_seconds)
            logger.info("Using ledger node %s", settings.api_endpoint)

        password = settings.vault_password.get_secret_value()

        def vault_factory(role: ActorRole) -> KeyVault:
            return EncryptedFileVault(store.vault_path(role), password)

        return cls(
            store,
            ledger,
            faucet,
            vault_factory,
            gas_budget=settings.gas_budget,
            publish_timeout=settings.ledger_timeout_seconds * 4,
            presentation_validity=timedelta(minutes=settings.presentation_validity_minutes),
            failure_policy=FailurePolicy(settings.failure_policy),
            resolver_cache=settings.resolver_cache,
        )

    @property
    def store(self) -> FilesystemActorStore:
        return self._store

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def create_driver_did(self) -> str:
        """Return the driver's DID, creating and publishing it on first call."""
        identity = await self.manager.ensure_identity(ActorRole.DRIVER)
        return identity.did

    async def issue_driver_vc(self) -> str:
        """Issue the driver credential and store it as the driver's current one.

        Raises
        ------
        IdentityNotFound
            If the driver has no DID yet.
        """
        driver = await self.manager.load_identity(ActorRole.DRIVER)
        issuer = await self.manager.ensure_identity(ActorRole.ISSUER)
        token = await self.issuer.issue(
            issuer,
            driver.did,
            self._claims,
            self.manager.signer_for(issuer),
            credential_type=CREDENTIAL_TYPE,
        )
        self._store.save_credential(ActorRole.DRIVER, token)
        return token

    async def create_driver_vp(self) -> str:
        """Present the driver's current credential(s) and store the token.

        Raises
        ------
        IdentityNotFound
            If the driver has no DID yet.
        CredentialNotFound
            If no credential has been issued to the driver.
        """
        driver = await self.manager.load_identity(ActorRole.DRIVER)
        tokens = self._store.load_credentials(ActorRole.DRIVER)
        token = await self.present(driver, tokens)
        self._store.save_presentation(ActorRole.DRIVER, token)
        return token

    async def verify_driver_vp(self) -> VerificationOutcome:
        """Verify the driver's current presentation.

        Raises
        ------
        PresentationNotFound
            If the driver has not created a presentation.
        VerificationError
            If the presentation or any credential is not valid.
        """
        token = self._store.load_presentation(ActorRole.DRIVER)
        return await self.verifier.verify(token)

    async def present(self, holder: ActorIdentity, tokens: list[str]) -> str:
        return await self.builder.present(holder, tokens, self.manager.signer_for(holder))

    async def aclose(self) -> None:
        """Close ledger and faucet clients."""
        await self._ledger.aclose()
        if self._faucet is not self._ledger:
            await self._faucet.aclose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _vault_for(self, role: ActorRole) -> KeyVault:
        vault = self._vaults.get(role)
        if vault is None:
            vault = self._vaults[role] = self._vault_factory(role)
        return vault


__all__ = ["CREDENTIAL_TYPE", "DRIVER_CLAIMS", "DriverIdentityService"]
