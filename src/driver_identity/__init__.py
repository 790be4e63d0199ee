"""driver-identity — DIDs, verifiable credentials and presentations for drivers.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import driver_identity
>>> driver_identity.__version__
'0.1.0'

Quick start
-----------
::

    from driver_identity import DriverIdentityService, Settings

    service = DriverIdentityService.from_settings(Settings.from_env())
    did = await service.create_driver_did()
    await service.issue_driver_vc()
    await service.create_driver_vp()
    outcome = await service.verify_driver_vp()
"""
from __future__ import annotations

__version__: str = "0.1.0"

from driver_identity.config import Settings

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from driver_identity.errors import (
    ConfigError,
    CredentialNotFound,
    CredentialNotYetValid,
    CredentialValidationErrors,
    ExpiredCredential,
    ExpiredPresentation,
    HolderBindingMismatch,
    IdentityNotFound,
    IdentityServiceError,
    InternalError,
    LedgerError,
    MalformedToken,
    PresentationNotFound,
    PresentationNotYetValid,
    ResolutionError,
    SignatureInvalid,
    StorageError,
    VaultError,
    VerificationError,
)

# ------------------------------------------------------------------
# DIDs and identities
# ------------------------------------------------------------------
from driver_identity.did import DIDDocument, Resolver, VerificationMethod
from driver_identity.identity import (
    ActorIdentity,
    ActorIdentityManager,
    ActorRole,
    FilesystemActorStore,
    IdentityState,
)

# ------------------------------------------------------------------
# Credentials and verification
# ------------------------------------------------------------------
from driver_identity.credentials import (
    Credential,
    CredentialIssuer,
    CredentialSubject,
    Presentation,
    PresentationBuilder,
)
from driver_identity.verification import (
    FailurePolicy,
    PresentationVerifier,
    VerificationOutcome,
)

# ------------------------------------------------------------------
# Infrastructure
# ------------------------------------------------------------------
from driver_identity.crypto import (
    Ed25519SignatureVerifier,
    LocalEd25519Signer,
    SignatureVerifier,
    Signer,
)
from driver_identity.ledger import (
    Faucet,
    HttpFaucet,
    HttpLedgerClient,
    InMemoryLedger,
    Ledger,
)
from driver_identity.vault import EncryptedFileVault, KeyVault
from driver_identity.service import DriverIdentityService

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    # Errors
    "ConfigError",
    "CredentialNotFound",
    "CredentialNotYetValid",
    "CredentialValidationErrors",
    "ExpiredCredential",
    "ExpiredPresentation",
    "HolderBindingMismatch",
    "IdentityNotFound",
    "IdentityServiceError",
    "InternalError",
    "LedgerError",
    "MalformedToken",
    "PresentationNotFound",
    "PresentationNotYetValid",
    "ResolutionError",
    "SignatureInvalid",
    "StorageError",
    "VaultError",
    "VerificationError",
    # DIDs and identities
    "ActorIdentity",
    "ActorIdentityManager",
    "ActorRole",
    "DIDDocument",
    "FilesystemActorStore",
    "IdentityState",
    "Resolver",
    "VerificationMethod",
    # Credentials and verification
    "Credential",
    "CredentialIssuer",
    "CredentialSubject",
    "FailurePolicy",
    "Presentation",
    "PresentationBuilder",
    "PresentationVerifier",
    "VerificationOutcome",
    # Infrastructure
    "DriverIdentityService",
    "Ed25519SignatureVerifier",
    "EncryptedFileVault",
    "Faucet",
    "HttpFaucet",
    "HttpLedgerClient",
    "InMemoryLedger",
    "KeyVault",
    "Ledger",
    "LocalEd25519Signer",
    "SignatureVerifier",
    "Signer",
]
