"""Error taxonomy for the driver identity pipeline.

Every error raised by this package derives from :class:`IdentityServiceError`
and carries an HTTP ``status_code`` so the server can tell "the request cannot
be satisfied yet / the presentation is not valid" (4xx) apart from "the system
is broken" (5xx).

Hierarchy
---------
::

    IdentityServiceError
    ├── ConfigError                 500
    ├── StorageError                500
    │   ├── IdentityNotFound        409
    │   ├── CredentialNotFound      409
    │   └── PresentationNotFound    409
    ├── VaultError                  500
    ├── LedgerError                 502
    ├── ResolutionError             422
    ├── InternalError               500
    └── VerificationError           422
        ├── MalformedToken
        ├── SignatureInvalid
        ├── ExpiredPresentation
        ├── PresentationNotYetValid
        ├── ExpiredCredential
        ├── CredentialNotYetValid
        ├── HolderBindingMismatch
        └── CredentialValidationErrors
"""
from __future__ import annotations


class IdentityServiceError(Exception):
    """Base class for all driver identity errors."""

    status_code: int = 500


class ConfigError(IdentityServiceError):
    """Raised when environment configuration is missing or invalid."""


class StorageError(IdentityServiceError):
    """Raised when a persisted artifact is missing or corrupt."""


class IdentityNotFound(StorageError):
    """Raised when an actor has no persisted DID yet."""

    status_code = 409

    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(
            f"{role} DID not found; call POST /{role}/create-did first"
        )


class CredentialNotFound(StorageError):
    """Raised when no credential token is available for an actor."""

    status_code = 409

    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(
            f"no credential issued for {role}; call POST /{role}/issue-vc first"
        )


class PresentationNotFound(StorageError):
    """Raised when no presentation token is available for an actor."""

    status_code = 409

    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(
            f"no presentation created for {role}; call POST /{role}/create-vp first"
        )


class VaultError(IdentityServiceError):
    """Raised when the key vault cannot generate a key or sign."""


class LedgerError(IdentityServiceError):
    """Raised when publishing, funding, or a ledger read fails in transport."""

    status_code = 502


class ResolutionError(IdentityServiceError):
    """Raised when a DID cannot be resolved or a batch is incomplete."""

    status_code = 422

    def __init__(self, message: str, did: str | None = None) -> None:
        self.did = did
        super().__init__(message)


class InternalError(IdentityServiceError):
    """Raised for conditions that should be unreachable in practice."""


# ------------------------------------------------------------------
# Verification errors (terminal, fail-closed)
# ------------------------------------------------------------------


class VerificationError(IdentityServiceError):
    """Base class for every reason a presentation is not valid."""

    status_code = 422


class MalformedToken(VerificationError):
    """Raised when a token cannot be parsed into header, payload and signature."""


class SignatureInvalid(VerificationError):
    """Raised when a signature does not verify against the signer's DID document."""


class ExpiredPresentation(VerificationError):
    """Raised when a presentation's ``exp`` is not in the future."""

    def __init__(self, holder: str, expired_at: str) -> None:
        self.holder = holder
        self.expired_at = expired_at
        super().__init__(f"presentation from {holder} expired at {expired_at}")


class PresentationNotYetValid(VerificationError):
    """Raised when a presentation's ``nbf`` lies in the future."""

    def __init__(self, holder: str, valid_from: str) -> None:
        self.holder = holder
        self.valid_from = valid_from
        super().__init__(f"presentation from {holder} is not valid before {valid_from}")


class ExpiredCredential(VerificationError):
    """Raised when an embedded credential carries an ``exp`` in the past."""


class CredentialNotYetValid(VerificationError):
    """Raised when an embedded credential's ``nbf`` lies in the future."""


class HolderBindingMismatch(VerificationError):
    """Raised when a credential's subject is not the presentation holder."""

    def __init__(self, subject: str | None, holder: str) -> None:
        self.subject = subject
        self.holder = holder
        super().__init__(
            f"credential subject {subject!r} does not match presentation holder {holder!r}"
        )


class CredentialValidationErrors(VerificationError):
    """Aggregate of per-credential failures, raised under the all-errors policy."""

    def __init__(self, errors: list[tuple[int, VerificationError]]) -> None:
        self.errors = errors
        summary = "; ".join(f"credential {index}: {error}" for index, error in errors)
        super().__init__(f"{len(errors)} credential(s) failed validation: {summary}")


__all__ = [
    "IdentityServiceError",
    "ConfigError",
    "StorageError",
    "IdentityNotFound",
    "CredentialNotFound",
    "PresentationNotFound",
    "VaultError",
    "LedgerError",
    "ResolutionError",
    "InternalError",
    "VerificationError",
    "MalformedToken",
    "SignatureInvalid",
    "ExpiredPresentation",
    "PresentationNotYetValid",
    "ExpiredCredential",
    "CredentialNotYetValid",
    "HolderBindingMismatch",
    "CredentialValidationErrors",
]
