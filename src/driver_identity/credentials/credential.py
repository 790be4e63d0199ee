"""Verifiable Credentials issued to actor DIDs.

Implements the W3C Verifiable Credentials Data Model in its JWT encoding:
https://www.w3.org/TR/vc-data-model/#json-web-token

A credential is signed once by its issuer and never mutated afterwards. The
token carries no ``exp``; the validity window lives on the presentation
that wraps it.

Claim mapping
-------------
==================  ===========================================
JWT claim           Credential field
==================  ===========================================
``iss``             ``issuer``
``sub``             ``credential_subject.id``
``nbf``             ``issuance_date``
``exp`` (optional)  ``expiration_date``
``jti``             ``id``
``vc``              ``@context``, ``type``, ``credentialSubject``
==================  ===========================================
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from driver_identity.crypto.jws import encode_jws
from driver_identity.crypto.signing import Signer
from driver_identity.did.document import is_did
from driver_identity.errors import StorageError
from driver_identity.identity.manager import ActorIdentity

logger = logging.getLogger(__name__)

VC_CONTEXT: str = "https://www.w3.org/2018/credentials/v1"
DRIVER_CREDENTIAL_TYPE: str = "DriverIdentityCredential"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> int:
    """Return *value* as whole UNIX seconds."""
    return int(value.timestamp())


def from_timestamp(value: Any, claim: str) -> datetime:
    """Parse a NumericDate claim.

    Raises
    ------
    ValueError
        If *value* is not a representable number of seconds.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"claim {claim!r} must be a number, got {type(value).__name__}")
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError(f"claim {claim!r} is out of range: {exc}") from exc


# ------------------------------------------------------------------
# CredentialSubject
# ------------------------------------------------------------------


@dataclass(frozen=True)
class CredentialSubject:
    """The entity described by a verifiable credential.

    Parameters
    ----------
    id:
        The DID of the subject being described.
    claims:
        Arbitrary key-value claims about the subject.
    """

    id: str
    claims: dict[str, Any]

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("CredentialSubject.id must not be empty.")
        if "id" in self.claims:
            raise ValueError("CredentialSubject.claims must not redefine 'id'.")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a W3C-compatible plain dictionary."""
        return {"id": self.id, **self.claims}


# ------------------------------------------------------------------
# Credential (Pydantic v2)
# ------------------------------------------------------------------


class Credential(BaseModel):
    """A W3C Verifiable Credential binding a subject's claims to an issuer.

    Parameters
    ----------
    context:
        JSON-LD context URIs.
    id:
        Unique identifier (``urn:uuid:`` URI), carried as ``jti``.
    type:
        Credential type list. Always includes ``"VerifiableCredential"``.
    issuer:
        DID of the issuing actor.
    issuance_date:
        UTC datetime from which the credential is valid.
    expiration_date:
        Optional UTC datetime after which the credential is no longer valid.
        Credentials issued by :class:`CredentialIssuer` never set it.
    credential_subject:
        The subject and their claims.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    context: list[str] = Field(default_factory=lambda: [VC_CONTEXT])
    id: str = Field(default_factory=lambda: f"urn:uuid:{uuid.uuid4()}")
    type: list[str] = Field(default_factory=lambda: ["VerifiableCredential"])
    issuer: str
    issuance_date: datetime
    expiration_date: datetime | None = None
    credential_subject: CredentialSubject

    @field_validator("issuer")
    @classmethod
    def validate_issuer_is_did(cls, value: str) -> str:
        if not is_did(value):
            raise ValueError(f"issuer {value!r} is not a valid DID.")
        return value

    @field_validator("type")
    @classmethod
    def validate_type_includes_base(cls, value: list[str]) -> list[str]:
        if "VerifiableCredential" not in value:
            raise ValueError(
                "type list must include 'VerifiableCredential' as required by "
                "the W3C Verifiable Credentials Data Model."
            )
        return value

    @property
    def credential_type(self) -> str:
        """The most specific type, e.g. ``"DriverIdentityCredential"``."""
        specific = [t for t in self.type if t != "VerifiableCredential"]
        return specific[-1] if specific else "VerifiableCredential"

    @property
    def subject_id(self) -> str:
        return self.credential_subject.id

    # ------------------------------------------------------------------
    # JWT claims
    # ------------------------------------------------------------------

    def to_jwt_claims(self) -> dict[str, Any]:
        claims: dict[str, Any] = {
            "iss": self.issuer,
            "sub": self.credential_subject.id,
            "nbf": to_timestamp(self.issuance_date),
            "jti": self.id,
            "vc": {
                "@context": list(self.context),
                "type": list(self.type),
                "credentialSubject": dict(self.credential_subject.claims),
            },
        }
        if self.expiration_date is not None:
            claims["exp"] = to_timestamp(self.expiration_date)
        return claims

    @classmethod
    def from_jwt_claims(cls, claims: dict[str, Any]) -> "Credential":
        """Rebuild a credential from a VC-JWT claims set.

        The subject id is taken from ``sub``, falling back to
        ``vc.credentialSubject.id``; if both are present they must agree.

        Raises
        ------
        ValueError
            If a required claim is missing or malformed.
        """
        vc = claims.get("vc")
        if not isinstance(vc, dict):
            raise ValueError("credential token has no 'vc' object")
        raw_subject = vc.get("credentialSubject", {})
        if not isinstance(raw_subject, dict):
            raise ValueError("'vc.credentialSubject' must be an object")

        subject_claims = dict(raw_subject)
        embedded_id = subject_claims.pop("id", None)
        subject_id = claims.get("sub", embedded_id)
        if embedded_id is not None and embedded_id != subject_id:
            raise ValueError(
                f"'sub' {subject_id!r} disagrees with credentialSubject.id {embedded_id!r}"
            )
        if not isinstance(subject_id, str) or not subject_id:
            raise ValueError("credential token has no subject id")

        if "iss" not in claims or "nbf" not in claims:
            raise ValueError("credential token must carry 'iss' and 'nbf'")

        expiration_raw = claims.get("exp")
        return cls(
            context=vc.get("@context", [VC_CONTEXT]),
            id=claims.get("jti") or f"urn:uuid:{uuid.uuid4()}",
            type=vc.get("type", ["VerifiableCredential"]),
            issuer=claims["iss"],
            issuance_date=from_timestamp(claims["nbf"], "nbf"),
            expiration_date=(
                from_timestamp(expiration_raw, "exp") if expiration_raw is not None else None
            ),
            credential_subject=CredentialSubject(id=subject_id, claims=subject_claims),
        )


# ------------------------------------------------------------------
# CredentialIssuer
# ------------------------------------------------------------------


class CredentialIssuer:
    """Builds and signs credential tokens under an issuer identity.

    The subject DID is not resolved at issuance; an unknown subject only
    surfaces when a presentation carrying the credential is verified.

    Parameters
    ----------
    clock:
        Returns the current UTC time; defaults to the system clock.

    Example
    -------
    ::

        issuer = CredentialIssuer()
        token = await issuer.issue(
            issuer_identity,
            subject_did="did:iota:testnet:0xabc...",
            claims={"name": "Joe Bloggs"},
            signer=manager.signer_for(issuer_identity),
        )
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or utc_now

    def build(
        self,
        issuer: ActorIdentity,
        subject_did: str,
        claims: dict[str, Any],
        credential_type: str = DRIVER_CREDENTIAL_TYPE,
    ) -> Credential:
        """Return the unsigned credential :meth:`issue` would sign."""
        return Credential(
            type=["VerifiableCredential", credential_type],
            issuer=issuer.did,
            issuance_date=self._clock(),
            credential_subject=CredentialSubject(id=subject_did, claims=dict(claims)),
        )

    async def issue(
        self,
        issuer: ActorIdentity,
        subject_did: str,
        claims: dict[str, Any],
        signer: Signer,
        *,
        credential_type: str = DRIVER_CREDENTIAL_TYPE,
    ) -> str:
        """Sign a credential about *subject_did* and return its compact token.

        Parameters
        ----------
        issuer:
            The published issuer identity; its fragment names the signing key.
        subject_did:
            DID the claims are about.
        claims:
            Claims embedded in the credential subject.
        signer:
            Signs with the key behind ``issuer.kid``.
        credential_type:
            Specific credential type appended after ``"VerifiableCredential"``.

        Raises
        ------
        StorageError
            If the issuer's fragment is not a method of its own document.
        VaultError
            If signing fails.
        """
        if issuer.document.resolve_method(issuer.fragment) is None:
            raise StorageError(f"fragment {issuer.fragment!r} is not a method of {issuer.did}")

        credential = self.build(issuer, subject_did, claims, credential_type)
        token = await encode_jws(credential.to_jwt_claims(), signer, issuer.kid)
        logger.info(
            "Issued %s %s from %s to %s",
            credential.credential_type, credential.id, issuer.did, subject_did,
        )
        return token


__all__ = [
    "DRIVER_CREDENTIAL_TYPE",
    "VC_CONTEXT",
    "Credential",
    "CredentialIssuer",
    "CredentialSubject",
]
