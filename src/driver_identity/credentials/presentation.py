"""Verifiable Presentations — holder-signed bundles of credential tokens.

A presentation proves that the holder controls the key behind its DID at
the time of presenting. Unlike credentials, it carries a bounded validity
window: ``exp = nbf + validity`` (ten minutes by default).

Claim mapping
-------------
``iss``      holder DID (repeated as ``vp.holder``)
``nbf``      issued-at, UNIX seconds
``exp``      expiry, UNIX seconds (required)
``jti``      ``urn:uuid:`` identifier
``vp``       ``@context``, ``type``, ``holder``, ``verifiableCredential``
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field, field_validator

from driver_identity.credentials.credential import (
    VC_CONTEXT,
    from_timestamp,
    to_timestamp,
    utc_now,
)
from driver_identity.crypto.jws import encode_jws
from driver_identity.crypto.signing import Signer
from driver_identity.did.document import is_did
from driver_identity.errors import CredentialNotFound, InternalError, StorageError
from driver_identity.identity.manager import ActorIdentity

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY: timedelta = timedelta(minutes=10)


class Presentation(BaseModel):
    """A W3C Verifiable Presentation in its JWT encoding.

    Parameters
    ----------
    holder:
        DID of the presenting actor.
    credential_tokens:
        Compact credential tokens, embedded verbatim.
    issued_at:
        UTC datetime the presentation was created.
    expires_at:
        UTC datetime after which the presentation is rejected.

    The model does not judge the validity window; the verifier checks
    ``exp`` and ``nbf`` once the holder's signature has been verified.
    """

    model_config = {"frozen": True}

    context: list[str] = Field(default_factory=lambda: [VC_CONTEXT])
    id: str = Field(default_factory=lambda: f"urn:uuid:{uuid.uuid4()}")
    type: list[str] = Field(default_factory=lambda: ["VerifiablePresentation"])
    holder: str
    credential_tokens: list[str] = Field(default_factory=list)
    issued_at: datetime
    expires_at: datetime

    @field_validator("holder")
    @classmethod
    def validate_holder_is_did(cls, value: str) -> str:
        if not is_did(value):
            raise ValueError(f"holder {value!r} is not a valid DID.")
        return value

    def to_jwt_claims(self) -> dict[str, Any]:
        return {
            "iss": self.holder,
            "nbf": to_timestamp(self.issued_at),
            "exp": to_timestamp(self.expires_at),
            "jti": self.id,
            "vp": {
                "@context": list(self.context),
                "type": list(self.type),
                "holder": self.holder,
                "verifiableCredential": list(self.credential_tokens),
            },
        }

    @classmethod
    def from_jwt_claims(cls, claims: dict[str, Any]) -> "Presentation":
        """Rebuild a presentation from a VP-JWT claims set.

        Raises
        ------
        ValueError
            If ``iss``, ``nbf``, ``exp`` or ``vp`` is missing or malformed, or
            ``vp.holder`` disagrees with ``iss``.
        """
        vp = claims.get("vp")
        if not isinstance(vp, dict):
            raise ValueError("presentation token has no 'vp' object")
        for required in ("iss", "nbf", "exp"):
            if required not in claims:
                raise ValueError(f"presentation token has no {required!r} claim")

        holder = claims["iss"]
        if vp.get("holder", holder) != holder:
            raise ValueError(f"'vp.holder' {vp['holder']!r} disagrees with 'iss' {holder!r}")

        tokens = vp.get("verifiableCredential", [])
        if not isinstance(tokens, list) or not all(isinstance(t, str) for t in tokens):
            raise ValueError("'vp.verifiableCredential' must be a list of compact tokens")

        return cls(
            context=vp.get("@context", [VC_CONTEXT]),
            id=claims.get("jti") or f"urn:uuid:{uuid.uuid4()}",
            type=vp.get("type", ["VerifiablePresentation"]),
            holder=holder,
            credential_tokens=tokens,
            issued_at=from_timestamp(claims["nbf"], "nbf"),
            expires_at=from_timestamp(claims["exp"], "exp"),
        )


class PresentationBuilder:
    """Wraps credential tokens into a signed presentation under a holder.

    Parameters
    ----------
    validity:
        How long a presentation stays valid after it is built.
    clock:
        Returns the current UTC time; defaults to the system clock.
    """

    def __init__(
        self,
        validity: timedelta = DEFAULT_VALIDITY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if validity <= timedelta(0):
            raise ValueError("validity must be positive.")
        self._validity = validity
        self._clock = clock or utc_now

    @property
    def validity(self) -> timedelta:
        return self._validity

    async def present(
        self,
        holder: ActorIdentity,
        credential_tokens: list[str],
        signer: Signer,
    ) -> str:
        """Sign a presentation of *credential_tokens* by *holder*.

        Raises
        ------
        CredentialNotFound
            If *credential_tokens* is empty.
        StorageError
            If the holder's fragment is not a method of its own document.
        InternalError
            If the expiry cannot be represented.
        VaultError
            If signing fails.
        """
        if not credential_tokens:
            raise CredentialNotFound(holder.role.value)
        if holder.document.resolve_method(holder.fragment) is None:
            raise StorageError(f"fragment {holder.fragment!r} is not a method of {holder.did}")

        issued_at = self._clock()
        try:
            expires_at = issued_at + self._validity
            presentation = Presentation(
                holder=holder.did,
                credential_tokens=list(credential_tokens),
                issued_at=issued_at,
                expires_at=expires_at,
            )
            claims = presentation.to_jwt_claims()
        except (OverflowError, OSError) as exc:
            raise InternalError(f"presentation expiry is not representable: {exc}") from exc

        token = await encode_jws(claims, signer, holder.kid)
        logger.info(
            "Created presentation %s by %s with %d credential(s), expires %s",
            presentation.id, holder.did, len(credential_tokens), expires_at.isoformat(),
        )
        return token


__all__ = ["DEFAULT_VALIDITY", "Presentation", "PresentationBuilder"]
