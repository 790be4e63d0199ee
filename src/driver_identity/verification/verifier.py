"""PresentationVerifier — fail-closed validation of presentation tokens.

Verification flow
-----------------
The steps run in this order; each assumes the previous ones held.

1. Parse the presentation token and read the claimed holder (``iss``)
   without trusting it yet.
2. Resolve the holder's DID document.
3. Verify the presentation signature against the holder's verification
   method, then require ``exp`` to lie in the future and ``nbf``
   not to.
4. Parse every embedded credential token and read its claimed issuer.
5. Resolve all distinct issuer DIDs in one batched call.
6. For each credential: verify its signature against its issuer's document,
   check its validity window, and require ``sub`` to equal the holder
   (always-subject binding).
7. Stop at the first failing credential (:attr:`FailurePolicy.FIRST_ERROR`)
   or validate them all and raise a single
   :class:`~driver_identity.errors.CredentialValidationErrors`
   (:attr:`FailurePolicy.ALL_ERRORS`).
8. Return the holder and the number of credentials validated.

Every failure is an exception; there is no ``valid=False`` outcome.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from driver_identity.credentials.credential import Credential, utc_now
from driver_identity.credentials.presentation import Presentation
from driver_identity.crypto.jws import DecodedJws, decode_jws
from driver_identity.crypto.signing import Ed25519SignatureVerifier, SignatureVerifier
from driver_identity.did.document import DIDDocument, split_did_url
from driver_identity.did.resolver import Resolver
from driver_identity.errors import (
    CredentialNotYetValid,
    CredentialValidationErrors,
    ExpiredCredential,
    ExpiredPresentation,
    HolderBindingMismatch,
    IdentityServiceError,
    MalformedToken,
    PresentationNotYetValid,
    SignatureInvalid,
    VerificationError,
)

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """How per-credential failures are reported."""

    FIRST_ERROR = "first_error"
    ALL_ERRORS = "all_errors"


@dataclass(frozen=True)
class VerificationOutcome:
    """The result of a successful verification.

    Parameters
    ----------
    valid:
        Always ``True``; failures raise instead.
    holder:
        DID of the presentation holder.
    credential_count:
        Number of embedded credentials validated.
    """

    valid: bool
    holder: str
    credential_count: int

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "holder": self.holder,
            "credential_count": self.credential_count,
        }


@dataclass(frozen=True)
class _ParsedCredential:
    index: int
    jws: DecodedJws
    credential: Credential


class PresentationVerifier:
    """Verify presentation tokens and the credentials they embed.

    Parameters
    ----------
    resolver:
        Resolves the holder and issuer DIDs.
    signature_verifier:
        Checks raw signatures; defaults to Ed25519.
    failure_policy:
        Whether to stop at the first invalid credential or collect them all.
    clock:
        Returns the current UTC time; defaults to the system clock.

    Example
    -------
    ::

        verifier = PresentationVerifier(Resolver(ledger))
        outcome = await verifier.verify(vp_token)
        print(outcome.holder, outcome.credential_count)
    """

    def __init__(
        self,
        resolver: Resolver,
        signature_verifier: SignatureVerifier | None = None,
        *,
        failure_policy: FailurePolicy = FailurePolicy.FIRST_ERROR,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._resolver = resolver
        self._signature_verifier = signature_verifier or Ed25519SignatureVerifier()
        self._failure_policy = FailurePolicy(failure_policy)
        self._clock = clock or utc_now

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    async def verify(self, token: str) -> VerificationOutcome:
        """Verify *token* end to end.

        Raises
        ------
        MalformedToken
            If the presentation cannot be parsed.
        ResolutionError
            If the holder or any issuer DID cannot be resolved.
        SignatureInvalid
            If the presentation signature does not verify.
        ExpiredPresentation
            If the presentation's ``exp`` is not in the future.
        PresentationNotYetValid
            If the presentation's ``nbf`` lies in the future.
        VerificationError
            The first credential failure (fail-fast), or
            :class:`~driver_identity.errors.CredentialValidationErrors`.
        """
        try:
            outcome = await self._verify(token)
        except IdentityServiceError as exc:
            logger.warning("Presentation rejected: %s: %s", type(exc).__name__, exc)
            raise
        logger.info(
            "Presentation from %s verified with %d credential(s)",
            outcome.holder, outcome.credential_count,
        )
        return outcome

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _verify(self, token: str) -> VerificationOutcome:
        # 1. syntactic parse, holder not yet trusted
        vp_jws = decode_jws(token)
        presentation = self._parse_presentation(vp_jws)
        holder = presentation.holder

        # 2-3. holder document, signature, then validity window
        holder_document = await self._resolver.resolve(holder)
        self._check_signature(vp_jws, holder, holder_document, "presentation")
        now = self._clock()
        if presentation.expires_at <= now:
            raise ExpiredPresentation(holder, presentation.expires_at.isoformat())
        if presentation.issued_at > now:
            raise PresentationNotYetValid(holder, presentation.issued_at.isoformat())

        # 4. embedded credentials, issuers not yet trusted
        errors: list[tuple[int, VerificationError]] = []
        parsed: list[_ParsedCredential] = []
        for index, credential_token in enumerate(presentation.credential_tokens):
            try:
                parsed.append(self._parse_credential(index, credential_token))
            except VerificationError as exc:
                self._record(errors, index, exc)

        # 5. one batched resolution for every distinct issuer
        documents: dict[str, DIDDocument] = {}
        if parsed:
            documents = await self._resolver.resolve_many(
                [item.credential.issuer for item in parsed]
            )

        # 6. per-credential validation
        for item in parsed:
            try:
                self._check_credential(item, documents[item.credential.issuer], holder, now)
            except VerificationError as exc:
                self._record(errors, item.index, exc)

        # 7. all-errors aggregation
        if errors:
            raise CredentialValidationErrors(sorted(errors, key=lambda pair: pair[0]))

        return VerificationOutcome(
            valid=True,
            holder=holder,
            credential_count=len(presentation.credential_tokens),
        )

    def _record(
        self,
        errors: list[tuple[int, VerificationError]],
        index: int,
        error: VerificationError,
    ) -> None:
        if self._failure_policy is FailurePolicy.FIRST_ERROR:
            raise error
        errors.append((index, error))

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_presentation(jws: DecodedJws) -> Presentation:
        try:
            return Presentation.from_jwt_claims(jws.claims)
        except ValueError as exc:
            raise MalformedToken(f"invalid presentation: {exc}") from exc

    @staticmethod
    def _parse_credential(index: int, token: str) -> _ParsedCredential:
        try:
            jws = decode_jws(token)
        except MalformedToken as exc:
            raise MalformedToken(f"credential {index}: {exc}") from exc
        try:
            credential = Credential.from_jwt_claims(jws.claims)
        except ValueError as exc:
            raise MalformedToken(f"credential {index}: {exc}") from exc
        return _ParsedCredential(index=index, jws=jws, credential=credential)

    def _check_signature(
        self,
        jws: DecodedJws,
        signer_did: str,
        document: DIDDocument,
        label: str,
    ) -> None:
        """Require *jws* to be signed by a method of *signer_did*'s document."""
        try:
            kid_did, fragment = split_did_url(jws.kid)
        except ValueError as exc:
            raise SignatureInvalid(f"{label} kid {jws.kid!r} is not a DID URL") from exc
        if kid_did != signer_did:
            raise SignatureInvalid(
                f"{label} signed with {jws.kid!r}, which does not belong to {signer_did}"
            )
        method = document.resolve_method(fragment)
        if method is None:
            raise SignatureInvalid(f"{signer_did} has no verification method #{fragment}")
        if not self._signature_verifier.verify(
            jws.algorithm, dict(method.public_key_jwk), jws.signing_input, jws.signature
        ):
            raise SignatureInvalid(f"{label} signature does not verify against {jws.kid}")

    def _check_credential(
        self,
        item: _ParsedCredential,
        issuer_document: DIDDocument,
        holder: str,
        now: datetime,
    ) -> None:
        credential = item.credential
        label = f"credential {item.index}"
        self._check_signature(item.jws, credential.issuer, issuer_document, label)

        if credential.expiration_date is not None and credential.expiration_date <= now:
            raise ExpiredCredential(
                f"{label} from {credential.issuer} expired at "
                f"{credential.expiration_date.isoformat()}"
            )
        if credential.issuance_date > now:
            raise CredentialNotYetValid(
                f"{label} from {credential.issuer} is not valid before "
                f"{credential.issuance_date.isoformat()}"
            )
        if credential.subject_id != holder:
            raise HolderBindingMismatch(credential.subject_id, holder)


__all__ = ["FailurePolicy", "PresentationVerifier", "VerificationOutcome"]
