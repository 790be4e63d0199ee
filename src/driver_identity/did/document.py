"""DIDDocument — W3C DID Core document model for ledger-published identities.

DID format
----------
::

    did:<method>:<method-specific-id>

Examples::

    did:iota:testnet:0x6ab1c1e7d6b1f0f6c1e1ff0a5c27c1cf4bd4b5e3e2f3a6f3c3c3b1c7f6f6a1b2
    did:example:driver1

An unpublished document carries :data:`UNPUBLISHED_DID` as its id; the
ledger assigns the real DID on publish (see :meth:`DIDDocument.with_id`).

Specification reference
-----------------------
This module follows the W3C DID Core data model:
https://www.w3.org/TR/did-core/#data-model
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

# ------------------------------------------------------------------
# DID syntax
# ------------------------------------------------------------------

DID_CONTEXT: str = "https://www.w3.org/ns/did/v1"

UNPUBLISHED_DID: str = "did:iota:0x" + "0" * 64

_DID_PATTERN = re.compile(
    r"^did:(?P<method>[a-z0-9]+):(?P<specific>[A-Za-z0-9._%\-]+(?::[A-Za-z0-9._%\-]+)*)$"
)


def parse_did(did: str) -> tuple[str, str]:
    """Parse a DID string into ``(method, method_specific_id)``.

    Raises
    ------
    ValueError
        If *did* is not a syntactically valid DID.
    """
    match = _DID_PATTERN.match(did)
    if not match:
        raise ValueError(
            f"Malformed DID {did!r}. Expected format: did:<method>:<method-specific-id>."
        )
    return match.group("method"), match.group("specific")


def is_did(value: object) -> bool:
    """Return ``True`` if *value* is a syntactically valid DID string."""
    return isinstance(value, str) and _DID_PATTERN.match(value) is not None


def split_did_url(did_url: str) -> tuple[str, str]:
    """Split ``<did>#<fragment>`` into ``(did, fragment)``.

    Raises
    ------
    ValueError
        If the DID part is malformed or the fragment is missing/empty.
    """
    did, sep, fragment = did_url.partition("#")
    if not sep or not fragment:
        raise ValueError(f"DID URL {did_url!r} has no fragment.")
    parse_did(did)
    return did, fragment


# ------------------------------------------------------------------
# Verification method
# ------------------------------------------------------------------

_ALLOWED_VERIFICATION_TYPES = frozenset({"JsonWebKey2020", "JsonWebKey"})


@dataclass(frozen=True)
class VerificationMethod:
    """A public key attached to a DID document.

    Parameters
    ----------
    id:
        The verification method DID URL (``<did>#<fragment>``).
    type:
        ``"JsonWebKey2020"`` (or the newer ``"JsonWebKey"``).
    controller:
        The DID that controls this key.
    public_key_jwk:
        Public key as a JWK; private members are rejected.
    """

    id: str
    type: str
    controller: str
    public_key_jwk: dict[str, Any]

    def __post_init__(self) -> None:
        if self.type not in _ALLOWED_VERIFICATION_TYPES:
            raise ValueError(
                f"Unsupported verification method type {self.type!r}. "
                f"Allowed: {sorted(_ALLOWED_VERIFICATION_TYPES)}"
            )
        split_did_url(self.id)
        if not self.controller:
            raise ValueError("VerificationMethod.controller must not be empty.")
        if not self.public_key_jwk:
            raise ValueError("VerificationMethod.public_key_jwk must not be empty.")
        if "d" in self.public_key_jwk:
            raise ValueError("VerificationMethod.public_key_jwk must not contain private key material.")

    @property
    def fragment(self) -> str:
        """The fragment naming this method within its document."""
        return self.id.partition("#")[2]

    def to_dict(self) -> dict[str, object]:
        """Serialize to a W3C-compatible plain dictionary."""
        return {
            "id": self.id,
            "type": self.type,
            "controller": self.controller,
            "publicKeyJwk": dict(self.public_key_jwk),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerificationMethod":
        return cls(
            id=data["id"],
            type=data["type"],
            controller=data["controller"],
            public_key_jwk=dict(data["publicKeyJwk"]),
        )


# ------------------------------------------------------------------
# DID Document (Pydantic v2)
# ------------------------------------------------------------------


class DIDDocument(BaseModel):
    """A W3C DID Core document listing an actor's verification methods.

    Parameters
    ----------
    context:
        JSON-LD context URIs. Defaults to the W3C DID v1 context.
    id:
        The DID subject identifier.
    controller:
        DID(s) authorized to change this document. Defaults to ``id``.
    verification_method:
        Public keys associated with this DID.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    context: list[str] = Field(default_factory=lambda: [DID_CONTEXT])
    id: str
    controller: list[str] = Field(default_factory=list)
    verification_method: list[VerificationMethod] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_did_format(cls, value: str) -> str:
        parse_did(value)
        return value

    @field_validator("context")
    @classmethod
    def validate_context_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("context must contain at least one URI.")
        return value

    @model_validator(mode="after")
    def validate_methods_belong_to_document(self) -> "DIDDocument":
        """Every method id must be a DID URL of this document, with unique fragments."""
        fragments: set[str] = set()
        for method in self.verification_method:
            method_did, fragment = split_did_url(method.id)
            if method_did != self.id:
                raise ValueError(
                    f"verification method {method.id!r} does not belong to {self.id!r}."
                )
            if fragment in fragments:
                raise ValueError(f"duplicate verification method fragment {fragment!r}.")
            fragments.add(fragment)
        return self

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def unpublished(cls, fragment: str, public_jwk: dict[str, Any]) -> "DIDDocument":
        """Build a not-yet-published document holding one JWK method."""
        return cls(
            id=UNPUBLISHED_DID,
            verification_method=[
                VerificationMethod(
                    id=f"{UNPUBLISHED_DID}#{fragment}",
                    type="JsonWebKey2020",
                    controller=UNPUBLISHED_DID,
                    public_key_jwk=dict(public_jwk),
                )
            ],
        )

    @property
    def is_published(self) -> bool:
        return self.id != UNPUBLISHED_DID

    def with_id(self, did: str) -> "DIDDocument":
        """Return a copy re-keyed to *did*.

        Method ids and controllers that referenced the old DID are rewritten.
        """
        old = self.id

        def _rebind(value: str) -> str:
            return did + value[len(old):] if value == old or value.startswith(old + "#") else value

        methods = [
            VerificationMethod(
                id=_rebind(vm.id),
                type=vm.type,
                controller=_rebind(vm.controller),
                public_key_jwk=dict(vm.public_key_jwk),
            )
            for vm in self.verification_method
        ]
        return DIDDocument(
            context=list(self.context),
            id=did,
            controller=[_rebind(c) for c in self.controller],
            verification_method=methods,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve_method(self, reference: str) -> VerificationMethod | None:
        """Return the method named by a full DID URL or a bare fragment.

        Parameters
        ----------
        reference:
            ``"<did>#<fragment>"``, ``"#<fragment>"`` or ``"<fragment>"``.

        Returns
        -------
        VerificationMethod | None
            The matching method, or ``None`` if not found (including a DID
            URL that names a different document).
        """
        if "#" in reference:
            did, _, fragment = reference.partition("#")
            if did and did != self.id:
                return None
        else:
            fragment = reference
        for method in self.verification_method:
            if method.fragment == fragment:
                return method
        return None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "@context": list(self.context),
            "id": self.id,
            "verificationMethod": [vm.to_dict() for vm in self.verification_method],
        }
        if self.controller:
            data["controller"] = list(self.controller)
        return data

    def to_json(self) -> str:
        """Serialize this document to a pretty-printed JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DIDDocument":
        """Build a document from its W3C JSON form.

        Raises
        ------
        ValueError
            If a required member is missing or the document fails validation.
        """
        try:
            controller = data.get("controller", [])
            if isinstance(controller, str):
                controller = [controller]
            return cls(
                context=data.get("@context", [DID_CONTEXT]),
                id=data["id"],
                controller=controller,
                verification_method=[
                    VerificationMethod.from_dict(vm) for vm in data.get("verificationMethod", [])
                ],
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Invalid DID document structure: {exc!r}") from exc

    @classmethod
    def from_json(cls, json_str: str) -> "DIDDocument":
        """Deserialize a DIDDocument from a JSON string.

        Raises
        ------
        ValueError
            If the JSON is malformed or the document fails validation.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("DID document JSON must be an object.")
        return cls.from_dict(data)


__all__ = [
    "DID_CONTEXT",
    "UNPUBLISHED_DID",
    "DIDDocument",
    "VerificationMethod",
    "is_did",
    "parse_did",
    "split_did_url",
]
