"""Tests for driver_identity.did.document."""
from __future__ import annotations

import pytest

from driver_identity.crypto.signing import LocalEd25519Signer
from driver_identity.did.document import (
    UNPUBLISHED_DID,
    DIDDocument,
    VerificationMethod,
    is_did,
    parse_did,
    split_did_url,
)

PUBLISHED = "did:iota:testnet:0x" + "ab" * 32


@pytest.fixture()
def signer() -> LocalEd25519Signer:
    return LocalEd25519Signer()


@pytest.fixture()
def unpublished(signer: LocalEd25519Signer) -> DIDDocument:
    return DIDDocument.unpublished(signer.fragment, signer.public_jwk)


class TestDidSyntax:
    def test_parse_iota_did(self) -> None:
        assert parse_did(PUBLISHED) == ("iota", "testnet:0x" + "ab" * 32)

    def test_parse_example_did(self) -> None:
        assert parse_did("did:example:driver1") == ("example", "driver1")

    @pytest.mark.parametrize("value", ["", "did:", "did:example", "urn:example:1", "did:Ex:1"])
    def test_rejects_malformed(self, value: str) -> None:
        assert not is_did(value)
        with pytest.raises(ValueError):
            parse_did(value)

    def test_is_did_rejects_non_strings(self) -> None:
        assert not is_did(42)

    def test_split_did_url(self) -> None:
        assert split_did_url("did:example:driver1#key-1") == ("did:example:driver1", "key-1")

    def test_split_did_url_requires_fragment(self) -> None:
        with pytest.raises(ValueError, match="no fragment"):
            split_did_url("did:example:driver1")


class TestVerificationMethod:
    def test_rejects_private_key_material(self, signer: LocalEd25519Signer) -> None:
        with pytest.raises(ValueError, match="private key"):
            VerificationMethod(
                id="did:example:a#k",
                type="JsonWebKey2020",
                controller="did:example:a",
                public_key_jwk={**signer.public_jwk, "d": "secret"},
            )

    def test_rejects_unknown_type(self, signer: LocalEd25519Signer) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            VerificationMethod(
                id="did:example:a#k",
                type="RsaVerificationKey2018",
                controller="did:example:a",
                public_key_jwk=signer.public_jwk,
            )

    def test_fragment(self, signer: LocalEd25519Signer) -> None:
        method = VerificationMethod(
            id="did:example:a#k1",
            type="JsonWebKey2020",
            controller="did:example:a",
            public_key_jwk=signer.public_jwk,
        )
        assert method.fragment == "k1"


class TestDIDDocument:
    def test_unpublished_document(self, unpublished: DIDDocument, signer: LocalEd25519Signer) -> None:
        assert unpublished.id == UNPUBLISHED_DID
        assert not unpublished.is_published
        assert unpublished.verification_method[0].fragment == signer.fragment

    def test_with_id_rebinds_methods(self, unpublished: DIDDocument, signer: LocalEd25519Signer) -> None:
        published = unpublished.with_id(PUBLISHED)
        assert published.is_published
        method = published.verification_method[0]
        assert method.id == f"{PUBLISHED}#{signer.fragment}"
        assert method.controller == PUBLISHED

    def test_resolve_method_accepts_all_reference_forms(
        self, unpublished: DIDDocument, signer: LocalEd25519Signer
    ) -> None:
        document = unpublished.with_id(PUBLISHED)
        expected = document.verification_method[0]
        assert document.resolve_method(signer.fragment) == expected
        assert document.resolve_method(f"#{signer.fragment}") == expected
        assert document.resolve_method(f"{PUBLISHED}#{signer.fragment}") == expected

    def test_resolve_method_rejects_other_document(
        self, unpublished: DIDDocument, signer: LocalEd25519Signer
    ) -> None:
        document = unpublished.with_id(PUBLISHED)
        assert document.resolve_method(f"did:example:other#{signer.fragment}") is None
        assert document.resolve_method("missing") is None

    def test_rejects_foreign_method(self, signer: LocalEd25519Signer) -> None:
        method = VerificationMethod(
            id="did:example:other#k",
            type="JsonWebKey2020",
            controller="did:example:other",
            public_key_jwk=signer.public_jwk,
        )
        with pytest.raises(ValueError, match="does not belong"):
            DIDDocument(id="did:example:mine", verification_method=[method])

    def test_rejects_duplicate_fragments(self, signer: LocalEd25519Signer) -> None:
        method = VerificationMethod(
            id="did:example:mine#k",
            type="JsonWebKey2020",
            controller="did:example:mine",
            public_key_jwk=signer.public_jwk,
        )
        with pytest.raises(ValueError, match="duplicate"):
            DIDDocument(id="did:example:mine", verification_method=[method, method])

    def test_json_round_trip(self, unpublished: DIDDocument) -> None:
        document = unpublished.with_id(PUBLISHED)
        assert DIDDocument.from_json(document.to_json()) == document

    def test_to_dict_uses_w3c_member_names(self, unpublished: DIDDocument) -> None:
        data = unpublished.with_id(PUBLISHED).to_dict()
        assert data["@context"] == ["https://www.w3.org/ns/did/v1"]
        assert "publicKeyJwk" in data["verificationMethod"][0]

    @pytest.mark.parametrize("payload", ["not json", "[]", '{"verificationMethod": []}'])
    def test_from_json_rejects_invalid(self, payload: str) -> None:
        with pytest.raises(ValueError):
            DIDDocument.from_json(payload)
