"""Tests for driver_identity.crypto.jws."""
from __future__ import annotations

import json

import pytest

from driver_identity.crypto.ed25519 import b64url_decode, b64url_encode
from driver_identity.crypto.jws import decode_jws, encode_jws
from driver_identity.crypto.signing import EDDSA, Ed25519SignatureVerifier, LocalEd25519Signer
from driver_identity.errors import MalformedToken, VaultError

KID = "did:example:issuer1#key-1"


class _FailingSigner:
    algorithm = EDDSA
    public_jwk: dict[str, str] = {}

    async def sign(self, data: bytes) -> bytes:
        raise RuntimeError("hardware token unplugged")


class TestEncodeJws:
    @pytest.mark.asyncio
    async def test_token_has_three_segments(self) -> None:
        token = await encode_jws({"iss": "did:example:issuer1"}, LocalEd25519Signer(), KID)
        assert token.count(".") == 2

    @pytest.mark.asyncio
    async def test_header_members(self) -> None:
        token = await encode_jws({"iss": "did:example:issuer1"}, LocalEd25519Signer(), KID)
        header = json.loads(b64url_decode(token.split(".")[0]))
        assert header == {"alg": "EdDSA", "kid": KID, "typ": "JWT"}

    @pytest.mark.asyncio
    async def test_signature_covers_signing_input(self) -> None:
        signer = LocalEd25519Signer()
        token = await encode_jws({"n": 1}, signer, KID)
        decoded = decode_jws(token)
        assert Ed25519SignatureVerifier().verify(
            EDDSA, signer.public_jwk, decoded.signing_input, decoded.signature
        )

    @pytest.mark.asyncio
    async def test_signer_failure_becomes_vault_error(self) -> None:
        with pytest.raises(VaultError, match="hardware token unplugged"):
            await encode_jws({"n": 1}, _FailingSigner(), KID)


class TestDecodeJws:
    @pytest.mark.asyncio
    async def test_decodes_claims_and_kid(self) -> None:
        token = await encode_jws({"iss": "did:example:issuer1", "n": 2}, LocalEd25519Signer(), KID)
        decoded = decode_jws(token)
        assert decoded.claims == {"iss": "did:example:issuer1", "n": 2}
        assert decoded.kid == KID
        assert decoded.algorithm == EDDSA
        assert len(decoded.signature) == 64

    def test_rejects_wrong_segment_count(self) -> None:
        with pytest.raises(MalformedToken, match="3 dot-separated parts"):
            decode_jws("a.b")

    def test_rejects_non_base64_segment(self) -> None:
        with pytest.raises(MalformedToken):
            decode_jws("!!!.e30.AAAA")

    def test_rejects_non_json_payload(self) -> None:
        token = f"{b64url_encode(b'{}')}.{b64url_encode(b'not json')}.AAAA"
        with pytest.raises(MalformedToken):
            decode_jws(token)

    def test_rejects_non_object_payload(self) -> None:
        token = f"{b64url_encode(b'{}')}.{b64url_encode(b'[1, 2]')}.AAAA"
        with pytest.raises(MalformedToken, match="JSON objects"):
            decode_jws(token)
