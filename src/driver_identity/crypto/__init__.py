"""driver_identity.crypto — Ed25519 keys, signing capabilities, and compact JWS.

Submodules
----------
ed25519
    Ed25519KeyManager, JWK conversion and RFC 7638 thumbprints.
signing
    Signer / SignatureVerifier interfaces and their Ed25519 implementations.
jws
    encode_jws / decode_jws for the compact token format.
"""
from __future__ import annotations

from driver_identity.crypto.ed25519 import (
    Ed25519KeyManager,
    jwk_thumbprint,
    jwk_to_public_key,
    public_key_to_jwk,
)
from driver_identity.crypto.jws import DecodedJws, decode_jws, encode_jws
from driver_identity.crypto.signing import (
    EDDSA,
    Ed25519SignatureVerifier,
    LocalEd25519Signer,
    SignatureVerifier,
    Signer,
)

__all__ = [
    "EDDSA",
    "DecodedJws",
    "Ed25519KeyManager",
    "Ed25519SignatureVerifier",
    "LocalEd25519Signer",
    "SignatureVerifier",
    "Signer",
    "decode_jws",
    "encode_jws",
    "jwk_thumbprint",
    "jwk_to_public_key",
    "public_key_to_jwk",
]
