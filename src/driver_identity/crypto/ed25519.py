"""Ed25519 primitives and their JSON Web Key (JWK) form.

A thin wrapper around the ``cryptography`` package's Ed25519 primitives:
generate a keypair, sign bytes, verify a signature. Keys cross module
boundaries either as raw 32-byte values or as OKP JWKs (RFC 8037)::

    {"kty": "OKP", "crv": "Ed25519", "x": "<base64url public key>"}
"""
from __future__ import annotations

import base64
import hashlib
import json
import re

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

_B64URL_PATTERN = re.compile(r"[A-Za-z0-9_-]*")


def b64url_encode(data: bytes) -> str:
    """Unpadded base64url encoding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(encoded: str) -> bytes:
    """Strict unpadded base64url decoding.

    Only the canonical encoding is accepted: unused bits in the final
    character must be zero, so no two strings decode to the same bytes.

    Raises
    ------
    ValueError
        If *encoded* contains characters outside the base64url alphabet, has
        an impossible length, or is not the canonical encoding of its bytes.
    """
    if not _B64URL_PATTERN.fullmatch(encoded):
        raise ValueError("not an unpadded base64url string")
    if len(encoded) % 4 == 1:
        raise ValueError("base64url string has an impossible length")
    padded = encoded + "=" * (-len(encoded) % 4)
    decoded = base64.urlsafe_b64decode(padded)
    if b64url_encode(decoded) != encoded:
        raise ValueError("base64url string has non-zero trailing bits")
    return decoded


class Ed25519KeyManager:
    """Ed25519 key management: generate, sign, and verify.

    Example
    -------
    ::

        manager = Ed25519KeyManager()
        private_bytes, public_bytes = manager.generate_keypair()
        signature = manager.sign(private_bytes, b"hello world")
        assert manager.verify(public_bytes, signature, b"hello world")
    """

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Generate a new Ed25519 keypair.

        Returns
        -------
        tuple[bytes, bytes]
            A ``(private_key_bytes, public_key_bytes)`` pair, both 32 bytes.
        """
        private_key = Ed25519PrivateKey.generate()
        private_bytes = private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        public_bytes = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return private_bytes, public_bytes

    def sign(self, private_key_bytes: bytes, data: bytes) -> bytes:
        """Sign *data* with a raw Ed25519 private key; returns 64 bytes."""
        private_key = Ed25519PrivateKey.from_private_bytes(private_key_bytes)
        return private_key.sign(data)

    def verify(self, public_key_bytes: bytes, signature: bytes, data: bytes) -> bool:
        """Return ``True`` if *signature* over *data* verifies under the public key.

        Malformed keys or signatures verify as ``False``.
        """
        try:
            public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
            public_key.verify(signature, data)
        except (InvalidSignature, ValueError):
            return False
        return True


# ------------------------------------------------------------------
# JWK helpers
# ------------------------------------------------------------------


def public_key_to_jwk(public_key_bytes: bytes) -> dict[str, str]:
    """Encode a raw Ed25519 public key as an OKP JWK."""
    return {"kty": "OKP", "crv": "Ed25519", "x": b64url_encode(public_key_bytes)}


def jwk_to_public_key(jwk: dict[str, object]) -> bytes:
    """Decode the raw public key from an Ed25519 OKP JWK.

    Raises
    ------
    ValueError
        If the JWK is not an Ed25519 OKP key or ``x`` is not 32 bytes.
    """
    if jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
        raise ValueError(
            f"Unsupported JWK (kty={jwk.get('kty')!r}, crv={jwk.get('crv')!r}); "
            "only OKP/Ed25519 keys are supported."
        )
    x = jwk.get("x")
    if not isinstance(x, str):
        raise ValueError("JWK is missing the 'x' member.")
    public_bytes = b64url_decode(x)
    if len(public_bytes) != 32:
        raise ValueError(f"Ed25519 public key must be 32 bytes, got {len(public_bytes)}.")
    return public_bytes


def jwk_thumbprint(jwk: dict[str, object]) -> str:
    """Compute the RFC 7638 SHA-256 thumbprint of an OKP JWK (base64url)."""
    required = {"crv": jwk["crv"], "kty": jwk["kty"], "x": jwk["x"]}
    canonical = json.dumps(required, sort_keys=True, separators=(",", ":"))
    return b64url_encode(hashlib.sha256(canonical.encode("utf-8")).digest())


__all__ = [
    "Ed25519KeyManager",
    "b64url_decode",
    "b64url_encode",
    "jwk_thumbprint",
    "jwk_to_public_key",
    "public_key_to_jwk",
]
