"""Signing and signature-verification capabilities.

The trust pipeline depends on these two small interfaces and never on a
concrete key store, so issuance, presentation and verification can be
exercised with a fake signer in tests.

- :class:`Signer` — produces signatures for one verification method.
- :class:`SignatureVerifier` — checks a signature against a public JWK.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from driver_identity.crypto.ed25519 import (
    Ed25519KeyManager,
    jwk_thumbprint,
    jwk_to_public_key,
    public_key_to_jwk,
)

EDDSA: str = "EdDSA"


@runtime_checkable
class Signer(Protocol):
    """Signs on behalf of a single key.

    Attributes
    ----------
    algorithm:
        JWS ``alg`` value the signatures conform to.
    public_jwk:
        Public half of the signing key.
    """

    algorithm: str
    public_jwk: dict[str, str]

    async def sign(self, data: bytes) -> bytes:
        """Return the signature over *data*."""
        ...


@runtime_checkable
class SignatureVerifier(Protocol):
    """Verifies a detached signature against a public JWK."""

    def verify(
        self,
        algorithm: str,
        public_jwk: dict[str, object],
        data: bytes,
        signature: bytes,
    ) -> bool:
        """Return ``True`` only if the signature is valid."""
        ...


class Ed25519SignatureVerifier:
    """:class:`SignatureVerifier` for ``EdDSA`` over Ed25519 OKP keys.

    Any other algorithm, or a JWK that is not an Ed25519 key, verifies as
    ``False``.
    """

    def __init__(self, key_manager: Ed25519KeyManager | None = None) -> None:
        self._key_manager = key_manager or Ed25519KeyManager()

    def verify(
        self,
        algorithm: str,
        public_jwk: dict[str, object],
        data: bytes,
        signature: bytes,
    ) -> bool:
        if algorithm != EDDSA:
            return False
        try:
            public_bytes = jwk_to_public_key(public_jwk)
        except ValueError:
            return False
        return self._key_manager.verify(public_bytes, signature, data)


class LocalEd25519Signer:
    """In-process Ed25519 :class:`Signer` holding raw key bytes.

    Used where key custody does not matter (tests, fixtures). Production
    signing goes through :class:`~driver_identity.vault.key_vault.VaultSigner`.
    """

    algorithm = EDDSA

    def __init__(self, private_key: bytes | None = None) -> None:
        self._key_manager = Ed25519KeyManager()
        if private_key is None:
            private_key, public_key = self._key_manager.generate_keypair()
        else:
            public_key = (
                Ed25519PrivateKey.from_private_bytes(private_key)
                .public_key()
                .public_bytes(Encoding.Raw, PublicFormat.Raw)
            )
        self._private_key = private_key
        self.public_jwk: dict[str, str] = public_key_to_jwk(public_key)

    @property
    def fragment(self) -> str:
        """The JWK thumbprint, used as the verification-method fragment."""
        return jwk_thumbprint(self.public_jwk)

    async def sign(self, data: bytes) -> bytes:
        return self._key_manager.sign(self._private_key, data)


__all__ = [
    "EDDSA",
    "Ed25519SignatureVerifier",
    "LocalEd25519Signer",
    "SignatureVerifier",
    "Signer",
]
