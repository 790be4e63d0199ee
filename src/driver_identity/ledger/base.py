"""Ledger and faucet interfaces.

The ledger stores published DID documents and charges gas for writes; the
faucet funds a sender address with test tokens. Both are external
collaborators: this package only depends on the two abstract classes below.
"""
from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod

from driver_identity.crypto.ed25519 import jwk_to_public_key
from driver_identity.crypto.signing import Signer
from driver_identity.did.document import DIDDocument

GAS_BUDGET: int = 50_000_000

# Ed25519 signature scheme flag, prepended to the public key before hashing
_ED25519_SCHEME_FLAG: bytes = b"\x00"


def sender_address(public_jwk: dict[str, object]) -> str:
    """Derive the ledger address controlled by an Ed25519 public JWK.

    ``0x`` + hex(BLAKE2b-256(flag || public key)).
    """
    public_bytes = jwk_to_public_key(public_jwk)
    digest = hashlib.blake2b(_ED25519_SCHEME_FLAG + public_bytes, digest_size=32).hexdigest()
    return f"0x{digest}"


class Ledger(ABC):
    """Read/write access to published DID documents."""

    @abstractmethod
    async def publish_did_document(
        self,
        document: DIDDocument,
        *,
        sender: Signer,
        gas_budget: int = GAS_BUDGET,
    ) -> DIDDocument:
        """Publish an unpublished *document*, paid for by *sender*.

        Returns
        -------
        DIDDocument
            The published document, carrying the DID the ledger assigned.

        Raises
        ------
        LedgerError
            If the write is rejected or cannot be submitted.
        """

    @abstractmethod
    async def resolve_did(self, did: str) -> DIDDocument | None:
        """Return the document published under *did*, or ``None``."""

    @abstractmethod
    async def resolve_dids(self, dids: list[str]) -> dict[str, DIDDocument]:
        """Look up several DIDs in one round trip; unknown DIDs are omitted."""

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Return the balance held by *address* (0 for unknown addresses)."""

    async def aclose(self) -> None:
        """Release network resources; the default holds none."""


class Faucet(ABC):
    """Funding service for fresh sender addresses."""

    @abstractmethod
    async def request_funds(self, address: str) -> None:
        """Fund *address*.

        Raises
        ------
        LedgerError
            If the faucet refuses or cannot be reached.
        """

    async def aclose(self) -> None:
        """Release network resources; the default holds none."""


__all__ = ["GAS_BUDGET", "Faucet", "Ledger", "sender_address"]
