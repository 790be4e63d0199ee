"""Tests for driver_identity.ledger.memory and driver_identity.ledger.base."""
from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from driver_identity.crypto.ed25519 import jwk_to_public_key
from driver_identity.crypto.signing import LocalEd25519Signer
from driver_identity.did.document import DIDDocument
from driver_identity.errors import LedgerError
from driver_identity.ledger.base import GAS_BUDGET, sender_address
from driver_identity.ledger.memory import FAUCET_AMOUNT, InMemoryLedger


class _WrongKeySigner:
    """Claims one public key but signs with another."""

    def __init__(self) -> None:
        self._claimed = LocalEd25519Signer()
        self._actual = LocalEd25519Signer()
        self.algorithm = self._claimed.algorithm
        self.public_jwk = self._claimed.public_jwk

    async def sign(self, data: bytes) -> bytes:
        return await self._actual.sign(data)


@pytest.fixture()
def sender() -> LocalEd25519Signer:
    return LocalEd25519Signer()


@pytest.fixture()
def unpublished() -> DIDDocument:
    key = LocalEd25519Signer()
    return DIDDocument.unpublished(key.fragment, key.public_jwk)


class TestSenderAddress:
    def test_address_format(self, sender: LocalEd25519Signer) -> None:
        address = sender_address(sender.public_jwk)
        assert address.startswith("0x")
        assert len(address) == 66

    def test_address_hashes_flag_and_key(self, sender: LocalEd25519Signer) -> None:
        public_bytes = jwk_to_public_key(sender.public_jwk)
        expected = hashlib.blake2b(b"\x00" + public_bytes, digest_size=32).hexdigest()
        assert sender_address(sender.public_jwk) == f"0x{expected}"


class TestPublish:
    @pytest.mark.asyncio
    async def test_assigns_network_did(
        self, sender: LocalEd25519Signer, unpublished: DIDDocument
    ) -> None:
        ledger = InMemoryLedger(network="testnet")
        await ledger.request_funds(sender_address(sender.public_jwk))
        published = await ledger.publish_did_document(unpublished, sender=sender)
        assert published.id.startswith("did:iota:testnet:0x")
        assert len(published.id) == len("did:iota:testnet:0x") + 64
        assert published.id in ledger
        assert ledger.publish_count == 1

    @pytest.mark.asyncio
    async def test_charges_gas(
        self, ledger: InMemoryLedger, sender: LocalEd25519Signer, unpublished: DIDDocument
    ) -> None:
        address = sender_address(sender.public_jwk)
        await ledger.request_funds(address)
        await ledger.publish_did_document(unpublished, sender=sender)
        assert await ledger.get_balance(address) == FAUCET_AMOUNT - GAS_BUDGET

    @pytest.mark.asyncio
    async def test_unfunded_sender_is_rejected(
        self, ledger: InMemoryLedger, sender: LocalEd25519Signer, unpublished: DIDDocument
    ) -> None:
        with pytest.raises(LedgerError, match="insufficient gas"):
            await ledger.publish_did_document(unpublished, sender=sender)
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_bad_signature_is_rejected(
        self, ledger: InMemoryLedger, unpublished: DIDDocument
    ) -> None:
        signer = _WrongKeySigner()
        await ledger.request_funds(sender_address(signer.public_jwk))
        with pytest.raises(LedgerError, match="invalid signature"):
            await ledger.publish_did_document(unpublished, sender=signer)

    @pytest.mark.asyncio
    async def test_duplicate_did_is_rejected(self, ledger: InMemoryLedger, publish_actor) -> None:
        await publish_actor("did:example:driver1")
        with pytest.raises(LedgerError, match="already published"):
            await publish_actor("did:example:driver1")


class TestResolution:
    @pytest.mark.asyncio
    async def test_resolve_unknown_returns_none(self, ledger: InMemoryLedger) -> None:
        assert await ledger.resolve_did("did:example:nobody") is None

    @pytest.mark.asyncio
    async def test_batch_omits_unknown(self, ledger: InMemoryLedger, publish_actor) -> None:
        await publish_actor("did:example:driver1")
        found = await ledger.resolve_dids(["did:example:driver1", "did:example:nobody"])
        assert list(found) == ["did:example:driver1"]

    @pytest.mark.asyncio
    async def test_list_dids_is_sorted(self, ledger: InMemoryLedger, publish_actor) -> None:
        await publish_actor("did:example:b")
        await publish_actor("did:example:a")
        assert ledger.list_dids() == ["did:example:a", "did:example:b"]


class TestPersistence:
    @pytest.mark.asyncio
    async def test_reload_from_file(
        self, tmp_path: Path, sender: LocalEd25519Signer, unpublished: DIDDocument
    ) -> None:
        path = tmp_path / "ledger.ndjson"
        ledger = InMemoryLedger(path=path)
        address = sender_address(sender.public_jwk)
        await ledger.request_funds(address)
        published = await ledger.publish_did_document(unpublished, sender=sender)

        reloaded = InMemoryLedger(path=path)
        assert await reloaded.resolve_did(published.id) == published
        assert await reloaded.get_balance(address) == FAUCET_AMOUNT - GAS_BUDGET

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "ledger.ndjson"
        path.write_text('{"kind": "document"}\n', encoding="utf-8")
        with pytest.raises(LedgerError, match="line 1"):
            InMemoryLedger(path=path)

    def test_empty_file_is_accepted(self, tmp_path: Path) -> None:
        path = tmp_path / "ledger.ndjson"
        path.write_text("", encoding="utf-8")
        assert len(InMemoryLedger(path=path)) == 0
