"""InMemoryLedger — in-process ledger and faucet with optional file persistence.

Stores published :class:`~driver_identity.did.document.DIDDocument` objects
keyed by DID, tracks address balances, and charges the gas budget of every
publish against the sender. All public methods are thread-safe via a single
:class:`threading.Lock`.

When constructed with a *path*, the ledger loads a newline-delimited JSON
file (one record per line) on start-up and re-exports it after every write.
This backs the ``file://`` ``API_ENDPOINT`` used for offline runs; tests
use it without a path.
"""
from __future__ import annotations

import json
import logging
import os
import secrets
import threading
from pathlib import Path

from driver_identity.crypto.signing import Ed25519SignatureVerifier, Signer
from driver_identity.did.document import DIDDocument
from driver_identity.errors import LedgerError
from driver_identity.ledger.base import GAS_BUDGET, Faucet, Ledger, sender_address

logger = logging.getLogger(__name__)

FAUCET_AMOUNT: int = 10_000_000_000


class InMemoryLedger(Ledger, Faucet):
    """Ledger double that behaves like the real one for the identity workflow.

    Parameters
    ----------
    network:
        Network name embedded in assigned DIDs (``did:iota:<network>:0x…``).
    path:
        Optional NDJSON persistence file.
    faucet_amount:
        Amount credited by :meth:`request_funds`.

    Example
    -------
    ::

        ledger = InMemoryLedger()
        await ledger.request_funds(address)
        published = await ledger.publish_did_document(doc, sender=signer)
        assert await ledger.resolve_did(published.id) == published
    """

    def __init__(
        self,
        network: str = "local",
        *,
        path: Path | None = None,
        faucet_amount: int = FAUCET_AMOUNT,
    ) -> None:
        self.network = network
        self._path = path
        self._faucet_amount = faucet_amount
        self._documents: dict[str, DIDDocument] = {}
        self._balances: dict[str, int] = {}
        self._lock = threading.Lock()
        self._verifier = Ed25519SignatureVerifier()
        self.publish_count = 0
        self.resolve_calls = 0
        self.batch_resolve_calls = 0
        if path is not None and path.exists():
            self._import(path)

    # ------------------------------------------------------------------
    # Ledger interface
    # ------------------------------------------------------------------

    async def publish_did_document(
        self,
        document: DIDDocument,
        *,
        sender: Signer,
        gas_budget: int = GAS_BUDGET,
    ) -> DIDDocument:
        """Assign a DID to *document* (unless it already has one) and store it.

        The sender signs the serialized document; the signature must verify
        and the sender's address must hold at least *gas_budget*.
        """
        address = sender_address(sender.public_jwk)
        payload = document.to_json().encode("utf-8")
        signature = await sender.sign(payload)
        if not self._verifier.verify(sender.algorithm, sender.public_jwk, payload, signature):
            raise LedgerError(f"transaction from {address} carries an invalid signature")

        with self._lock:
            balance = self._balances.get(address, 0)
            if balance < gas_budget:
                raise LedgerError(
                    f"insufficient gas: {address} holds {balance}, budget is {gas_budget}"
                )
            if document.is_published:
                published = document
            else:
                published = document.with_id(
                    f"did:iota:{self.network}:0x{secrets.token_hex(32)}"
                )
            if published.id in self._documents:
                raise LedgerError(f"DID {published.id} is already published")
            self._documents[published.id] = published
            self._balances[address] = balance - gas_budget
            self.publish_count += 1
            self._export()

        logger.info("Published DID document %s (gas %d)", published.id, gas_budget)
        return published

    async def resolve_did(self, did: str) -> DIDDocument | None:
        with self._lock:
            self.resolve_calls += 1
            return self._documents.get(did)

    async def resolve_dids(self, dids: list[str]) -> dict[str, DIDDocument]:
        with self._lock:
            self.batch_resolve_calls += 1
            return {did: self._documents[did] for did in dids if did in self._documents}

    async def get_balance(self, address: str) -> int:
        with self._lock:
            return self._balances.get(address, 0)

    # ------------------------------------------------------------------
    # Faucet interface
    # ------------------------------------------------------------------

    async def request_funds(self, address: str) -> None:
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + self._faucet_amount
            self._export()
        logger.info("Faucet funded %s with %d", address, self._faucet_amount)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def list_dids(self) -> list[str]:
        """Return a sorted list of all published DIDs."""
        with self._lock:
            return sorted(self._documents.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    def __contains__(self, did: object) -> bool:
        with self._lock:
            return did in self._documents

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _export(self) -> None:
        """Write documents and balances as NDJSON. Caller holds the lock."""
        if self._path is None:
            return
        lines = [
            json.dumps({"kind": "document", "document": self._documents[did].to_dict()})
            for did in sorted(self._documents)
        ]
        lines.extend(
            json.dumps({"kind": "balance", "address": address, "amount": amount})
            for address, amount in sorted(self._balances.items())
        )
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text("\n".join(lines), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise LedgerError(f"could not persist ledger to {self._path}: {exc}") from exc

    def _import(self, path: Path) -> None:
        try:
            content = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise LedgerError(f"could not read ledger file {path}: {exc}") from exc
        if not content:
            return

        for line_number, raw_line in enumerate(content.splitlines(), start=1):
            raw_line = raw_line.strip()
            if not raw_line:
                continue
            try:
                entry = json.loads(raw_line)
                if entry["kind"] == "document":
                    document = DIDDocument.from_dict(entry["document"])
                    self._documents[document.id] = document
                elif entry["kind"] == "balance":
                    self._balances[entry["address"]] = int(entry["amount"])
                else:
                    raise ValueError(f"unknown record kind {entry['kind']!r}")
            except (ValueError, KeyError, TypeError) as exc:
                raise LedgerError(f"invalid ledger record on line {line_number} of {path}: {exc}") from exc


__all__ = ["FAUCET_AMOUNT", "InMemoryLedger"]
