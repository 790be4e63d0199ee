"""driver_identity.ledger — where DID documents are published and resolved.

Submodules
----------
base
    Ledger / Faucet interfaces and sender address derivation.
memory
    InMemoryLedger: in-process ledger + faucet, optionally persisted to NDJSON.
http
    HttpLedgerClient / HttpFaucet over httpx.
"""
from __future__ import annotations

from driver_identity.ledger.base import GAS_BUDGET, Faucet, Ledger, sender_address
from driver_identity.ledger.http import HttpFaucet, HttpLedgerClient
from driver_identity.ledger.memory import InMemoryLedger

__all__ = [
    "GAS_BUDGET",
    "Faucet",
    "HttpFaucet",
    "HttpLedgerClient",
    "InMemoryLedger",
    "Ledger",
    "sender_address",
]
