"""HTTP ledger and faucet clients.

:class:`HttpLedgerClient` talks JSON-RPC 2.0 to the ledger node named by
``API_ENDPOINT``; :class:`HttpFaucet` posts funding requests to the faucet.
Both use :class:`httpx.AsyncClient` with a bounded timeout.

Retry policy
------------
Publishing, balance reads and faucet requests get a single retry on
transient failures (timeouts, transport errors, 5xx responses). DID
resolution is never retried. JSON-RPC error objects are deterministic
rejections and are never retried either.

RPC methods
-----------
``identity_publishDidDocument`` ``[package_id, tx_bytes_b64, signature_b64, public_jwk]``
    -> ``{"document": {...}}``
``identity_resolveDid`` ``[package_id, did]`` -> ``{...}`` or ``null``
``identity_resolveDids`` ``[package_id, [did, ...]]`` -> ``{did: {...}}``
``iotax_getBalance`` ``[address]`` -> ``{"totalBalance": "<int>"}``
"""
from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from driver_identity.crypto.ed25519 import b64url_encode
from driver_identity.crypto.signing import Signer
from driver_identity.did.document import DIDDocument
from driver_identity.errors import LedgerError, VaultError
from driver_identity.ledger.base import GAS_BUDGET, Faucet, Ledger, sender_address

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS: float = 30.0
DEFAULT_ATTEMPTS: int = 2


class _TransientHTTPStatus(Exception):
    """A 5xx response that is worth one more attempt."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


async def _with_retry(
    operation: Callable[[], Awaitable[T]],
    description: str,
    attempts: int,
) -> T:
    """Run *operation*, retrying transient failures up to *attempts* times in total."""
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except (httpx.TimeoutException, httpx.TransportError, _TransientHTTPStatus) as exc:
            last_error = exc
            if attempt < attempts:
                logger.warning(
                    "%s failed (%s); retrying (attempt %d of %d)",
                    description, exc, attempt + 1, attempts,
                )
    raise LedgerError(f"{description} failed after {attempts} attempt(s): {last_error}") from last_error


class HttpLedgerClient(Ledger):
    """JSON-RPC :class:`~driver_identity.ledger.base.Ledger` client.

    Parameters
    ----------
    endpoint:
        Ledger node URL.
    package_id:
        On-ledger identity package the DID documents live under.
    timeout:
        Per-request timeout in seconds.
    attempts:
        Total attempts for retryable calls (1 original + retries).
    client:
        Optional pre-built :class:`httpx.AsyncClient` (tests pass one with a
        mock transport).
    """

    def __init__(
        self,
        endpoint: str,
        package_id: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._package_id = package_id
        self._attempts = attempts
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._ids = itertools.count(1)

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
        address = sender_address(sender.public_jwk)
        transaction = {
            "kind": "publishDidDocument",
            "packageId": self._package_id,
            "sender": address,
            "gasBudget": gas_budget,
            "document": document.to_dict(),
        }
        tx_bytes = json.dumps(transaction, sort_keys=True, separators=(",", ":")).encode("utf-8")
        try:
            signature = await sender.sign(tx_bytes)
        except VaultError:
            raise
        except Exception as exc:
            raise VaultError(f"could not sign publish transaction: {exc}") from exc

        params = [
            self._package_id,
            b64url_encode(tx_bytes),
            b64url_encode(signature),
            dict(sender.public_jwk),
        ]
        result = await _with_retry(
            lambda: self._rpc("identity_publishDidDocument", params),
            "publish DID document",
            self._attempts,
        )
        try:
            published = DIDDocument.from_dict(result["document"])
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerError(f"ledger returned an invalid published document: {exc}") from exc
        logger.info("Published DID document %s (gas budget %d)", published.id, gas_budget)
        return published

    async def resolve_did(self, did: str) -> DIDDocument | None:
        result = await self._rpc_once("identity_resolveDid", [self._package_id, did])
        if result is None:
            return None
        return self._parse_document(result)

    async def resolve_dids(self, dids: list[str]) -> dict[str, DIDDocument]:
        result = await self._rpc_once("identity_resolveDids", [self._package_id, list(dids)])
        if not isinstance(result, dict):
            raise LedgerError("ledger returned a non-object batch resolution result")
        return {
            did: self._parse_document(raw)
            for did, raw in result.items()
            if raw is not None
        }

    async def get_balance(self, address: str) -> int:
        result = await _with_retry(
            lambda: self._rpc("iotax_getBalance", [address]),
            f"balance query for {address}",
            self._attempts,
        )
        try:
            return int(result["totalBalance"])
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerError(f"ledger returned an invalid balance: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # JSON-RPC plumbing
    # ------------------------------------------------------------------

    async def _rpc_once(self, method: str, params: list[Any]) -> Any:
        try:
            return await self._rpc(method, params)
        except (httpx.TimeoutException, httpx.TransportError, _TransientHTTPStatus) as exc:
            raise LedgerError(f"{method} failed: {exc}") from exc

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        request = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        response = await self._client.post(self._endpoint, json=request)
        if response.status_code >= 500:
            raise _TransientHTTPStatus(response.status_code)
        if response.status_code != 200:
            raise LedgerError(f"{method} rejected with HTTP {response.status_code}: {response.text[:200]}")
        try:
            body = response.json()
        except ValueError as exc:
            raise LedgerError(f"{method} returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise LedgerError(f"{method} returned a malformed JSON-RPC envelope")
        if body.get("error"):
            error = body["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise LedgerError(f"{method} rejected by ledger: {message}")
        return body.get("result")

    @staticmethod
    def _parse_document(raw: Any) -> DIDDocument:
        if not isinstance(raw, dict):
            raise LedgerError("ledger returned a malformed DID document")
        try:
            return DIDDocument.from_dict(raw)
        except ValueError as exc:
            raise LedgerError(f"ledger returned an invalid DID document: {exc}") from exc


class HttpFaucet(Faucet):
    """Faucet client posting ``{"FixedAmountRequest": {"recipient": address}}``."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        attempts: int = DEFAULT_ATTEMPTS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._attempts = attempts
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def request_funds(self, address: str) -> None:
        async def _post() -> None:
            response = await self._client.post(
                self._endpoint, json={"FixedAmountRequest": {"recipient": address}}
            )
            if response.status_code >= 500:
                raise _TransientHTTPStatus(response.status_code)
            if not response.is_success:
                raise LedgerError(
                    f"faucet refused funding for {address}: HTTP {response.status_code}"
                )

        await _with_retry(_post, f"faucet request for {address}", self._attempts)
        logger.info("Requested faucet funds for %s", address)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["DEFAULT_ATTEMPTS", "DEFAULT_TIMEOUT_SECONDS", "HttpFaucet", "HttpLedgerClient"]
