"""Resolver — maps DIDs to their published DID documents.

A read-through view over a :class:`~driver_identity.ledger.base.Ledger`.
Published documents are immutable, so the optional cache never serves a
stale document.

Batched resolution is all-or-nothing: :meth:`Resolver.resolve_many` either
returns a document for every requested DID or raises
:class:`~driver_identity.errors.ResolutionError` naming the first missing
one. Resolution is never retried.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from driver_identity.did.document import DIDDocument, is_did
from driver_identity.errors import ResolutionError

if TYPE_CHECKING:
    from driver_identity.ledger.base import Ledger

logger = logging.getLogger(__name__)


class Resolver:
    """Resolve single DIDs or batches of DIDs through a ledger.

    Parameters
    ----------
    ledger:
        The ledger holding published documents.
    cache:
        When ``True`` resolved documents are kept in memory and only cache
        misses reach the ledger.

    Example
    -------
    ::

        resolver = Resolver(ledger)
        doc = await resolver.resolve("did:iota:testnet:0xabc...")
        docs = await resolver.resolve_many([issuer_a, issuer_b])
    """

    def __init__(self, ledger: Ledger, *, cache: bool = True) -> None:
        self._ledger = ledger
        self._cache_enabled = cache
        self._cache: dict[str, DIDDocument] = {}

    async def resolve(self, did: str) -> DIDDocument:
        """Resolve one DID.

        Raises
        ------
        ResolutionError
            If *did* is malformed or has no published document.
        """
        self._check_syntax(did)
        cached = self._cache.get(did)
        if cached is not None:
            logger.debug("Resolver cache hit for %s", did)
            return cached

        document = await self._ledger.resolve_did(did)
        if document is None:
            raise ResolutionError(f"DID {did} could not be resolved", did=did)
        self._check_identity(did, document)
        self._remember(document)
        return document

    async def resolve_many(self, dids: list[str]) -> dict[str, DIDDocument]:
        """Resolve every DID in *dids* with at most one ledger call.

        Duplicates are resolved once.

        Raises
        ------
        ResolutionError
            If any DID is malformed or unresolvable; no partial result is
            returned.
        """
        unique = list(dict.fromkeys(dids))
        for did in unique:
            self._check_syntax(did)

        resolved: dict[str, DIDDocument] = {
            did: self._cache[did] for did in unique if did in self._cache
        }
        misses = [did for did in unique if did not in resolved]
        if misses:
            fetched = await self._ledger.resolve_dids(misses)
            for did in misses:
                document = fetched.get(did)
                if document is None:
                    raise ResolutionError(
                        f"DID {did} could not be resolved; batch of {len(unique)} aborted",
                        did=did,
                    )
                self._check_identity(did, document)
                resolved[did] = document
                self._remember(document)

        return {did: resolved[did] for did in unique}

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _remember(self, document: DIDDocument) -> None:
        if self._cache_enabled:
            self._cache[document.id] = document

    @staticmethod
    def _check_syntax(did: str) -> None:
        if not is_did(did):
            raise ResolutionError(f"{did!r} is not a valid DID", did=did)

    @staticmethod
    def _check_identity(did: str, document: DIDDocument) -> None:
        if document.id != did:
            raise ResolutionError(
                f"ledger returned document {document.id} when resolving {did}", did=did
            )


__all__ = ["Resolver"]
