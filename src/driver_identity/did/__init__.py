"""driver_identity.did — DID documents and DID resolution.

Submodules
----------
document
    DIDDocument, VerificationMethod, DID syntax helpers.
resolver
    Resolver with single and all-or-nothing batched lookups.
"""
from __future__ import annotations

from driver_identity.did.document import (
    DID_CONTEXT,
    UNPUBLISHED_DID,
    DIDDocument,
    VerificationMethod,
    is_did,
    parse_did,
    split_did_url,
)
from driver_identity.did.resolver import Resolver

__all__ = [
    "DID_CONTEXT",
    "UNPUBLISHED_DID",
    "DIDDocument",
    "Resolver",
    "VerificationMethod",
    "is_did",
    "parse_did",
    "split_did_url",
]
