"""Compact JWS encoding for credential and presentation tokens.

Token format
------------
The token is a dot-separated string::

    base64url(header).base64url(payload).base64url(signature)

- header: ``{"alg": "EdDSA", "kid": "<did>#<fragment>", "typ": "JWT"}``
- payload: the JWT claims set (VC-JWT or VP-JWT claims)
- signature: Ed25519 over ``header.payload`` (the ASCII signing input)

Decoding never verifies the signature; it only splits and parses the
token so the caller can learn who claims to have signed it before
resolving that signer's DID document.
"""
from __future__ import annotations

import binascii
import json
from dataclasses import dataclass
from typing import Any

from driver_identity.crypto.ed25519 import b64url_decode, b64url_encode
from driver_identity.crypto.signing import Signer
from driver_identity.errors import MalformedToken, VaultError


@dataclass(frozen=True)
class DecodedJws:
    """A parsed (not yet verified) compact JWS.

    Parameters
    ----------
    header:
        Protected header members.
    claims:
        JSON payload.
    signing_input:
        ASCII bytes of ``header.payload`` exactly as they appeared in the token.
    signature:
        Raw signature bytes.
    """

    header: dict[str, Any]
    claims: dict[str, Any]
    signing_input: bytes
    signature: bytes

    @property
    def algorithm(self) -> str:
        return str(self.header.get("alg", ""))

    @property
    def kid(self) -> str:
        return str(self.header.get("kid", ""))


def _encode_segment(value: dict[str, Any]) -> str:
    raw = json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return b64url_encode(raw)


async def encode_jws(claims: dict[str, Any], signer: Signer, kid: str) -> str:
    """Sign *claims* with *signer* and return the compact token.

    Raises
    ------
    VaultError
        If the signer fails for any reason.
    """
    header = {"alg": signer.algorithm, "kid": kid, "typ": "JWT"}
    signing_input = f"{_encode_segment(header)}.{_encode_segment(claims)}"
    try:
        signature = await signer.sign(signing_input.encode("ascii"))
    except VaultError:
        raise
    except Exception as exc:
        raise VaultError(f"signing with {kid} failed: {exc}") from exc
    return f"{signing_input}.{b64url_encode(signature)}"


def decode_jws(token: str) -> DecodedJws:
    """Split and parse a compact JWS without verifying it.

    Raises
    ------
    MalformedToken
        When the token does not have three segments, a segment is not
        base64url, or the header/payload is not a JSON object.
    """
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise MalformedToken(f"expected 3 dot-separated parts, got {len(parts)}")

    header_b64, payload_b64, signature_b64 = parts
    try:
        header = json.loads(b64url_decode(header_b64))
        claims = json.loads(b64url_decode(payload_b64))
        signature = b64url_decode(signature_b64)
    except (binascii.Error, ValueError, UnicodeDecodeError) as exc:
        raise MalformedToken(f"could not decode token: {exc}") from exc

    if not isinstance(header, dict) or not isinstance(claims, dict):
        raise MalformedToken("token header and payload must be JSON objects")

    return DecodedJws(
        header=header,
        claims=claims,
        signing_input=f"{header_b64}.{payload_b64}".encode("ascii"),
        signature=signature,
    )


__all__ = ["DecodedJws", "decode_jws", "encode_jws"]
