"""Pydantic response models for the driver identity HTTP server."""
from __future__ import annotations

from pydantic import BaseModel


class DidResponse(BaseModel):
    """Response body for POST /driver/create-did."""

    did: str


class VcResponse(BaseModel):
    """Response body for POST /driver/issue-vc."""

    vc: str


class VpResponse(BaseModel):
    """Response body for POST /driver/create-vp."""

    vp: str


class VerifyResponse(BaseModel):
    """Response body for POST /driver/verify."""

    valid: bool
    holder: str
    credential_count: int


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "driver-identity"
    version: str = ""


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``error`` is the exception class name, ``detail`` its message.
    """

    error: str
    detail: str = ""
