"""driver_identity.credentials — credential issuance and presentation building.

Submodules
----------
credential
    Credential, CredentialSubject and CredentialIssuer (VC-JWT).
presentation
    Presentation and PresentationBuilder (VP-JWT with a validity window).
"""
from __future__ import annotations

from driver_identity.credentials.credential import (
    DRIVER_CREDENTIAL_TYPE,
    VC_CONTEXT,
    Credential,
    CredentialIssuer,
    CredentialSubject,
)
from driver_identity.credentials.presentation import (
    DEFAULT_VALIDITY,
    Presentation,
    PresentationBuilder,
)

__all__ = [
    "DEFAULT_VALIDITY",
    "DRIVER_CREDENTIAL_TYPE",
    "VC_CONTEXT",
    "Credential",
    "CredentialIssuer",
    "CredentialSubject",
    "Presentation",
    "PresentationBuilder",
]
