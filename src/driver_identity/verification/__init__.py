"""driver_identity.verification — presentation and credential verification."""
from __future__ import annotations

from driver_identity.verification.verifier import (
    FailurePolicy,
    PresentationVerifier,
    VerificationOutcome,
)

__all__ = ["FailurePolicy", "PresentationVerifier", "VerificationOutcome"]
