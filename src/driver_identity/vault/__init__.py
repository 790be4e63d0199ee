"""driver_identity.vault — key custody for actor signing keys."""
from __future__ import annotations

from driver_identity.vault.key_vault import (
    EncryptedFileVault,
    GeneratedKey,
    KeyVault,
    VaultSigner,
)

__all__ = ["EncryptedFileVault", "GeneratedKey", "KeyVault", "VaultSigner"]
