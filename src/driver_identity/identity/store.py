"""Actor storage — the persisted artifacts of each actor role.

ActorStore defines the storage contract. FilesystemActorStore persists the
artifacts as plain files under a configurable base directory::

    <base>/<role>_did.json       published DID document (JSON)
    <base>/<role>_fragment.txt   verification-method fragment (plain text)
    <base>/<role>_state.txt      publication marker (``published``)
    <base>/<role>.vault          encrypted key vault
    <base>/<role>_vc.jwt         current credential token
    <base>/<role>_vp.jwt         current presentation token

Every write is atomic (temporary file + rename). The state marker is written
last, after the fragment and DID document, and a role is
:attr:`IdentityState.PUBLISHED` exactly when its marker says so. The marker
moves from unpublished to published once and is never reset.

The store itself takes no locks. Callers serialize creation per role; the
identity manager does so with an :class:`asyncio.Lock`, which holds within
one process only.

Credential and presentation files hold only the latest token; a new issue
or presentation overwrites the previous one (last writer wins).
"""
from __future__ import annotations

import logging
import os
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from driver_identity.did.document import DIDDocument
from driver_identity.errors import (
    CredentialNotFound,
    IdentityNotFound,
    PresentationNotFound,
    StorageError,
)

logger = logging.getLogger(__name__)


class ActorRole(str, Enum):
    """The actors of the driver credential workflow."""

    DRIVER = "driver"
    ISSUER = "issuer"


class IdentityState(str, Enum):
    """Publication state of an actor's DID."""

    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"


class ActorStore(ABC):
    """Abstract base class for actor artifact storage backends."""

    @abstractmethod
    def state(self, role: ActorRole) -> IdentityState:
        """Return whether *role* has a persisted, published identity."""

    @abstractmethod
    def load_identity(self, role: ActorRole) -> tuple[DIDDocument, str]:
        """Return ``(document, fragment)`` for *role*.

        Raises
        ------
        IdentityNotFound
            If *role* has no persisted identity.
        StorageError
            If the persisted artifacts are corrupt.
        """

    @abstractmethod
    def save_identity(self, role: ActorRole, document: DIDDocument, fragment: str) -> None:
        """Persist a published identity for *role*."""

    @abstractmethod
    def save_credential(self, role: ActorRole, token: str) -> None:
        """Replace the current credential token of *role*."""

    @abstractmethod
    def load_credentials(self, role: ActorRole) -> list[str]:
        """Return the current credential token(s) of *role*.

        Raises
        ------
        CredentialNotFound
            If no credential has been issued to *role*.
        """

    @abstractmethod
    def save_presentation(self, role: ActorRole, token: str) -> None:
        """Replace the current presentation token of *role*."""

    @abstractmethod
    def load_presentation(self, role: ActorRole) -> str:
        """Return the current presentation token of *role*.

        Raises
        ------
        PresentationNotFound
            If *role* has not created a presentation.
        """


class FilesystemActorStore(ActorStore):
    """Filesystem-backed :class:`ActorStore`.

    Parameters
    ----------
    base_dir:
        Directory holding every actor's artifacts. Created if missing.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create state directory {base_dir}: {exc}") from exc

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def did_path(self, role: ActorRole) -> Path:
        return self._base_dir / f"{role.value}_did.json"

    def fragment_path(self, role: ActorRole) -> Path:
        return self._base_dir / f"{role.value}_fragment.txt"

    def vault_path(self, role: ActorRole) -> Path:
        return self._base_dir / f"{role.value}.vault"

    def credential_path(self, role: ActorRole) -> Path:
        return self._base_dir / f"{role.value}_vc.jwt"

    def presentation_path(self, role: ActorRole) -> Path:
        return self._base_dir / f"{role.value}_vp.jwt"

    def state_path(self, role: ActorRole) -> Path:
        return self._base_dir / f"{role.value}_state.txt"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def state(self, role: ActorRole) -> IdentityState:
        path = self.state_path(role)
        if not path.exists():
            return IdentityState.UNPUBLISHED
        marker = self._read(path).strip()
        try:
            return IdentityState(marker)
        except ValueError as exc:
            raise StorageError(f"{path.name} holds unknown state {marker!r}") from exc

    def load_identity(self, role: ActorRole) -> tuple[DIDDocument, str]:
        did_path = self.did_path(role)
        fragment_path = self.fragment_path(role)
        if self.state(role) is not IdentityState.PUBLISHED:
            raise IdentityNotFound(role.value)
        if not did_path.exists():
            raise StorageError(f"{did_path.name} is missing while {role.value} is published")

        did_json = self._read(did_path)
        if not fragment_path.exists():
            raise StorageError(f"{fragment_path.name} is missing while {did_path.name} exists")
        fragment = self._read(fragment_path).strip()
        if not fragment:
            raise StorageError(f"{fragment_path.name} is empty")

        try:
            document = DIDDocument.from_json(did_json)
        except ValueError as exc:
            raise StorageError(f"failed parsing {did_path.name} as a DID document: {exc}") from exc

        if not document.is_published:
            raise StorageError(f"{did_path.name} holds an unpublished DID document")
        if document.resolve_method(fragment) is None:
            raise StorageError(
                f"{fragment_path.name} names fragment {fragment!r}, absent from {document.id}"
            )
        return document, fragment

    def save_identity(self, role: ActorRole, document: DIDDocument, fragment: str) -> None:
        if not fragment:
            raise StorageError("refusing to persist an empty fragment")
        self._write(self.fragment_path(role), fragment)
        self._write(self.did_path(role), document.to_json())
        self._write(self.state_path(role), IdentityState.PUBLISHED.value)
        logger.info("Persisted %s identity %s", role.value, document.id)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def save_credential(self, role: ActorRole, token: str) -> None:
        self._write(self.credential_path(role), token)

    def load_credentials(self, role: ActorRole) -> list[str]:
        path = self.credential_path(role)
        if not path.exists():
            raise CredentialNotFound(role.value)
        tokens = [line.strip() for line in self._read(path).splitlines() if line.strip()]
        if not tokens:
            raise CredentialNotFound(role.value)
        return tokens

    def save_presentation(self, role: ActorRole, token: str) -> None:
        self._write(self.presentation_path(role), token)

    def load_presentation(self, role: ActorRole) -> str:
        path = self.presentation_path(role)
        if not path.exists():
            raise PresentationNotFound(role.value)
        token = self._read(path).strip()
        if not token:
            raise PresentationNotFound(role.value)
        return token

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _read(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"failed reading {path.name}: {exc}") from exc

    @staticmethod
    def _write(path: Path, content: str) -> None:
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_text(content, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"failed writing {path.name}: {exc}") from exc


__all__ = ["ActorRole", "ActorStore", "FilesystemActorStore", "IdentityState"]
