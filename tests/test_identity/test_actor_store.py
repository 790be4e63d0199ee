"""Tests for driver_identity.identity.store.FilesystemActorStore."""
from __future__ import annotations

from pathlib import Path

import pytest

from driver_identity.crypto.signing import LocalEd25519Signer
from driver_identity.did.document import DIDDocument
from driver_identity.errors import (
    CredentialNotFound,
    IdentityNotFound,
    PresentationNotFound,
    StorageError,
)
from driver_identity.identity.store import ActorRole, FilesystemActorStore, IdentityState

DID = "did:iota:testnet:0x" + "ef" * 32


@pytest.fixture()
def store(tmp_path: Path) -> FilesystemActorStore:
    return FilesystemActorStore(tmp_path / "state")


@pytest.fixture()
def key() -> LocalEd25519Signer:
    return LocalEd25519Signer()


@pytest.fixture()
def document(key: LocalEd25519Signer) -> DIDDocument:
    return DIDDocument.unpublished(key.fragment, key.public_jwk).with_id(DID)


class TestLayout:
    def test_creates_base_dir(self, tmp_path: Path) -> None:
        FilesystemActorStore(tmp_path / "nested" / "dir")
        assert (tmp_path / "nested" / "dir").is_dir()

    def test_file_names(self, store: FilesystemActorStore) -> None:
        assert store.did_path(ActorRole.DRIVER).name == "driver_did.json"
        assert store.fragment_path(ActorRole.ISSUER).name == "issuer_fragment.txt"
        assert store.vault_path(ActorRole.DRIVER).name == "driver.vault"
        assert store.credential_path(ActorRole.DRIVER).name == "driver_vc.jwt"
        assert store.presentation_path(ActorRole.DRIVER).name == "driver_vp.jwt"
        assert store.state_path(ActorRole.DRIVER).name == "driver_state.txt"


class TestIdentity:
    def test_starts_unpublished(self, store: FilesystemActorStore) -> None:
        assert store.state(ActorRole.DRIVER) is IdentityState.UNPUBLISHED
        with pytest.raises(IdentityNotFound, match="create-did"):
            store.load_identity(ActorRole.DRIVER)

    def test_save_and_load(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        assert store.state(ActorRole.DRIVER) is IdentityState.PUBLISHED
        assert store.state(ActorRole.ISSUER) is IdentityState.UNPUBLISHED
        assert store.load_identity(ActorRole.DRIVER) == (document, key.fragment)

    def test_state_follows_marker_not_document_file(
        self, store: FilesystemActorStore, document: DIDDocument
    ) -> None:
        store.did_path(ActorRole.DRIVER).write_text(document.to_json(), encoding="utf-8")
        assert store.state(ActorRole.DRIVER) is IdentityState.UNPUBLISHED
        with pytest.raises(IdentityNotFound):
            store.load_identity(ActorRole.DRIVER)

    def test_marker_written_by_save(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        marker = store.state_path(ActorRole.DRIVER).read_text(encoding="utf-8")
        assert marker == "published"

    def test_unknown_marker_is_corrupt(self, store: FilesystemActorStore) -> None:
        store.state_path(ActorRole.DRIVER).write_text("pending", encoding="utf-8")
        with pytest.raises(StorageError, match="unknown state"):
            store.state(ActorRole.DRIVER)

    def test_missing_document_under_marker_is_corrupt(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        store.did_path(ActorRole.DRIVER).unlink()
        with pytest.raises(StorageError, match="missing"):
            store.load_identity(ActorRole.DRIVER)

    def test_fragment_is_trimmed(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        store.fragment_path(ActorRole.DRIVER).write_text(f"  {key.fragment}\n", encoding="utf-8")
        assert store.load_identity(ActorRole.DRIVER)[1] == key.fragment

    def test_empty_fragment_is_corrupt(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        store.fragment_path(ActorRole.DRIVER).write_text("   \n", encoding="utf-8")
        with pytest.raises(StorageError, match="empty"):
            store.load_identity(ActorRole.DRIVER)

    def test_missing_fragment_is_corrupt(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        store.fragment_path(ActorRole.DRIVER).unlink()
        with pytest.raises(StorageError, match="missing"):
            store.load_identity(ActorRole.DRIVER)

    def test_invalid_document_json_is_corrupt(
        self, store: FilesystemActorStore, document: DIDDocument, key: LocalEd25519Signer
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, key.fragment)
        store.did_path(ActorRole.DRIVER).write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError, match="failed parsing"):
            store.load_identity(ActorRole.DRIVER)

    def test_unknown_fragment_is_corrupt(
        self, store: FilesystemActorStore, document: DIDDocument
    ) -> None:
        store.save_identity(ActorRole.DRIVER, document, "some-other-key")
        with pytest.raises(StorageError, match="absent from"):
            store.load_identity(ActorRole.DRIVER)

    def test_unpublished_document_is_corrupt(
        self, store: FilesystemActorStore, key: LocalEd25519Signer
    ) -> None:
        unpublished = DIDDocument.unpublished(key.fragment, key.public_jwk)
        store.save_identity(ActorRole.DRIVER, unpublished, key.fragment)
        with pytest.raises(StorageError, match="unpublished"):
            store.load_identity(ActorRole.DRIVER)

    def test_refuses_empty_fragment(self, store: FilesystemActorStore, document: DIDDocument) -> None:
        with pytest.raises(StorageError):
            store.save_identity(ActorRole.DRIVER, document, "")
        assert store.state(ActorRole.DRIVER) is IdentityState.UNPUBLISHED


class TestTokens:
    def test_missing_credential(self, store: FilesystemActorStore) -> None:
        with pytest.raises(CredentialNotFound, match="issue-vc"):
            store.load_credentials(ActorRole.DRIVER)

    def test_credential_overwrite(self, store: FilesystemActorStore) -> None:
        store.save_credential(ActorRole.DRIVER, "first.token.sig")
        store.save_credential(ActorRole.DRIVER, "second.token.sig")
        assert store.load_credentials(ActorRole.DRIVER) == ["second.token.sig"]

    def test_blank_credential_file_counts_as_missing(self, store: FilesystemActorStore) -> None:
        store.credential_path(ActorRole.DRIVER).write_text("\n\n", encoding="utf-8")
        with pytest.raises(CredentialNotFound):
            store.load_credentials(ActorRole.DRIVER)

    def test_presentation_round_trip(self, store: FilesystemActorStore) -> None:
        with pytest.raises(PresentationNotFound, match="create-vp"):
            store.load_presentation(ActorRole.DRIVER)
        store.save_presentation(ActorRole.DRIVER, "vp.token.sig\n")
        assert store.load_presentation(ActorRole.DRIVER) == "vp.token.sig"

    def test_no_temporary_files_left(self, store: FilesystemActorStore) -> None:
        store.save_credential(ActorRole.DRIVER, "a.b.c")
        assert [p.name for p in store.base_dir.iterdir()] == ["driver_vc.jwt"]
