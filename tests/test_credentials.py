"""Test the credential model and its file store"""

import json
import os
import sys

import pytest

from monthly_playlists.auth.credentials import Credential, CredentialStore
from monthly_playlists.core.exceptions import CredentialNotFoundError, CredentialStoreError


class TestCredential:
    """Test Credential"""

    def test_staleness_with_margin(self, credential):
        assert not credential.is_stale(9_000, margin=60)
        assert credential.is_stale(9_940, margin=60)
        assert credential.is_stale(10_001, margin=0)
        assert not credential.is_stale(9_999, margin=0)

    def test_from_token_response(self):
        credential = Credential.from_token_response(
            {
                "access_token": "new",
                "refresh_token": "r",
                "expires_in": 3600,
                "token_type": "Bearer",
                "scope": "user-library-read",
            },
            now=1_000
        )

        assert credential.expires_at == 4_600
        assert credential.refresh_token == "r"

    def test_refresh_response_keeps_previous_refresh_token(self, credential):
        refreshed = Credential.from_token_response(
            {"access_token": "access-2", "expires_in": 3600},
            now=20_000,
            previous=credential
        )

        assert refreshed.access_token == "access-2"
        assert refreshed.refresh_token == "refresh-1"
        assert refreshed.scope == credential.scope

    def test_response_without_access_token(self):
        with pytest.raises(ValueError, match="access_token"):
            Credential.from_token_response({"refresh_token": "r"}, now=0)

    def test_first_response_requires_refresh_token(self):
        with pytest.raises(ValueError, match="refresh_token"):
            Credential.from_token_response({"access_token": "a"}, now=0)


class TestCredentialStore:
    """Test CredentialStore persistence"""

    def test_save_creates_parent_directories(self, credential_store, credential):
        credential_store.save(credential)

        assert credential_store.path.exists()
        assert credential_store.load() == credential

    def test_saved_file_format(self, credential_store, credential):
        credential_store.save(credential)

        data = json.loads(credential_store.path.read_text(encoding="utf-8"))
        assert data == {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_at": 10_000,
            "token_type": "Bearer",
            "scope": "user-library-read",
        }

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_saved_file_is_owner_only(self, credential_store, credential):
        credential_store.save(credential)
        assert os.stat(credential_store.path).st_mode & 0o777 == 0o600

    def test_overwrite_leaves_no_temporary_files(self, credential_store, credential):
        credential_store.save(credential)
        credential_store.save(Credential("access-2", "refresh-1", 20_000))

        assert os.listdir(credential_store.path.parent) == ["token.json"]
        assert credential_store.load().access_token == "access-2"

    def test_load_missing_file(self, credential_store):
        with pytest.raises(CredentialNotFoundError):
            credential_store.load()
        assert not credential_store.exists()

    def test_load_invalid_json(self, temp_dir):
        path = temp_dir / "token.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CredentialStoreError) as exc_info:
            CredentialStore(path).load()
        assert not isinstance(exc_info.value, CredentialNotFoundError)

    def test_load_malformed_credential(self, temp_dir):
        path = temp_dir / "token.json"
        path.write_text(json.dumps({"access_token": "a", "expires_at": 1}), encoding="utf-8")

        with pytest.raises(CredentialStoreError, match="refresh_token"):
            CredentialStore(path).load()

    def test_save_failure(self, temp_dir, credential):
        blocker = temp_dir / "not-a-directory"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(CredentialStoreError):
            CredentialStore(blocker / "token.json").save(credential)
