"""Tests for chronolog.credentials module."""

import json
import os
import stat
from pathlib import Path
from unittest.mock import patch

from chronolog.credentials import (
    clear_credentials,
    get_credentials_path,
    load_credentials,
    save_credentials,
    token_is_current,
)
from chronolog.utils import now_ms


class TestGetCredentialsPath:

    def test_default_path(self):
        """Uses ~/.chronolog/credentials.json when no env var is set."""
        env = os.environ.copy()
        env.pop("CHRONOLOG_HOME", None)
        with patch.dict(os.environ, env, clear=True):
            assert get_credentials_path() == Path.home() / ".chronolog" / "credentials.json"

    def test_custom_home(self, tmp_path):
        with patch.dict(os.environ, {"CHRONOLOG_HOME": str(tmp_path)}):
            assert get_credentials_path() == tmp_path / "credentials.json"


class TestLoadCredentials:

    def test_returns_none_when_file_missing(self):
        assert load_credentials() is None

    def test_loads_valid_json(self):
        creds = {"backend_url": "https://journal.example.com", "auth_token": "t"}
        path = get_credentials_path()
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps(creds))
        assert load_credentials() == creds

    def test_invalid_json_returns_none(self):
        path = get_credentials_path()
        path.parent.mkdir(parents=True)
        path.write_text("{oops")
        assert load_credentials() is None

    def test_non_object_returns_none(self):
        path = get_credentials_path()
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2]")
        assert load_credentials() is None


class TestSaveCredentials:

    def test_round_trip(self):
        save_credentials({"auth_token": "t"})
        assert load_credentials() == {"auth_token": "t"}

    def test_owner_only_permissions(self):
        save_credentials({"auth_token": "t"})
        mode = stat.S_IMODE(get_credentials_path().stat().st_mode)
        assert mode == 0o600

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "nested" / "creds.json"
        save_credentials({"auth_token": "t"}, path)
        assert load_credentials(path) == {"auth_token": "t"}


class TestClearCredentials:

    def test_clear_existing(self):
        save_credentials({"auth_token": "t"})
        assert clear_credentials() is True
        assert not get_credentials_path().exists()

    def test_clear_missing(self):
        assert clear_credentials() is False


class TestTokenIsCurrent:

    def test_none(self):
        assert token_is_current(None) is False

    def test_without_token(self):
        assert token_is_current({"backend_url": "x"}) is False

    def test_no_expiry(self):
        assert token_is_current({"auth_token": "t"}) is True

    def test_future_expiry(self):
        assert token_is_current({"auth_token": "t", "token_expires": now_ms() + 60_000}) is True

    def test_expired(self):
        assert token_is_current({"auth_token": "t", "token_expires": now_ms() - 1}) is False
