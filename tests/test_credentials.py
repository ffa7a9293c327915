"""Tests for credential resolution and hashing."""

from __future__ import annotations

import pytest

from devgate.credentials import hash_credential, resolve_credential, verify_credential
from devgate.errors import ConfigError


@pytest.fixture()
def password_file(tmp_path):
    path = tmp_path / "password.txt"
    path.write_text("from-file\n", encoding="utf-8")
    return path


class TestResolveCredential:
    def test_inline_only(self):
        assert resolve_credential("secret123", None) == "secret123"

    def test_file_only(self, password_file):
        assert resolve_credential(None, password_file) == "from-file"

    def test_both_is_fatal(self, password_file):
        with pytest.raises(ConfigError, match="not both"):
            resolve_credential("secret123", password_file)

    def test_neither_is_fatal(self):
        with pytest.raises(ConfigError, match="No password configured"):
            resolve_credential(None, None)

    def test_inline_used_verbatim(self):
        assert resolve_credential("  spaced \n", None) == "  spaced \n"

    def test_missing_file_names_path(self, tmp_path):
        missing = tmp_path / "nope.txt"
        with pytest.raises(ConfigError, match="nope.txt"):
            resolve_credential(None, missing)

    def test_directory_is_not_a_file(self, tmp_path):
        with pytest.raises(ConfigError, match="does not exist"):
            resolve_credential(None, tmp_path)

    def test_only_one_trailing_newline_stripped(self, tmp_path):
        path = tmp_path / "pw"
        path.write_text("abc\n\n", encoding="utf-8")
        assert resolve_credential(None, path) == "abc\n"

    def test_crlf_stripped(self, tmp_path):
        path = tmp_path / "pw"
        path.write_bytes(b"abc\r\n")
        assert resolve_credential(None, path) == "abc"

    def test_file_without_newline(self, tmp_path):
        path = tmp_path / "pw"
        path.write_text("abc", encoding="utf-8")
        assert resolve_credential(None, path) == "abc"

    def test_empty_secret_rejected(self, tmp_path):
        path = tmp_path / "pw"
        path.write_text("\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="empty"):
            resolve_credential(None, path)

    def test_accepts_str_path(self, password_file):
        assert resolve_credential(None, str(password_file)) == "from-file"


class TestCredentialHashing:
    def test_hash_and_verify(self):
        h = hash_credential("secret123")
        assert verify_credential("secret123", h)

    def test_wrong_password(self):
        h = hash_credential("secret123")
        assert not verify_credential("wrong", h)

    def test_long_passwords_are_fully_compared(self):
        base = "x" * 80
        h = hash_credential(base + "a")
        assert verify_credential(base + "a", h)
        assert not verify_credential(base + "b", h)
