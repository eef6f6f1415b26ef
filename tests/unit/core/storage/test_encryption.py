"""Tests for the FieldEncryptor (Fernet-based field encryption)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from vitaltrack.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def encryptor() -> FieldEncryptor:
    return FieldEncryptor(Fernet.generate_key().decode())


class TestRoundTrip:
    def test_note_round_trip(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("slept badly, mild headache")
        assert token and "headache" not in token
        assert encryptor.decrypt(token) == "slept badly, mild headache"

    def test_insight_details_round_trip(self, encryptor: FieldEncryptor):
        details = {"description": "Irregular sleep", "recommendations": ["Keep a bedtime"]}
        assert encryptor.decrypt(encryptor.encrypt(details)) == details

    def test_none_is_empty(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt(None) == ""
        assert encryptor.decrypt("") is None
        assert encryptor.decrypt(None) is None

    def test_unserializable_raises(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError, match="Encryption failed"):
            encryptor.encrypt(object())


class TestKeyValidation:
    def test_empty_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("   ")

    def test_invalid_key_raises(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            FieldEncryptor("not-a-valid-fernet-key")

    def test_generated_key_works(self):
        enc = FieldEncryptor(FieldEncryptor.generate_key())
        assert enc.decrypt(enc.encrypt({"ok": True})) == {"ok": True}


class TestCorruptData:
    def test_wrong_key_cannot_decrypt(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("private")
        other = FieldEncryptor(Fernet.generate_key().decode())
        with pytest.raises(EncryptionError, match="invalid token"):
            other.decrypt(token)

    def test_garbage_token_raises(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("not-a-valid-token")
