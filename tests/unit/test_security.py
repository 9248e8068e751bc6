"""
Unit tests for password hashing and session cookie tokens.
"""

import pytest
from jose import jwt

from download_portal.core.errors import InternalFormatError
from download_portal.core.security import (
    create_session_token,
    decode_session_token,
    generate_download_token,
    get_password_hash,
    hash_session_id,
    verify_password,
)

SECRET = "unit-test-secret-key-with-enough-length-1234"


class TestPasswordHashing:
    """Tests for argon2 password storage."""

    def test_verify_accepts_correct_password(self):
        hashed = get_password_hash("s3cret!")
        assert verify_password("s3cret!", hashed) is True

    def test_verify_rejects_wrong_password(self):
        hashed = get_password_hash("s3cret!")
        assert verify_password("S3cret!", hashed) is False

    def test_hash_is_algorithm_tagged(self):
        """Stored hashes identify their algorithm and parameters."""
        assert get_password_hash("s3cret!").startswith("$argon2id$")

    def test_same_password_gets_distinct_salts(self):
        assert get_password_hash("s3cret!") != get_password_hash("s3cret!")

    def test_unparseable_hash_is_internal_error_not_mismatch(self):
        """A corrupt stored hash must not look like a wrong password."""
        with pytest.raises(InternalFormatError) as exc_info:
            verify_password("s3cret!", "not-a-password-hash")
        assert exc_info.value.status_code == 500


class TestSessionTokens:
    """Tests for the signed session cookie value."""

    def test_round_trip(self):
        token = create_session_token("user-1", "alice", "sid-1", SECRET)
        payload = decode_session_token(token, SECRET)

        assert payload["sub"] == "user-1"
        assert payload["username"] == "alice"
        assert payload["sid"] == "sid-1"

    def test_no_expiry_claim(self):
        token = create_session_token("user-1", "alice", "sid-1", SECRET)
        assert "exp" not in decode_session_token(token, SECRET)

    def test_wrong_key_is_rejected(self):
        token = create_session_token("user-1", "alice", "sid-1", SECRET)
        assert decode_session_token(token, SECRET + "x") is None

    def test_tampered_token_is_rejected(self):
        token = create_session_token("user-1", "alice", "sid-1", SECRET)
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, signature[::-1]])
        assert decode_session_token(forged, SECRET) is None

    def test_other_token_type_is_rejected(self):
        token = jwt.encode(
            {"sub": "user-1", "username": "alice", "sid": "sid-1", "type": "access"},
            SECRET,
            algorithm="HS256",
        )
        assert decode_session_token(token, SECRET) is None

    def test_missing_session_id_is_rejected(self):
        token = jwt.encode(
            {"sub": "user-1", "username": "alice", "type": "session"},
            SECRET,
            algorithm="HS256",
        )
        assert decode_session_token(token, SECRET) is None

    def test_garbage_is_rejected(self):
        assert decode_session_token("definitely.not.ajwt", SECRET) is None


class TestOpaqueValues:
    def test_download_tokens_are_url_safe_and_unique(self):
        tokens = {generate_download_token() for _ in range(50)}
        assert len(tokens) == 50
        for token in tokens:
            assert len(token) >= 43
            assert all(c.isalnum() or c in "-_" for c in token)

    def test_session_id_digest_is_stable_sha256(self):
        assert hash_session_id("abc") == hash_session_id("abc")
        assert len(hash_session_id("abc")) == 64
        assert hash_session_id("abc") != hash_session_id("abd")
