"""
tests/test_tokens.py -- Unit tests for TokenCodec and password hashing.

Covers:
  - issue/verify round trip inside the TTL window
  - expiry: verification at or after exp fails
  - deterministic issue for a fixed clock
  - tamper detection: changing any character of the token fails verification
  - wrong key, garbage input, missing claims
  - bcrypt hash/verify helpers
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import ALGORITHM, TokenCodec, hash_password, verify_password
from core.errors import InvalidTokenError

SECRET = "k" * 40
TTL = 864_000
T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _codec_at(moment: datetime, secret: str = SECRET) -> TokenCodec:
    return TokenCodec(secret, TTL, clock=lambda: moment)


class TestRoundTrip:
    def test_verify_returns_subject(self) -> None:
        codec = _codec_at(T0)
        assert codec.verify(codec.issue("alice")) == "alice"

    def test_valid_just_before_expiry(self) -> None:
        token = _codec_at(T0).issue("alice")
        later = _codec_at(T0 + timedelta(seconds=TTL - 1))
        assert later.verify(token) == "alice"

    def test_claims_carry_sub_iat_exp(self) -> None:
        token = _codec_at(T0).issue("alice")
        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == "alice"
        assert claims["iat"] == int(T0.timestamp())
        assert claims["exp"] == int(T0.timestamp()) + TTL

    def test_issue_is_deterministic_for_fixed_clock(self) -> None:
        codec = _codec_at(T0)
        assert codec.issue("alice") == codec.issue("alice")

    def test_default_clock_round_trip(self) -> None:
        codec = TokenCodec(SECRET, 60)
        assert codec.verify(codec.issue("bob")) == "bob"


class TestExpiry:
    def test_expired_after_ttl(self) -> None:
        token = _codec_at(T0).issue("alice")
        with pytest.raises(InvalidTokenError):
            _codec_at(T0 + timedelta(seconds=TTL + 1)).verify(token)

    def test_expired_exactly_at_exp(self) -> None:
        token = _codec_at(T0).issue("alice")
        with pytest.raises(InvalidTokenError):
            _codec_at(T0 + timedelta(seconds=TTL)).verify(token)

    def test_non_positive_ttl_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenCodec(SECRET, 0)


class TestTamperDetection:
    def test_any_changed_character_fails(self) -> None:
        """Replacing any single character must break verification.

        The final character is skipped: in a 43-character base64url HMAC-SHA256
        signature its low two bits are padding, so some replacements decode to
        the same signature bytes.
        """
        codec = _codec_at(T0)
        token = codec.issue("alice")
        for i in range(len(token) - 1):
            replacement = "A" if token[i] != "A" else "B"
            tampered = token[:i] + replacement + token[i + 1 :]
            with pytest.raises(InvalidTokenError):
                codec.verify(tampered)

    def test_wrong_key_fails(self) -> None:
        token = _codec_at(T0).issue("alice")
        with pytest.raises(InvalidTokenError):
            _codec_at(T0, secret="z" * 40).verify(token)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "a.b"])
    def test_unparseable_token_fails(self, garbage: str) -> None:
        with pytest.raises(InvalidTokenError):
            _codec_at(T0).verify(garbage)

    def test_other_algorithm_rejected(self) -> None:
        now = int(T0.timestamp())
        token = jwt.encode({"sub": "alice", "iat": now, "exp": now + 60}, SECRET, algorithm="HS512")
        with pytest.raises(InvalidTokenError):
            _codec_at(T0).verify(token)


class TestMissingClaims:
    def test_missing_subject(self) -> None:
        now = int(T0.timestamp())
        token = jwt.encode({"iat": now, "exp": now + 60}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidTokenError):
            _codec_at(T0).verify(token)

    def test_missing_expiry(self) -> None:
        token = jwt.encode({"sub": "alice", "iat": int(T0.timestamp())}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidTokenError):
            _codec_at(T0).verify(token)


class TestPasswordHashing:
    def test_hash_verifies(self) -> None:
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)

    def test_wrong_password(self) -> None:
        assert not verify_password("nope", hash_password("s3cret-pass"))

    def test_malformed_hash_is_false(self) -> None:
        assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")
