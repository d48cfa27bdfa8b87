"""
auth/tokens.py -- JWT codec and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only the claim set {sub, iat, exp}
       and are signed with the process-wide SECRET_KEY. TokenCodec takes the
       key and TTL as constructor arguments; nothing here reads configuration
       on its own. verify() raises InvalidTokenError on any failure -- the
       authorization gate decides what that means for the request.

       Expiry is checked against the codec's own clock rather than jose's
       built-in exp check, so the verification instant is injectable and
       issue() is deterministic for a given clock reading.

  Passwords: bcrypt directly. The DUMMY_HASH constant enables timing
       equalization in AuthenticationGate so response time does not reveal
       whether a username exists.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import bcrypt
from jose import jwt
from jose.exceptions import JOSEError

from core.errors import InvalidTokenError

ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only reads the first 72 bytes. The API models and the CLI cap
    passwords at that length.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
DUMMY_HASH: str = hash_password("coffeeshop_timing_dummy")


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Signs and verifies compact identity tokens.

    Usage:
        codec = TokenCodec(settings.secret_key, settings.token_expire_seconds)
        token = codec.issue("alice")
        codec.verify(token)   # -> "alice"

    Verification is self-contained: no store lookup, no I/O.
    """

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self._clock = clock or _utcnow

    def _now(self) -> int:
        return int(self._clock().timestamp())

    def issue(self, subject: str) -> str:
        """Return a signed token for `subject`, valid for ttl_seconds from now."""
        issued_at = self._now()
        claims = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        """Return the subject of a valid token.

        Raises InvalidTokenError when the signature does not match, the token
        cannot be parsed, a required claim is missing, or the token has expired.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JOSEError as exc:
            raise InvalidTokenError("Token signature or structure is invalid.") from exc

        subject = claims.get("sub")
        expires_at = claims.get("exp")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError("Token has no subject.")
        if not isinstance(expires_at, (int, float)):
            raise InvalidTokenError("Token has no expiry.")
        if self._now() >= expires_at:
            raise InvalidTokenError("Token has expired.")
        return subject
