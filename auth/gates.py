"""
auth/gates.py -- Login and per-request token gates.

AuthenticationGate
  One transition, two outcomes: credentials in, token out -- or
  AuthenticationError. Always runs exactly one bcrypt comparison (against
  DUMMY_HASH when the username is unknown) so response time does not reveal
  whether the username exists.

AuthorizationGate
  HTTP middleware applied to every request before any handler runs. It reads
  the Authorization header, verifies a Bearer token with the TokenCodec, and
  stores the result on request.state.principal (a Principal or None).

  Missing header / non-Bearer scheme: anonymous, never rejected here.
  Downstream dependencies (auth/dependencies.py) decide whether a route
  needs a principal.

  Invalid or expired token: rejected with 401 when reject_invalid is True,
  otherwise the request continues anonymously. /login and /health always
  continue anonymously.

Neither gate keeps state between requests or writes to a store.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from auth.models import Principal
from auth.store import CredentialStore
from auth.tokens import DUMMY_HASH, TokenCodec, verify_password
from core.errors import AuthenticationError, InvalidTokenError

logger = logging.getLogger("coffeeshop.auth")

BEARER_PREFIX = "Bearer"


class AuthenticationGate:
    def __init__(self, credential_store: CredentialStore, codec: TokenCodec) -> None:
        self._credentials = credential_store
        self._codec = codec

    def authenticate(self, username: str, password: str) -> str:
        """Check the credentials and return a freshly issued token.

        Raises AuthenticationError for an unknown username or a wrong password.
        Both cases produce the same message.
        """
        credential = self._credentials.get_by_username(username)
        if credential is None:
            # Equalize timing -- do NOT return before running bcrypt
            verify_password(password, DUMMY_HASH)
            logger.info("Login rejected: unknown username")
            raise AuthenticationError("Invalid username or password.")
        if not verify_password(password, credential.hashed_password):
            logger.info("Login rejected for %s: password mismatch", username)
            raise AuthenticationError("Invalid username or password.")
        logger.info("Login accepted for %s", username)
        return self._codec.issue(credential.username)


class AuthorizationGate:
    def __init__(
        self,
        codec: TokenCodec,
        reject_invalid: bool = True,
        lenient_paths: frozenset[str] = frozenset({"/login", "/health"}),
    ) -> None:
        self._codec = codec
        self.reject_invalid = reject_invalid
        # Invalid tokens on these paths are ignored even when reject_invalid
        # is set, so a client holding an expired token can still log in.
        self.lenient_paths = lenient_paths

    def resolve(self, header: str | None) -> Principal | None:
        """Return the principal asserted by an Authorization header value.

        None means anonymous (no header or a non-Bearer scheme).
        Raises InvalidTokenError for a Bearer header whose token does not verify.
        """
        if not header or not header.startswith(BEARER_PREFIX):
            return None
        token = header[len(BEARER_PREFIX) :].strip()
        return Principal(username=self._codec.verify(token))

    async def dispatch(self, request: Request, call_next):
        request.state.principal = None
        try:
            request.state.principal = self.resolve(request.headers.get("Authorization"))
        except InvalidTokenError as exc:
            if self.reject_invalid and request.url.path not in self.lenient_paths:
                logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
                return JSONResponse(
                    status_code=401,
                    content={"code": exc.code, "message": exc.message},
                    headers={"WWW-Authenticate": BEARER_PREFIX},
                )
            logger.info("Ignoring invalid token on %s %s: %s", request.method, request.url.path, exc.message)
        return await call_next(request)
