"""
tests/test_gates.py -- Unit tests for AuthenticationGate and AuthorizationGate.

AuthorizationGate is exercised through a minimal FastAPI app that mounts only
the gate and one handler echoing request.state.principal. That isolates the
gate from routing, rate limiting, and the stores.

Coverage:
  - login success issues a token for the stored username
  - unknown username / wrong password raise AuthenticationError
  - no Authorization header -> handler runs with no principal
  - non-Bearer scheme -> handler runs with no principal
  - valid Bearer token -> principal set
  - invalid token: 401 in strict mode, anonymous in lenient mode
  - lenient paths never reject
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from auth.gates import AuthenticationGate, AuthorizationGate
from auth.models import Credential
from auth.store import CredentialStore
from auth.tokens import TokenCodec, hash_password
from core.errors import AuthenticationError

SECRET = "s" * 40


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(SECRET, 3600)


@pytest.fixture
def credential_store():
    store = CredentialStore("sqlite:///:memory:")
    store.create_credential(Credential(username="alice", hashed_password=hash_password("wonderland")))
    yield store
    store.close()


def _gate_app(gate: AuthorizationGate) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def authorize(request: Request, call_next):
        return await gate.dispatch(request, call_next)

    @app.get("/whoami")
    def whoami(request: Request) -> dict:
        principal = request.state.principal
        return {"principal": principal.username if principal else None}

    @app.get("/login")
    def login_stub(request: Request) -> dict:
        return {"principal": None if request.state.principal is None else request.state.principal.username}

    return app


class TestAuthenticationGate:
    def test_success_issues_verifiable_token(self, credential_store: CredentialStore, codec: TokenCodec) -> None:
        gate = AuthenticationGate(credential_store, codec)
        token = gate.authenticate("alice", "wonderland")
        assert codec.verify(token) == "alice"

    def test_wrong_password(self, credential_store: CredentialStore, codec: TokenCodec) -> None:
        gate = AuthenticationGate(credential_store, codec)
        with pytest.raises(AuthenticationError):
            gate.authenticate("alice", "looking-glass")

    def test_unknown_username(self, credential_store: CredentialStore, codec: TokenCodec) -> None:
        gate = AuthenticationGate(credential_store, codec)
        with pytest.raises(AuthenticationError):
            gate.authenticate("mallory", "wonderland")

    def test_username_is_case_sensitive(self, credential_store: CredentialStore, codec: TokenCodec) -> None:
        gate = AuthenticationGate(credential_store, codec)
        with pytest.raises(AuthenticationError):
            gate.authenticate("Alice", "wonderland")


class TestAuthorizationGateResolve:
    def test_no_header_is_anonymous(self, codec: TokenCodec) -> None:
        assert AuthorizationGate(codec).resolve(None) is None

    def test_basic_scheme_is_anonymous(self, codec: TokenCodec) -> None:
        assert AuthorizationGate(codec).resolve("Basic YWxpY2U6eA==") is None

    def test_bearer_token_resolves(self, codec: TokenCodec) -> None:
        principal = AuthorizationGate(codec).resolve(f"Bearer {codec.issue('alice')}")
        assert principal.username == "alice"


class TestAuthorizationGateMiddleware:
    def test_anonymous_request_reaches_handler(self, codec: TokenCodec) -> None:
        client = TestClient(_gate_app(AuthorizationGate(codec)))
        resp = client.get("/whoami")
        assert resp.status_code == 200
        assert resp.json() == {"principal": None}

    def test_non_bearer_scheme_passes_through(self, codec: TokenCodec) -> None:
        client = TestClient(_gate_app(AuthorizationGate(codec)))
        resp = client.get("/whoami", headers={"Authorization": "Basic YWxpY2U6eA=="})
        assert resp.status_code == 200
        assert resp.json() == {"principal": None}

    def test_valid_token_sets_principal(self, codec: TokenCodec) -> None:
        client = TestClient(_gate_app(AuthorizationGate(codec)))
        resp = client.get("/whoami", headers={"Authorization": f"Bearer {codec.issue('alice')}"})
        assert resp.status_code == 200
        assert resp.json() == {"principal": "alice"}

    def test_invalid_token_rejected_in_strict_mode(self, codec: TokenCodec) -> None:
        client = TestClient(_gate_app(AuthorizationGate(codec, reject_invalid=True)))
        resp = client.get("/whoami", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_token"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_expired_token_rejected_in_strict_mode(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        expired = TokenCodec(SECRET, 60, clock=lambda: past).issue("alice")
        client = TestClient(_gate_app(AuthorizationGate(TokenCodec(SECRET, 60))))
        resp = client.get("/whoami", headers={"Authorization": f"Bearer {expired}"})
        assert resp.status_code == 401

    def test_invalid_token_anonymous_in_lenient_mode(self, codec: TokenCodec) -> None:
        client = TestClient(_gate_app(AuthorizationGate(codec, reject_invalid=False)))
        resp = client.get("/whoami", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 200
        assert resp.json() == {"principal": None}

    def test_token_from_other_key_rejected(self, codec: TokenCodec) -> None:
        foreign = TokenCodec("o" * 40, 3600).issue("alice")
        client = TestClient(_gate_app(AuthorizationGate(codec)))
        resp = client.get("/whoami", headers={"Authorization": f"Bearer {foreign}"})
        assert resp.status_code == 401

    def test_lenient_path_never_rejects(self, codec: TokenCodec) -> None:
        client = TestClient(_gate_app(AuthorizationGate(codec, reject_invalid=True)))
        resp = client.get("/login", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 200
        assert resp.json() == {"principal": None}
