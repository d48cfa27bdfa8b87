"""
api/routes/auth.py -- Login, sign-up, and identity endpoints.

Routes:
  POST /login           -- password login; token returned in the Authorization header
  POST /users/sign-up   -- self-registration (SELF_REGISTRATION_ENABLED)
  GET  /me              -- the current principal (requires auth)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  AuthenticationGate provides timing equalization -- use it, never inline
  get_by_username() + verify_password().
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit
from api.models import LoginRequest, LoginResponse, MeResponse, SignUpRequest, UserResponse
from auth.dependencies import require_principal
from auth.gates import AuthenticationGate
from auth.models import Credential, Principal
from auth.store import CredentialStore
from auth.tokens import hash_password

logger = logging.getLogger("coffeeshop.api")

# Auth policy:
# - POST /login:           public -- login endpoint must be unauthenticated
# - POST /users/sign-up:   public, unless SELF_REGISTRATION_ENABLED=false
# - GET  /me:              requires auth (require_principal)
router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password.

    On success the token is returned as `Authorization: Bearer <token>`.
    AuthenticationError propagates to the exception handler in api/main.py,
    which answers 401 bad_credentials without setting the header.
    """
    gate: AuthenticationGate = request.app.state.authentication_gate
    token = gate.authenticate(body.username, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            username=body.username,
            expires_in=request.app.state.token_codec.ttl_seconds,
        ).model_dump(),
    )
    resp.headers["Authorization"] = f"Bearer {token}"
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/users/sign-up", response_model=UserResponse, status_code=201)
def sign_up(request: Request, body: SignUpRequest) -> UserResponse:
    """Create a credential for a new user. Does not log the user in."""
    if not request.app.state.settings.self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    store: CredentialStore = request.app.state.credential_store
    try:
        user_id = store.create_credential(
            Credential(username=body.username, hashed_password=hash_password(body.password))
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that username already exists."},
        ) from exc
    logger.info("Registered user %s", body.username)
    return UserResponse(id=user_id, username=body.username)


@router.get("/me", response_model=MeResponse)
def me(principal: Principal = Depends(require_principal)) -> MeResponse:
    """Return the username carried by the request's bearer token."""
    return MeResponse(username=principal.username)
