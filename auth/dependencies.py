"""
auth/dependencies.py -- FastAPI Depends() helpers built on the request principal.

AuthorizationGate (auth/gates.py) has already run by the time any of these
execute; they only read request.state.principal.

get_principal() is the soft variant (returns None when anonymous).
require_principal() wraps it and raises HTTP 401 if anonymous.
guard_catalog() applies require_principal() only when PROTECT_CATALOG is on.

Layer rule: no imports from api/ or catalog/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Principal


def get_principal(request: Request) -> Principal | None:
    """Return the request's principal, or None for an anonymous request."""
    return getattr(request.state, "principal", None)


def require_principal(request: Request) -> Principal:
    """Require authentication. Raises HTTP 401 if the request is anonymous.

    Use as a FastAPI dependency:
        @router.get("/me")
        def route(principal: Principal = Depends(require_principal)): ...
    """
    principal = get_principal(request)
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def guard_catalog(request: Request) -> Principal | None:
    """Router-level dependency for /coffees.

    The catalog is open by default. Setting PROTECT_CATALOG=true turns every
    catalog route into an authenticated one.
    """
    if request.app.state.settings.protect_catalog:
        return require_principal(request)
    return get_principal(request)
