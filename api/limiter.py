"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in route modules (to
apply per-route limits with @limiter.limit() placed directly under the
@router decorator). A single shared instance keeps one in-memory counter
store for the whole app.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Current LOGIN_RATE_LIMIT. Passed to @limiter.limit() as a callable so it is read per request."""
    return get_settings().login_rate_limit
