"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and gates do
the work; these only describe shape.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Credential:
    """A stored login identity.

    hashed_password is a bcrypt hash; the plaintext is never persisted.
    Credentials are created out of band (CLI add-user or the sign-up route)
    and are read-only as far as the gates are concerned.
    """

    username: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The identity attached to one request after its bearer token verified."""

    username: str
