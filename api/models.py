"""
API request and response models for the coffee catalog REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in catalog/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog.models import Product

# ---------------------------------------------------------------------------
# Catalog -- request models
# ---------------------------------------------------------------------------


class CoffeeIn(BaseModel):
    """Request body for POST /coffees and PUT /coffees/{id}.

    name is kept exactly as sent. Uniqueness compares the raw string.
    """

    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0)


class DiscountIn(BaseModel):
    """Request body for PATCH /coffees.

    discount is a fraction of the current price. It is deliberately not
    range-checked.
    """

    name: str = Field(min_length=1, max_length=255)
    discount: Decimal


# ---------------------------------------------------------------------------
# Catalog -- response models
# ---------------------------------------------------------------------------


class CoffeeResponse(BaseModel):
    """One coffee as returned by every /coffees route."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    price: float

    @classmethod
    def from_product(cls, product: Product) -> "CoffeeResponse":
        return cls(id=product.id, name=product.name, price=float(product.price))


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

# bcrypt reads at most 72 bytes and bcrypt>=5 refuses longer input outright.
BCRYPT_MAX_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"password must be at most {BCRYPT_MAX_BYTES} bytes when UTF-8 encoded")
    return value


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)

    password_bytes = field_validator("password")(_check_password_bytes)


class LoginResponse(BaseModel):
    """Informational body for POST /login. The token itself is in the Authorization header."""

    model_config = ConfigDict(frozen=True)

    username: str
    token_type: str = "bearer"
    expires_in: int


class SignUpRequest(BaseModel):
    """Request body for POST /users/sign-up.

    username is stored exactly as sent, matching what /login compares against.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8, max_length=72)

    password_bytes = field_validator("password")(_check_password_bytes)


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error body returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
