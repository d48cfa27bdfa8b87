"""
core/errors.py -- Domain error taxonomy for the coffee catalog.

Every business-rule or identity failure is a CatalogError subclass. Each class
carries a machine-readable `code` that the API layer copies into the error
envelope; the HTTP status mapping lives in api/main.py, not here.

None of these errors are retried. They are terminal for the request that
triggered them.

Layer rule: core/ is the kernel. No imports from api/, auth/, or catalog/.
"""


class CatalogError(Exception):
    """Base class for all domain errors."""

    code = "catalog_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CatalogError):
    """A lookup by id or by name matched no live product."""

    code = "not_found"


class DuplicateNameError(CatalogError):
    """A product with the same name already exists."""

    code = "duplicate_name"


class AuthenticationError(CatalogError):
    """Unknown username or password mismatch at login."""

    code = "bad_credentials"


class InvalidTokenError(CatalogError):
    """Bearer token with a bad signature, unparseable structure, or past expiry."""

    code = "invalid_token"
