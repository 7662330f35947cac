from typing import Optional


class CatalogError(Exception):
    """Base exception for catalog errors.

    Every error carries a short machine-readable ``code`` so callers can
    branch on it instead of matching message text.
    """

    code = "catalog_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(CatalogError):
    """Bad input shape: empty field, invalid email/ISBN, bad count or year."""

    code = "invalid"


class NotFoundError(CatalogError):
    """Referenced book, member, loan or reservation does not exist."""

    code = "not_found"


class ConflictError(CatalogError):
    """Business-rule rejection (no copies, duplicate reservation, ...)."""

    code = "conflict"


class NoCopiesReserved(ConflictError):
    """Checkout found no copy and placed a reservation instead."""

    code = "no_copies_reserved"

    def __init__(self, message: str, reservation_id: str):
        super().__init__(message)
        self.reservation_id = reservation_id


class PersistenceError(CatalogError):
    """A collection file could not be written; in-memory state may be ahead of disk."""

    code = "persistence"
