class LendingError(Exception):
    """Base exception for lending errors."""


class ValidationError(LendingError, ValueError):
    """Malformed input to a constructor or update (ISBN, year, name, email...)."""


class DuplicateKeyError(LendingError, ValueError):
    """Trying to add a book whose ISBN is already in the catalog."""


class NotFoundError(LendingError, LookupError):
    """Unknown user id or ISBN."""


class BookNotFoundError(NotFoundError):
    """Requested ISBN does not exist in the catalog."""


class UserNotFoundError(NotFoundError):
    """Requested user id is not registered."""


class NotAvailableError(LendingError):
    """No copies of the book are left to lend."""


class QuotaExceededError(LendingError):
    """User is at the borrow limit or over the fine ceiling."""


class AlreadyBorrowedError(QuotaExceededError):
    """User already holds an active loan of the same book."""
