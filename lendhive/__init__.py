"""
LendHive lending core.

Exports key modules for convenient imports.
"""

from .domain import (
    BookEntry,
    UserAccount,
    LoanStatus,
    LoanRecord,
)

from .errors import (
    LendingError,
    ValidationError,
    DuplicateKeyError,
    NotFoundError,
    BookNotFoundError,
    UserNotFoundError,
    NotAvailableError,
    QuotaExceededError,
    AlreadyBorrowedError,
)

from .repositories import (
    UserRepo,
    BookRepo,
    LoanRepo,
)

from .services import (
    UserService,
    CatalogService,
    FineService,
    CirculationService,
)

from .api import LendingService
from .config import Settings, settings, configure_logging

import logging

# handlers are the application's choice; see configure_logging()
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # domain
    "BookEntry",
    "UserAccount",
    "LoanStatus",
    "LoanRecord",
    # errors
    "LendingError",
    "ValidationError",
    "DuplicateKeyError",
    "NotFoundError",
    "BookNotFoundError",
    "UserNotFoundError",
    "NotAvailableError",
    "QuotaExceededError",
    "AlreadyBorrowedError",
    # repos
    "UserRepo",
    "BookRepo",
    "LoanRepo",
    # services
    "UserService",
    "CatalogService",
    "FineService",
    "CirculationService",
    # api
    "LendingService",
    # config
    "Settings",
    "settings",
    "configure_logging",
]
