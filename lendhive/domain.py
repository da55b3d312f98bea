from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum, auto
from typing import Optional, Set, Tuple
import itertools
import re
import threading

from .config import settings
from .errors import (
    AlreadyBorrowedError,
    NotAvailableError,
    QuotaExceededError,
    ValidationError,
)


LOAN_DAYS = settings.loan_days
DAILY_FINE = settings.daily_fine
MAX_LOANS = settings.max_loans
FINE_CEILING = settings.fine_ceiling
MIN_YEAR = settings.min_year

ISBN_PATTERN = re.compile(r"[0-9]{13}")
EMAIL_PATTERN = re.compile(r"[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,6}", re.ASCII)

ZERO = Decimal("0")

# process-wide, never reset
_user_ids = itertools.count(settings.user_id_base)
_user_ids_lock = threading.Lock()


def next_user_id() -> int:
    with _user_ids_lock:
        return next(_user_ids)


def is_valid_isbn(isbn: object) -> bool:
    return isinstance(isbn, str) and ISBN_PATTERN.fullmatch(isbn) is not None


def is_valid_email(email: object) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.fullmatch(email) is not None


def to_money(amount: object) -> Decimal:
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid amount: {amount!r}")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}")
    return value


def _check_year(year: object) -> int:
    current = date.today().year
    if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= current:
        raise ValidationError(f"Invalid year {year!r}: must be between {MIN_YEAR} and {current}")
    return year


def _check_text(value: object, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} cannot be empty")
    return value.strip()


def _check_identity(name: object, email: object) -> Tuple[str, str]:
    name = _check_text(name, "name")
    if not is_valid_email(email):
        raise ValidationError(f"Invalid email: {email!r}")
    return name, email.lower()


@dataclass(eq=False)
class BookEntry:
    """One catalog title and its copy counters.

    ``available_copies`` and ``times_borrowed`` are only written while
    holding ``lock``.
    """

    isbn: str
    title: str
    author: str
    year: int
    total_copies: int
    available_copies: int = field(init=False)
    times_borrowed: int = field(default=0, init=False)
    lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        if not is_valid_isbn(self.isbn):
            raise ValidationError(f"Invalid ISBN {self.isbn!r}: must be exactly 13 digits")
        self.title = _check_text(self.title, "title")
        self.author = _check_text(self.author, "author")
        self.year = _check_year(self.year)
        if (
            isinstance(self.total_copies, bool)
            or not isinstance(self.total_copies, int)
            or self.total_copies < 0
        ):
            raise ValidationError(f"Invalid total copies: {self.total_copies!r}")
        self.available_copies = self.total_copies

    def checkout(self) -> None:
        with self.lock:
            if self.available_copies <= 0:
                raise NotAvailableError(
                    f"No copies available of {self.title!r} (isbn={self.isbn})"
                )
            self.available_copies -= 1
            self.times_borrowed += 1

    def undo_checkout(self) -> None:
        """Reverse a checkout whose loan could not be completed."""
        with self.lock:
            if self.available_copies < self.total_copies:
                self.available_copies += 1
            if self.times_borrowed > 0:
                self.times_borrowed -= 1

    def return_copy(self) -> None:
        # clamped: a double return must not push available past total
        with self.lock:
            if self.available_copies < self.total_copies:
                self.available_copies += 1

    def is_available(self) -> bool:
        with self.lock:
            return self.available_copies > 0

    def counters(self) -> Tuple[int, int, int]:
        """(total, available, times_borrowed) read as one snapshot."""
        with self.lock:
            return self.total_copies, self.available_copies, self.times_borrowed

    def update(
        self,
        *,
        title: Optional[str] = None,
        author: Optional[str] = None,
        year: Optional[int] = None,
    ) -> None:
        if title is None and author is None and year is None:
            raise ValidationError("Nothing to update. Provide title, author and/or year.")
        # validate everything before touching any field
        new_title = _check_text(title, "title") if title is not None else None
        new_author = _check_text(author, "author") if author is not None else None
        new_year = _check_year(year) if year is not None else None
        with self.lock:
            if new_title is not None:
                self.title = new_title
            if new_author is not None:
                self.author = new_author
            if new_year is not None:
                self.year = new_year


@dataclass(eq=False)
class UserAccount:
    user_id: int
    name: str
    email: str
    borrowed: Set[str] = field(default_factory=set)
    fine_balance: Decimal = ZERO
    lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.name, self.email = _check_identity(self.name, self.email)
        self.fine_balance = to_money(self.fine_balance)
        if self.fine_balance < 0:
            raise ValidationError("fine balance cannot be negative")
        # own copy; callers must not alias the borrowed set
        self.borrowed = set(self.borrowed)
        bad = sorted(repr(isbn) for isbn in self.borrowed if not is_valid_isbn(isbn))
        if bad:
            raise ValidationError(f"Invalid borrowed ISBN(s): {', '.join(bad)}")
        if len(self.borrowed) > MAX_LOANS:
            raise ValidationError(
                f"Too many borrowed books: {len(self.borrowed)} > {MAX_LOANS}"
            )

    @classmethod
    def create(cls, name: str, email: str) -> UserAccount:
        # validate first so a rejected registration does not consume an id
        name, email = _check_identity(name, email)
        return cls(user_id=next_user_id(), name=name, email=email)

    def can_borrow(self) -> bool:
        with self.lock:
            return len(self.borrowed) < MAX_LOANS and self.fine_balance <= FINE_CEILING

    def add_loan(self, isbn: str) -> None:
        with self.lock:
            if isbn in self.borrowed:
                raise AlreadyBorrowedError(
                    f"User {self.user_id} already has an active loan of isbn={isbn}"
                )
            if not self.can_borrow():
                raise QuotaExceededError(
                    f"User {self.user_id} cannot borrow: "
                    f"{len(self.borrowed)}/{MAX_LOANS} loans, fines {self.fine_balance}"
                )
            self.borrowed.add(isbn)

    def remove_loan(self, isbn: str) -> None:
        with self.lock:
            self.borrowed.discard(isbn)

    def add_fine(self, amount: object) -> None:
        amount = to_money(amount)
        if amount <= 0:
            return
        # going over the ceiling is allowed; it only blocks new loans
        with self.lock:
            self.fine_balance += amount

    def pay_fine(self, amount: object) -> Decimal:
        amount = to_money(amount)
        with self.lock:
            if amount > 0:
                self.fine_balance = max(ZERO, self.fine_balance - amount)
            return self.fine_balance

    @property
    def has_fines(self) -> bool:
        with self.lock:
            return self.fine_balance > 0

    def borrowed_isbns(self) -> Set[str]:
        with self.lock:
            return set(self.borrowed)


class LoanStatus(Enum):
    ACTIVE = auto()
    OVERDUE = auto()
    RETURNED = auto()


@dataclass(eq=False)
class LoanRecord:
    isbn: str
    user_id: int
    loan_date: date
    due_date: date
    status: LoanStatus = LoanStatus.ACTIVE
    returned_on: Optional[date] = None
    fine_charged: Decimal = ZERO

    @classmethod
    def create(cls, isbn: str, user_id: int, today: Optional[date] = None) -> LoanRecord:
        today = today or date.today()
        return cls(
            isbn=isbn,
            user_id=user_id,
            loan_date=today,
            due_date=today + timedelta(days=LOAN_DAYS),
        )

    @property
    def is_active(self) -> bool:
        return self.status is not LoanStatus.RETURNED

    def is_overdue(self, today: Optional[date] = None) -> bool:
        today = today or date.today()
        return self.is_active and today > self.due_date

    def days_overdue(self, today: Optional[date] = None) -> int:
        if self.status is LoanStatus.RETURNED and self.returned_on is not None:
            reference = self.returned_on
        else:
            reference = today or date.today()
        return max(0, (reference - self.due_date).days)

    def compute_fine(self, today: Optional[date] = None) -> Decimal:
        return DAILY_FINE * self.days_overdue(today)

    def outstanding_fine(self, today: Optional[date] = None) -> Decimal:
        """Part of the fine not yet applied to the user's balance."""
        return max(ZERO, self.compute_fine(today) - self.fine_charged)

    def evaluate_status(self, today: Optional[date] = None) -> LoanStatus:
        if self.status is LoanStatus.ACTIVE and self.is_overdue(today):
            self.status = LoanStatus.OVERDUE
        return self.status

    def mark_returned(self, today: Optional[date] = None) -> None:
        if self.status is LoanStatus.RETURNED:
            return
        self.status = LoanStatus.RETURNED
        self.returned_on = today or date.today()
