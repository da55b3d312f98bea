from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Tuple
import logging

from .domain import (
    ZERO,
    BookEntry,
    LoanRecord,
    LoanStatus,
    UserAccount,
)
from .errors import (
    BookNotFoundError,
    NotAvailableError,
    QuotaExceededError,
    UserNotFoundError,
)
from .repositories import BookRepo, LoanRepo, UserRepo

logger = logging.getLogger(__name__)

Clock = Callable[[], date]


class UserService:
    def __init__(self, users: UserRepo) -> None:
        self.users = users

    def register_user(self, user: UserAccount) -> UserAccount:
        self.users.add(user)
        logger.info("[users] registered user_id=%s email=%s", user.user_id, user.email)
        return user

    def get(self, user_id: int) -> Optional[UserAccount]:
        return self.users.get(user_id)

    def require(self, user_id: int) -> UserAccount:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User not registered: user_id={user_id}")
        return user


class CatalogService:
    def __init__(self, books: BookRepo) -> None:
        self.books = books

    def add_book(self, book: BookEntry) -> BookEntry:
        self.books.add(book)
        logger.info(
            "[catalog] added isbn=%s title=%r copies=%s",
            book.isbn,
            book.title,
            book.total_copies,
        )
        return book

    def get(self, isbn: str) -> Optional[BookEntry]:
        return self.books.get(isbn)

    def require(self, isbn: str) -> BookEntry:
        book = self.books.get(isbn)
        if book is None:
            raise BookNotFoundError(f"Book not found: isbn={isbn}")
        return book

    def update_book(
        self,
        isbn: str,
        *,
        title: Optional[str] = None,
        author: Optional[str] = None,
        year: Optional[int] = None,
    ) -> BookEntry:
        book = self.require(isbn)
        book.update(title=title, author=author, year=year)
        logger.info("[catalog] updated isbn=%s", isbn)
        return book

    def search(self, text: Optional[str]) -> List[BookEntry]:
        return self.books.search(text)

    def list_available(self) -> List[BookEntry]:
        return [b for b in self.books.list_books() if b.is_available()]

    def top_borrowed(self, n: int) -> List[BookEntry]:
        if n <= 0:
            return []
        # stable sort keeps catalog insertion order among ties
        ranked = sorted(
            self.books.list_books(), key=lambda b: b.times_borrowed, reverse=True
        )
        return ranked[:n]

    def inventory(self) -> List[Tuple[BookEntry, int, int]]:
        report: List[Tuple[BookEntry, int, int]] = []
        for book in self.books.list_books():
            total, available, _ = book.counters()
            report.append((book, total, available))
        return report


class FineService:
    def __init__(self, users: UserRepo, clock: Clock) -> None:
        self.users = users
        self.clock = clock

    def assess(self, loan: LoanRecord, today: Optional[date] = None) -> Decimal:
        """Fine accrued on ``loan`` that has not been charged yet."""
        return loan.outstanding_fine(today or self.clock())

    def charge(self, loan: LoanRecord, user: UserAccount, amount: Decimal) -> Decimal:
        """Apply ``amount`` to the user. Caller holds the book and user locks."""
        if amount <= 0:
            return ZERO
        user.add_fine(amount)
        loan.fine_charged += amount
        logger.info(
            "[fines] charged %s to user_id=%s for isbn=%s (total for loan %s)",
            amount,
            user.user_id,
            loan.isbn,
            loan.fine_charged,
        )
        return amount

    def pay(self, user_id: int, amount: object) -> Decimal:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User not registered: user_id={user_id}")
        remaining = user.pay_fine(amount)
        logger.info("[fines] user_id=%s paid %s, remaining %s", user_id, amount, remaining)
        return remaining

    def users_with_fines(self) -> List[UserAccount]:
        return [u for u in self.users.list_all() if u.has_fines]


class CirculationService:
    def __init__(
        self,
        users: UserRepo,
        books: BookRepo,
        loans: LoanRepo,
        fines: FineService,
        clock: Clock,
    ) -> None:
        self.users = users
        self.books = books
        self.loans = loans
        self.fines = fines
        self.clock = clock

    def loan(self, user_id: int, isbn: str) -> LoanRecord:
        user = self.users.get(user_id)
        if user is None:
            logger.warning("[loan] unknown user_id=%s", user_id)
            raise UserNotFoundError(f"User not registered: user_id={user_id}")
        book = self.books.get(isbn)
        if book is None:
            logger.warning("[loan] unknown isbn=%s", isbn)
            raise BookNotFoundError(f"Book not found: isbn={isbn}")

        today = self.clock()
        try:
            # lock order is always book, then user
            with book.lock, user.lock:
                if not user.can_borrow():
                    raise QuotaExceededError(
                        f"User {user_id} cannot borrow (loan limit reached or fines too high)"
                    )
                book.checkout()
                try:
                    user.add_loan(isbn)
                except QuotaExceededError:
                    book.undo_checkout()
                    raise
                loan = LoanRecord.create(isbn, user_id, today)
                self.loans.add(loan)
        except (NotAvailableError, QuotaExceededError) as e:
            logger.warning("[loan] rejected user_id=%s isbn=%s: %s", user_id, isbn, e)
            raise

        logger.info(
            "[loan] user_id=%s borrowed isbn=%s, due %s", user_id, isbn, loan.due_date
        )
        return loan

    def return_book(self, user_id: int, isbn: str) -> Optional[LoanRecord]:
        user = self.users.get(user_id)
        book = self.books.get(isbn)
        if user is None or book is None:
            logger.warning("[return] unknown user_id=%s or isbn=%s", user_id, isbn)
            return None

        today = self.clock()
        with book.lock, user.lock:
            loan = self.loans.find_active(user_id, isbn)
            if loan is None:
                logger.warning("[return] no active loan for user_id=%s isbn=%s", user_id, isbn)
                return None
            fine = self.fines.assess(loan, today)
            loan.mark_returned(today)
            self.fines.charge(loan, user, fine)
            user.remove_loan(isbn)
            book.return_copy()

        logger.info(
            "[return] user_id=%s returned isbn=%s, fine %s",
            user_id,
            isbn,
            loan.fine_charged,
        )
        return loan

    def list_user_loans(self, user_id: int) -> List[LoanRecord]:
        return self.loans.list_by_user(user_id)

    def list_overdue_loans(self) -> List[LoanRecord]:
        return self.loans.list_overdue(self.clock())

    def evaluate_all(self) -> None:
        """Mark overdue loans and charge whatever accrued since the last charge."""
        today = self.clock()
        overdue = 0
        charged = ZERO
        for loan in self.loans.list_active():
            book = self.books.get(loan.isbn)
            user = self.users.get(loan.user_id)
            if book is None or user is None:
                continue
            with book.lock, user.lock:
                if not loan.is_active:
                    continue
                previous = loan.status
                if loan.evaluate_status(today) is not LoanStatus.OVERDUE:
                    continue
                if previous is not LoanStatus.OVERDUE:
                    logger.debug(
                        "[sweep] loan user_id=%s isbn=%s is now overdue",
                        loan.user_id,
                        loan.isbn,
                    )
                overdue += 1
                charged += self.fines.charge(loan, user, self.fines.assess(loan, today))
        logger.info("[sweep] %s overdue loan(s), %s newly charged", overdue, charged)
