from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from .domain import BookEntry, LoanRecord, UserAccount
from .repositories import BookRepo, LoanRepo, UserRepo
from .services import CatalogService, CirculationService, Clock, FineService, UserService


class LendingService:
    """
    Facade that wires repos + services and is the only entry point for
    changing copies, borrowed sets, fines and loan records.

    ``clock`` returns "today"; tests pass a controllable one.
    """

    def __init__(self, clock: Clock = date.today) -> None:
        self.clock = clock

        # repos
        self.users = UserRepo()
        self.books = BookRepo()
        self.loans = LoanRepo()

        # services
        self.user_service = UserService(self.users)
        self.catalog = CatalogService(self.books)
        self.fine_service = FineService(self.users, clock)
        self.circulation = CirculationService(
            self.users, self.books, self.loans, self.fine_service, clock
        )

    # ---- catalog
    def add_book(
        self, isbn: str, title: str, author: str, year: int, total_copies: int
    ) -> BookEntry:
        return self.catalog.add_book(BookEntry(isbn, title, author, year, total_copies))

    def find_book(self, isbn: str) -> Optional[BookEntry]:
        return self.catalog.get(isbn)

    def search_books(self, text: Optional[str]) -> List[BookEntry]:
        return self.catalog.search(text)

    def update_book(
        self,
        isbn: str,
        *,
        title: Optional[str] = None,
        author: Optional[str] = None,
        year: Optional[int] = None,
    ) -> BookEntry:
        return self.catalog.update_book(isbn, title=title, author=author, year=year)

    def list_available_books(self) -> List[BookEntry]:
        return self.catalog.list_available()

    def top_borrowed_books(self, n: int) -> List[BookEntry]:
        return self.catalog.top_borrowed(n)

    # ---- users
    def register_user(self, name: str, email: str) -> UserAccount:
        return self.user_service.register_user(UserAccount.create(name, email))

    def get_user(self, user_id: int) -> Optional[UserAccount]:
        return self.user_service.get(user_id)

    # ---- circulation
    def loan(self, user_id: int, isbn: str) -> LoanRecord:
        return self.circulation.loan(user_id, isbn)

    def return_book(self, user_id: int, isbn: str) -> Optional[LoanRecord]:
        return self.circulation.return_book(user_id, isbn)

    def loans_for_user(self, user_id: int) -> List[LoanRecord]:
        return self.circulation.list_user_loans(user_id)

    # ---- fines
    def pay_fine(self, user_id: int, amount: object) -> Decimal:
        return self.fine_service.pay(user_id, amount)

    def users_with_fines(self) -> List[UserAccount]:
        return self.fine_service.users_with_fines()

    def evaluate_all_loans_and_fines(self) -> None:
        self.circulation.evaluate_all()

    # ---- reporting
    def overdue_loans(self) -> List[LoanRecord]:
        return self.circulation.list_overdue_loans()

    def report_inventory(self) -> List[Tuple[BookEntry, int, int]]:
        """
        Returns tuples of (BookEntry, total_copies, available_copies)
        """
        return self.catalog.inventory()
