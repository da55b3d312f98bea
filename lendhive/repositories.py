from __future__ import annotations
from datetime import date
from typing import Dict, List, Optional
import threading

from .domain import BookEntry, LoanRecord, UserAccount
from .errors import DuplicateKeyError


class UserRepo:
    def __init__(self) -> None:
        self._users: Dict[int, UserAccount] = {}
        self._lock = threading.Lock()

    def add(self, user: UserAccount) -> None:
        # ids come from the shared generator, so they never collide
        with self._lock:
            self._users[user.user_id] = user

    def get(self, user_id: int) -> Optional[UserAccount]:
        return self._users.get(user_id)

    def list_all(self) -> List[UserAccount]:
        with self._lock:
            return list(self._users.values())


class BookRepo:
    def __init__(self) -> None:
        self._books: Dict[str, BookEntry] = {}
        self._lock = threading.Lock()

    def add(self, book: BookEntry) -> None:
        with self._lock:
            if book.isbn in self._books:
                raise DuplicateKeyError(f"Book already exists: isbn={book.isbn}")
            self._books[book.isbn] = book

    def get(self, isbn: str) -> Optional[BookEntry]:
        return self._books.get(isbn)

    def list_books(self) -> List[BookEntry]:
        """All entries in catalog insertion order."""
        with self._lock:
            return list(self._books.values())

    def search(self, text: Optional[str]) -> List[BookEntry]:
        t = (text or "").lower().strip()
        return [b for b in self.list_books() if t in b.title.lower()]


class LoanRepo:
    """Append-only sequence of loan records."""

    def __init__(self) -> None:
        self._loans: List[LoanRecord] = []
        self._lock = threading.Lock()

    def add(self, loan: LoanRecord) -> None:
        with self._lock:
            self._loans.append(loan)

    def list_all(self) -> List[LoanRecord]:
        with self._lock:
            return list(self._loans)

    def list_by_user(self, user_id: int) -> List[LoanRecord]:
        return [l for l in self.list_all() if l.user_id == user_id]

    def find_active(self, user_id: int, isbn: str) -> Optional[LoanRecord]:
        return next(
            (
                l
                for l in self.list_all()
                if l.user_id == user_id and l.isbn == isbn and l.is_active
            ),
            None,
        )

    def list_active(self) -> List[LoanRecord]:
        return [l for l in self.list_all() if l.is_active]

    def list_overdue(self, today: Optional[date] = None) -> List[LoanRecord]:
        return [l for l in self.list_all() if l.is_overdue(today)]
