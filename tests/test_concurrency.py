from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import threading

from lendhive import LoanStatus, NotAvailableError, QuotaExceededError


def run_together(n, fn):
    """Run ``fn(i)`` in n threads released at the same moment; return outcomes."""
    barrier = threading.Barrier(n)

    def task(i):
        barrier.wait()
        try:
            return fn(i)
        except Exception as e:  # collected, asserted on by the caller
            return e

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(task, range(n)))


def test_more_requests_than_copies(lib):
    book = lib.add_book("1111111111111", "Dune", "Frank Herbert", 1965, 5)
    users = [lib.register_user(f"User {i}", f"user{i}@mail.com") for i in range(20)]

    results = run_together(20, lambda i: lib.loan(users[i].user_id, book.isbn))

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(results) - len(failures) == 5
    assert len(failures) == 15
    assert all(isinstance(f, NotAvailableError) for f in failures)
    assert book.counters() == (5, 0, 5)
    assert sum(len(lib.loans_for_user(u.user_id)) for u in users) == 5


def test_one_user_many_books_respects_quota(lib, alice):
    books = [
        lib.add_book(f"{1000000000000 + i}", f"Book {i}", "Author", 2000, 1)
        for i in range(10)
    ]

    results = run_together(10, lambda i: lib.loan(alice.user_id, books[i].isbn))

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 7
    assert all(isinstance(f, QuotaExceededError) for f in failures)
    assert len(alice.borrowed) == 3
    assert sum(b.times_borrowed for b in books) == 3
    assert sum(b.available_copies for b in books) == 7


def test_concurrent_returns_of_one_loan(lib, clock, alice, dune):
    lib.loan(alice.user_id, dune.isbn)
    clock.advance(14 + 2)

    results = run_together(10, lambda i: lib.return_book(alice.user_id, dune.isbn))

    returned = [r for r in results if r is not None]
    assert len(returned) == 1
    assert returned[0].status is LoanStatus.RETURNED
    assert dune.counters() == (1, 1, 1)
    assert alice.fine_balance == Decimal(1000)
    assert alice.borrowed == set()


def test_mixed_traffic_keeps_invariants(lib, clock):
    books = [
        lib.add_book(f"{2000000000000 + i}", f"Book {i}", "Author", 2000, 2)
        for i in range(3)
    ]
    users = [lib.register_user(f"User {i}", f"mixed{i}@mail.com") for i in range(8)]

    def traffic(i):
        user = users[i % len(users)]
        for round_ in range(25):
            book = books[(i + round_) % len(books)]
            try:
                lib.loan(user.user_id, book.isbn)
            except (NotAvailableError, QuotaExceededError):
                pass
            if round_ % 2:
                lib.return_book(user.user_id, book.isbn)
            if round_ % 7 == 0:
                lib.evaluate_all_loans_and_fines()

    assert run_together(16, traffic) == [None] * 16

    for book in books:
        total, available, _ = book.counters()
        assert 0 <= available <= total
        on_loan = sum(
            1 for u in users for l in lib.loans_for_user(u.user_id)
            if l.isbn == book.isbn and l.is_active
        )
        assert available + on_loan == total
    for user in users:
        assert len(user.borrowed) <= 3
        active = {l.isbn for l in lib.loans_for_user(user.user_id) if l.is_active}
        assert active == user.borrowed
