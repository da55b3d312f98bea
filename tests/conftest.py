from datetime import date, timedelta

import pytest

from lendhive import LendingService


class FakeClock:
    """Settable stand-in for ``date.today``."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def clock():
    return FakeClock(date(2024, 3, 1))


@pytest.fixture
def lib(clock):
    # fresh registries for every test
    return LendingService(clock=clock)


@pytest.fixture
def dune(lib):
    return lib.add_book("1111111111111", "Dune", "Frank Herbert", 1965, 1)


@pytest.fixture
def alice(lib):
    return lib.register_user("Alice Reader", "Alice@Example.com")


@pytest.fixture
def bob(lib):
    return lib.register_user("Bob Borrower", "bob@example.com")
