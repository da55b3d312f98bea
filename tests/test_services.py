from datetime import date, timedelta
from decimal import Decimal

import pytest

from lendhive import (
    BookEntry,
    BookNotFoundError,
    BookRepo,
    CatalogService,
    FineService,
    LoanRecord,
    UserAccount,
    UserNotFoundError,
    UserRepo,
    UserService,
)

TODAY = date(2024, 3, 1)


@pytest.fixture
def users():
    return UserRepo()


@pytest.fixture
def fines(users):
    return FineService(users, lambda: TODAY)


def test_fine_service_charges_only_positive_amounts(fines):
    user = UserAccount.create("Ana", "ana@mail.com")
    loan = LoanRecord.create("1111111111111", user.user_id, TODAY)

    assert fines.charge(loan, user, Decimal(0)) == 0
    assert user.fine_balance == 0
    assert loan.fine_charged == 0

    assert fines.charge(loan, user, Decimal(500)) == Decimal(500)
    assert user.fine_balance == Decimal(500)
    assert loan.fine_charged == Decimal(500)


def test_fine_service_assess_uses_clock(fines):
    loan = LoanRecord.create("1111111111111", 1000, TODAY - timedelta(days=20))
    assert fines.assess(loan) == Decimal(3000)
    assert fines.assess(loan, TODAY - timedelta(days=6)) == 0


def test_fine_service_users_with_fines(users, fines):
    ana = UserAccount.create("Ana", "ana@mail.com")
    ben = UserAccount.create("Ben", "ben@mail.com")
    users.add(ana)
    users.add(ben)
    ben.add_fine(10)
    assert fines.users_with_fines() == [ben]
    assert fines.pay(ben.user_id, 10) == 0
    assert fines.users_with_fines() == []


def test_user_service_require(users):
    service = UserService(users)
    ana = service.register_user(UserAccount.create("Ana", "ana@mail.com"))
    assert service.require(ana.user_id) is ana
    with pytest.raises(UserNotFoundError):
        service.require(-1)


def test_catalog_service_require_and_inventory():
    catalog = CatalogService(BookRepo())
    book = catalog.add_book(BookEntry("1111111111111", "Dune", "Frank Herbert", 1965, 2))
    book.checkout()
    assert catalog.require(book.isbn) is book
    assert catalog.inventory() == [(book, 2, 1)]
    with pytest.raises(BookNotFoundError):
        catalog.require("2222222222222")
