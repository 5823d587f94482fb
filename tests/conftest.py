from decimal import Decimal

import pytest

from accounts.models import (
    CustomUser,
    ROLE_ADMIN,
    ROLE_LIBRARIAN,
    ROLE_READER,
    STATUS_ACTIVE,
)
from library import inventory, workflow
from library.models import Book, FineLevel

PASSWORD = 'Lend1ng-Pass!'


@pytest.fixture
def make_user(db):
    def _make(username, role=ROLE_READER, status=STATUS_ACTIVE, **extra):
        return CustomUser.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password=PASSWORD,
            role=role,
            account_status=status,
            **extra,
        )
    return _make


@pytest.fixture
def reader(make_user):
    return make_user('amina')


@pytest.fixture
def other_reader(make_user):
    return make_user('baraka')


@pytest.fixture
def librarian(make_user):
    return make_user('librarian', role=ROLE_LIBRARIAN)


@pytest.fixture
def admin(make_user):
    return make_user('admin', role=ROLE_ADMIN)


@pytest.fixture
def make_book(db):
    def _make(title='Things Fall Apart', copies=1, author='Chinua Achebe', **extra):
        book = Book.objects.create(title=title, author=author, **extra)
        if copies:
            inventory.receive_copies(book.pk, copies)
        book.refresh_from_db()
        return book
    return _make


@pytest.fixture
def book(make_book):
    return make_book()


@pytest.fixture
def late_fee(db):
    return FineLevel.objects.create(name='Late return', amount=Decimal('1.50'))


@pytest.fixture
def damage_fee(db):
    return FineLevel.objects.create(name='Damaged book', amount=Decimal('10.00'))


@pytest.fixture
def loss_fee(db):
    return FineLevel.objects.create(name='Lost book', amount=Decimal('25.00'))


@pytest.fixture
def borrowed_loan(reader, librarian, book):
    loan = workflow.submit_borrow(reader, book.pk, 14)
    return workflow.confirm_loan(librarian, loan.pk)


@pytest.fixture
def return_request(reader, borrowed_loan):
    return workflow.request_return(reader, borrowed_loan.pk)
